"""
WebSocket consumer for staff dashboards.
"""

import json
import logging
import uuid
from urllib.parse import parse_qs

from channels.generic.websocket import AsyncWebsocketConsumer

from tickets.constants import DashboardDefaults

logger = logging.getLogger(__name__)


class DashboardConsumer(AsyncWebsocketConsumer):
    """
    Streams ticket changes to a connected dashboard.

    Handles connections at /ws/dashboard/ (optionally ``?team=ra`` or
    ``?team=maintenance`` to only receive one queue). Every connection joins
    the dashboards group that ``ticket_broadcaster`` publishes to.
    """

    async def connect(self):
        self.connection_id = str(uuid.uuid4())
        self.group_name = DashboardDefaults.GROUP_NAME

        query = parse_qs(self.scope.get("query_string", b"").decode())
        self.team = (query.get("team") or [None])[0]

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        logger.info(
            f"Dashboard connected: connection_id={self.connection_id}, team={self.team}"
        )
        await self.send(
            text_data=json.dumps(
                {"type": "connected", "connectionId": self.connection_id, "team": self.team}
            )
        )

    async def disconnect(self, code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(
            f"Dashboard disconnected: connection_id={self.connection_id}, close_code={code}"
        )

    async def receive(self, text_data=None, bytes_data=None):
        """
        Supports:
        - {"type": "ping"} -> {"type": "pong"}
        """
        if not text_data:
            return

        try:
            data = json.loads(text_data)
        except json.JSONDecodeError:
            await self.send(text_data=json.dumps({"type": "error", "message": "Invalid JSON"}))
            return

        if data.get("type") == "ping":
            await self.send(text_data=json.dumps({"type": "pong"}))
        else:
            logger.debug(f"[{self.connection_id}] Ignoring message type: {data.get('type')}")

    async def ticket_event(self, event):
        """
        Handle ticket_event from the channel layer (sent by ticket_broadcaster).

        Args:
            event: {"event": "ticket.created" | "ticket.updated", "ticket": {...}}
        """
        ticket = event.get("ticket") or {}
        if self.team and ticket.get("team") != self.team:
            return

        await self.send(text_data=json.dumps({"type": event.get("event"), "ticket": ticket}))
