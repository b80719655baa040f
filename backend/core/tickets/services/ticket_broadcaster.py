"""
Dashboard Broadcast Service
===========================

Pushes ticket change events to every staff dashboard connected over
WebSocket. Can be called from anywhere in the Django application (views,
Celery tasks, management commands, etc.)

Usage:
    from tickets.services.ticket_broadcaster import broadcast_ticket_event_sync

    broadcast_ticket_event_sync("ticket.updated", ticket.to_dict())
"""

import logging
from typing import Any, Dict

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from tickets.constants import DashboardDefaults

logger = logging.getLogger(__name__)

TICKET_CREATED = "ticket.created"
TICKET_UPDATED = "ticket.updated"


def _build_message(event: str, ticket: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "ticket_event",
        "event": event,
        "ticket": ticket,
    }


async def broadcast_ticket_event(
    event: str,
    ticket: Dict[str, Any],
    group_name: str = DashboardDefaults.GROUP_NAME,
) -> None:
    """
    Broadcast a ticket change to all dashboards in a group.

    Args:
        event: "ticket.created" or "ticket.updated"
        ticket: Serialized ticket (``Ticket.to_dict()``)
        group_name: Channel layer group name (default: "dashboards")
    """
    channel_layer = get_channel_layer()

    if not channel_layer:
        logger.error("Channel layer not configured")
        return

    try:
        await channel_layer.group_send(group_name, _build_message(event, ticket))
        logger.debug(f"Broadcast {event} for ticket {ticket.get('id')} to '{group_name}'")

    except Exception as e:
        logger.error(f"Error broadcasting ticket event: {e}", exc_info=True)


def broadcast_ticket_event_sync(
    event: str,
    ticket: Dict[str, Any],
    group_name: str = DashboardDefaults.GROUP_NAME,
) -> None:
    """
    Synchronous version of broadcast_ticket_event.

    Use this from synchronous code (views, Celery tasks, management commands).
    """
    channel_layer = get_channel_layer()

    if not channel_layer:
        logger.error("Channel layer not configured")
        return

    try:
        async_to_sync(channel_layer.group_send)(group_name, _build_message(event, ticket))
        logger.debug(f"Broadcast {event} for ticket {ticket.get('id')} to '{group_name}'")

    except Exception as e:
        logger.error(f"Error broadcasting ticket event: {e}", exc_info=True)
