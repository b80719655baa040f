"""Persistent ticket records."""

import uuid
from typing import Any, Dict, Optional

from django.db import models
from django.utils import timezone

from tickets.constants import DashboardDefaults, Team, TicketStatus


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


class Ticket(models.Model):
    """
    One finalized resident report.

    ``team``, ``status`` and ``created_at`` are nullable so records that
    predate routing (or were imported from elsewhere) can still be stored;
    the queue reconciler backfills them.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Conversation that produced the ticket; at most one ticket per conversation
    conversation_id = models.CharField(
        max_length=128, null=True, blank=True, unique=True
    )
    owner = models.CharField(max_length=128, null=True, blank=True)

    category = models.CharField(max_length=64, blank=True, default="")
    issue_type = models.CharField(max_length=255, blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="")
    urgency = models.CharField(max_length=16, blank=True, default="")
    summary = models.TextField(blank=True, default="")
    reply = models.TextField(blank=True, default="")
    transcript = models.TextField(blank=True, default="")
    started_at = models.DateTimeField(null=True, blank=True)

    team = models.CharField(max_length=16, choices=Team.CHOICES, null=True, blank=True)
    status = models.CharField(
        max_length=16,
        choices=TicketStatus.CHOICES,
        null=True,
        blank=True,
        default=TicketStatus.OPEN,
    )
    queue_position = models.PositiveIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(null=True, blank=True, default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)
    closed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["team", "status"], name="ticket_team_status_idx"),
            models.Index(fields=["closed_at"], name="ticket_closed_at_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.display_id} [{self.team or '?'}#{self.queue_position}]"

    @property
    def display_id(self) -> str:
        return f"{DashboardDefaults.DISPLAY_ID_PREFIX}{self.id.hex[-6:].upper()}"

    @property
    def is_active(self) -> bool:
        """Open tickets hold a place in their team's queue (missing status counts)."""
        return not self.status or self.status in TicketStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        """JSON shape consumed by the mobile app and staff dashboards."""
        return {
            "id": str(self.id),
            "displayId": self.display_id,
            "conversationId": self.conversation_id,
            "owner": self.owner,
            "category": self.category,
            "issueType": self.issue_type,
            "location": self.location,
            "urgency": self.urgency,
            "summary": self.summary,
            "reply": self.reply,
            "transcript": self.transcript,
            "startedAt": _iso(self.started_at),
            "team": self.team,
            "status": self.status,
            "queuePosition": self.queue_position,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "closedAt": _iso(self.closed_at),
        }
