"""
Ticket Store Module

Persistence for finalized tickets plus the staff-facing queries used by the
dashboards. Every write is announced to connected dashboards once the
surrounding transaction commits.

Queue positions are assigned as "open tickets in the team + 1" without a
lock. Two concurrent creates can therefore land on the same position; the
queue reconciler rewrites positions from creation order on its next pass.
"""

import logging
from datetime import date, datetime, time, timedelta
from datetime import timezone as dt_timezone
from typing import Any, Dict, Iterable, List, Optional

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from tickets.constants import DashboardDefaults, ErrorMessages, TicketStatus, Urgency
from tickets.exceptions import InvalidStatusError, TicketNotFoundError
from tickets.models import Ticket
from tickets.services.team_router import determine_team
from tickets.services.ticket_broadcaster import (
    TICKET_CREATED,
    TICKET_UPDATED,
    broadcast_ticket_event_sync,
)


logger = logging.getLogger(__name__)

Fields = Dict[str, Any]

_TEXT_FIELDS = ("category", "issue_type", "location", "urgency", "summary", "reply", "transcript")


def normalize_status(value: Any) -> str:
    """
    Map user-facing spellings ("In Progress", "in-progress") to a stored status.

    Raises:
        InvalidStatusError: If the value is not a known status
    """
    normalized = str(value or "").strip().lower().replace("-", "_").replace(" ", "_")
    if normalized not in dict(TicketStatus.CHOICES):
        raise InvalidStatusError(f"{ErrorMessages.INVALID_STATUS}: {value!r}")
    return normalized


def _parse_started_at(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = parse_datetime(str(value))
        except ValueError:
            parsed = None
        if parsed is None:
            logger.warning(f"Ignoring unparseable conversation start time: {value!r}")
            return None
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def week_bounds(day: date):
    """Sunday 00:00 (inclusive) to the next Sunday 00:00 (exclusive) around ``day``."""
    sunday = day - timedelta(days=(day.weekday() + 1) % 7)
    start = timezone.make_aware(datetime.combine(sunday, time.min))
    return start, start + timedelta(days=7)


def _urgency_rank(ticket: Ticket) -> int:
    urgency = (ticket.urgency or "").upper()
    if urgency in Urgency.ORDER:
        return Urgency.ORDER.index(urgency)
    return len(Urgency.ORDER)


class TicketStore:
    """
    Database-backed ticket repository.

    Example:
        >>> store = TicketStore()
        >>> ticket = store.create_ticket(fields, conversation_id="conv-1")
        >>> ticket.team, ticket.queue_position
        ('maintenance', 1)
        >>> store.update_status(ticket.id, "In Progress").status
        'in_progress'
    """

    def get_ticket(self, ticket_id) -> Ticket:
        try:
            return Ticket.objects.get(pk=ticket_id)
        except (Ticket.DoesNotExist, ValidationError, ValueError) as e:
            raise TicketNotFoundError(f"{ErrorMessages.TICKET_NOT_FOUND}: {ticket_id}") from e

    def count_active(self, team: str) -> int:
        """Open and in-progress tickets currently queued for ``team``."""
        return Ticket.objects.filter(
            Q(status__in=TicketStatus.ACTIVE) | Q(status__isnull=True),
            team=team,
        ).count()

    def create_ticket(
        self,
        fields: Fields,
        conversation_id: Optional[str] = None,
        owner: Optional[str] = None,
    ) -> Ticket:
        """
        Persist a completed conversation as a ticket.

        The team comes from the router and the queue position is the team's
        current open count plus one. When ``conversation_id`` already has a
        ticket, that ticket is returned and nothing is written.
        """
        if conversation_id:
            existing = Ticket.objects.filter(conversation_id=conversation_id).first()
            if existing is not None:
                logger.info(
                    f"Conversation {conversation_id} already finalized as {existing.display_id}"
                )
                return existing

        team = determine_team(fields)
        now = timezone.now()
        values = {name: str(fields.get(name) or "").strip() for name in _TEXT_FIELDS}
        values["urgency"] = values["urgency"].upper()

        try:
            with transaction.atomic():
                position = self.count_active(team) + 1
                ticket = Ticket.objects.create(
                    conversation_id=conversation_id or None,
                    owner=owner or None,
                    started_at=_parse_started_at(fields.get("started_at")),
                    team=team,
                    status=TicketStatus.OPEN,
                    queue_position=position,
                    created_at=now,
                    updated_at=now,
                    **values,
                )
        except IntegrityError:
            if not conversation_id:
                raise
            ticket = Ticket.objects.filter(conversation_id=conversation_id).first()
            if ticket is None:
                raise
            logger.info(
                f"Concurrent finalization of {conversation_id}; reusing {ticket.display_id}"
            )
            return ticket

        logger.info(
            f"Created ticket {ticket.display_id} for team '{team}' at position {position} "
            f"(conversation={conversation_id}, urgency={ticket.urgency})"
        )
        self._announce(TICKET_CREATED, [ticket])
        return ticket

    def update_status(self, ticket_id, new_status: Any) -> Ticket:
        """
        Move a ticket through its lifecycle.

        ``closed_at`` is stamped when the ticket closes and cleared when it
        is reopened.

        Raises:
            InvalidStatusError: If ``new_status`` is not a known status
            TicketNotFoundError: If the ticket does not exist
        """
        status = normalize_status(new_status)

        with transaction.atomic():
            ticket = self.get_ticket(ticket_id)
            now = timezone.now()
            ticket.status = status
            ticket.updated_at = now
            ticket.closed_at = now if status == TicketStatus.CLOSED else None
            ticket.save(update_fields=["status", "updated_at", "closed_at"])

        logger.info(f"Ticket {ticket.display_id} status -> {status}")
        self._announce(TICKET_UPDATED, [ticket])
        return ticket

    def update_queue_position(self, ticket_id, position: int) -> Ticket:
        """Overwrite a ticket's queue position."""
        if isinstance(position, bool) or not isinstance(position, int) or position < 1:
            raise ValueError(f"Queue position must be a positive integer, got {position!r}")

        if not self.apply_corrections({ticket_id: {"queue_position": position}}):
            raise TicketNotFoundError(f"{ErrorMessages.TICKET_NOT_FOUND}: {ticket_id}")
        return self.get_ticket(ticket_id)

    def apply_corrections(self, changes: Dict[Any, Fields]) -> int:
        """
        Write a batch of per-ticket field corrections in one transaction.

        Args:
            changes: ticket id -> {field: value} (queue_position, team, status)

        Returns:
            Number of tickets updated
        """
        if not changes:
            return 0

        now = timezone.now()
        updated_ids = []
        with transaction.atomic():
            for ticket_id, values in changes.items():
                if Ticket.objects.filter(pk=ticket_id).update(updated_at=now, **values):
                    updated_ids.append(ticket_id)

        if updated_ids:
            logger.debug(f"Applied corrections to {len(updated_ids)} ticket(s): {changes}")
            self._announce(TICKET_UPDATED, Ticket.objects.filter(pk__in=updated_ids))
        return len(updated_ids)

    def list_tickets(
        self,
        team: Optional[str] = None,
        urgency: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Ticket]:
        """
        Dashboard listing: HIGH, MEDIUM, LOW then anything else, oldest first
        within a level. Closed tickets linger for a few seconds after closing
        so staff see the change, then drop off.
        """
        now = now or timezone.now()
        cutoff = now - timedelta(seconds=DashboardDefaults.CLOSED_HIDE_DELAY)

        queryset = Ticket.objects.exclude(
            Q(status=TicketStatus.CLOSED)
            & (Q(closed_at__isnull=True) | Q(closed_at__lt=cutoff))
        )
        if team:
            queryset = queryset.filter(team=team)
        if urgency:
            queryset = queryset.filter(urgency__iexact=urgency)

        return sorted(
            queryset,
            key=lambda t: (
                _urgency_rank(t),
                t.created_at is None,
                t.created_at or now,
                str(t.id),
            ),
        )

    def closed_tickets_for_week(self, week_start: date, team: Optional[str] = None) -> List[Ticket]:
        """Tickets closed during the Sunday-to-Saturday week containing ``week_start``."""
        start, end = week_bounds(week_start)
        queryset = Ticket.objects.filter(
            status=TicketStatus.CLOSED,
            closed_at__gte=start,
            closed_at__lt=end,
        )
        if team:
            queryset = queryset.filter(team=team)
        return list(queryset.order_by("closed_at"))

    def _announce(self, event: str, tickets: Iterable[Ticket]) -> None:
        payloads = [ticket.to_dict() for ticket in tickets]

        def send():
            for payload in payloads:
                broadcast_ticket_event_sync(event, payload)

        transaction.on_commit(send)
