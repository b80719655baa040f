"""
Queue Reconciler

Periodically rewrites queue positions so that, per team, open tickets are
numbered 1..N in creation order. This repairs duplicate positions left by
concurrent creates, gaps left by closed tickets and records imported
without a team or status.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from tickets.constants import TicketStatus
from tickets.models import Ticket
from tickets.services.team_router import team_from_category
from tickets.services.ticket_store import TicketStore


logger = logging.getLogger(__name__)


def _queue_order(ticket: Ticket):
    # Tickets without a creation time sort after every timestamped ticket
    return (
        ticket.created_at is None,
        ticket.created_at or datetime.min,
        str(ticket.id),
    )


class QueueReconciler:
    """
    Example:
        >>> QueueReconciler().reconcile()
        3
    """

    def __init__(self, ticket_store: Optional[TicketStore] = None):
        self.ticket_store = ticket_store if ticket_store is not None else TicketStore()

    def plan(self) -> Dict[Any, Dict[str, Any]]:
        """
        Compute the corrections needed, without writing anything.

        Returns:
            ticket id -> {field: corrected value}
        """
        changes: Dict[Any, Dict[str, Any]] = {}
        queues: Dict[str, List[Ticket]] = {}

        for ticket in Ticket.objects.all():
            team = ticket.team or team_from_category(ticket.category)
            if team is None:
                logger.debug(f"Skipping {ticket.display_id}: no team and unknown category")
                continue
            if team != ticket.team:
                changes.setdefault(ticket.pk, {})["team"] = team

            if not ticket.is_active:
                continue
            if not ticket.status:
                changes.setdefault(ticket.pk, {})["status"] = TicketStatus.OPEN
            queues.setdefault(team, []).append(ticket)

        for team, tickets in queues.items():
            for position, ticket in enumerate(sorted(tickets, key=_queue_order), start=1):
                if ticket.queue_position != position:
                    changes.setdefault(ticket.pk, {})["queue_position"] = position

        return changes

    def reconcile(self) -> int:
        """Apply the planned corrections. Returns the number of tickets corrected."""
        changes = self.plan()
        if not changes:
            logger.debug("Queues already consistent")
            return 0

        corrected = self.ticket_store.apply_corrections(changes)
        logger.info(f"Queue reconciliation corrected {corrected} ticket(s)")
        return corrected
