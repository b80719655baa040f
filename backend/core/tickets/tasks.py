"""Celery tasks for background queue maintenance."""

import logging
from typing import Any, Dict

from celery import shared_task

from tickets.services.queue_reconciler import QueueReconciler

logger = logging.getLogger(__name__)


@shared_task(bind=True, name="tickets.reconcile_queue_positions", ignore_result=True)
def reconcile_queue_positions_task(self) -> Dict[str, Any]:
    """
    Renumber every team queue 1..N in creation order.
    Scheduled by beat; a failed pass is logged and the next one retries.
    """
    try:
        corrected = QueueReconciler().reconcile()
    except Exception as e:
        logger.error(f"Queue reconciliation failed: {e}", exc_info=True)
        return {"error": str(e), "status": "error"}

    return {"corrected": corrected, "status": "success"}
