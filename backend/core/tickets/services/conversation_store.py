"""
Conversation Store Module

This module keeps the structured fields accumulated for every in-flight
voice conversation. Each utterance is classified on its own; the store is
what turns a series of partial classifications into one coherent record.

State is process-local and not durable: a conversation interrupted by a
restart simply starts over with an empty record.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from django.conf import settings

from tickets.constants import ConversationDefaults


logger = logging.getLogger(__name__)

Fields = Dict[str, Any]


def is_empty_value(value: Any) -> bool:
    """True for None, blank strings and the placeholders the model uses for "not known"."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip().lower() in ConversationDefaults.EMPTY_MARKERS
    return False


def merge_fields(existing: Fields, incoming: Fields) -> Fields:
    """
    Merge a partial update over the accumulated fields.

    Rules, applied per key:
        - ``started_at`` is written only while unset.
        - booleans (``needs_more_info``) always take the incoming value.
        - empty / unknown / None incoming values never clear a stored value.
        - any other non-empty incoming value replaces the stored one.

    Args:
        existing: Current accumulated fields (not modified)
        incoming: Latest partial fields

    Returns:
        A new merged dict
    """
    merged = dict(existing)

    for key, value in incoming.items():
        if key == "started_at":
            if is_empty_value(merged.get(key)) and not is_empty_value(value):
                merged[key] = value
            continue

        if isinstance(value, bool):
            merged[key] = value
            continue

        if is_empty_value(value):
            continue

        merged[key] = value.strip() if isinstance(value, str) else value

    return merged


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConversationStore:
    """
    In-memory, per-conversation field store with:
    - sticky-field merge on every update
    - sliding idle expiry (every get/update pushes the deadline out)
    - thread-safe operations (concurrent requests, one background sweeper)

    Expired entries are evicted lazily on access and by the sweeper thread,
    so an idle conversation is gone after ``idle_timeout`` even between
    sweeps.

    Example:
        >>> store = ConversationStore(idle_timeout=1800)
        >>> store.update("conv-1", {"category": "Maintenance"})
        >>> store.update("conv-1", {"category": "", "location": "Dorm A"})
        >>> store.get("conv-1")["category"]
        'Maintenance'
    """

    def __init__(
        self,
        idle_timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], str] = _utc_now_iso,
        sweep_interval: float = ConversationDefaults.SWEEP_INTERVAL,
    ):
        """
        Args:
            idle_timeout: Seconds without access before eviction
            clock: Monotonic clock used for expiry (inject a fake in tests)
            wall_clock: Returns the ISO timestamp stamped as ``started_at``
            sweep_interval: Seconds between background sweeps
        """
        self.idle_timeout = (
            idle_timeout if idle_timeout is not None else ConversationDefaults.IDLE_TIMEOUT
        )
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._wall_clock = wall_clock
        self._lock = threading.Lock()
        # conversation_id -> {"data": Fields, "expires_at": float}
        self._items: Dict[str, Dict[str, Any]] = {}
        self._stop_event = threading.Event()
        self._sweeper: Optional[threading.Thread] = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def _live_item_unlocked(self, conversation_id: str) -> Optional[Dict[str, Any]]:
        item = self._items.get(conversation_id)
        if item is None:
            return None
        if item["expires_at"] <= self._clock():
            del self._items[conversation_id]
            logger.info(f"Conversation {conversation_id} expired after idle timeout")
            return None
        return item

    def _touch_unlocked(self, item: Dict[str, Any]) -> None:
        item["expires_at"] = self._clock() + self.idle_timeout

    def get(self, conversation_id: str) -> Fields:
        """Return a copy of the accumulated fields ({} if unknown) and reset the idle timer."""
        with self._lock:
            item = self._live_item_unlocked(conversation_id)
            if item is None:
                return {}
            self._touch_unlocked(item)
            return dict(item["data"])

    def update(self, conversation_id: str, partial: Fields) -> Fields:
        """
        Merge ``partial`` into the conversation, creating it if needed.

        Returns:
            A copy of the merged fields as stored
        """
        with self._lock:
            item = self._live_item_unlocked(conversation_id)
            existing = item["data"] if item else {}

            merged = merge_fields(existing, partial)
            if is_empty_value(merged.get("started_at")):
                merged["started_at"] = self._wall_clock()

            if item is None:
                item = {"data": merged, "expires_at": 0.0}
                self._items[conversation_id] = item
            else:
                item["data"] = merged
            self._touch_unlocked(item)

            logger.debug(
                f"Conversation {conversation_id} updated: incoming={partial} merged={merged}"
            )
            return dict(merged)

    def delete(self, conversation_id: str) -> bool:
        """Evict a conversation. Returns True if it existed."""
        with self._lock:
            removed = self._items.pop(conversation_id, None) is not None
        if removed:
            logger.info(f"Conversation {conversation_id} deleted")
        return removed

    def sweep_expired(self) -> int:
        """
        Delete every conversation whose idle deadline has passed.
        Returns how many entries were removed.
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, v in self._items.items() if v["expires_at"] <= now]
            for k in expired:
                del self._items[k]
        if expired:
            logger.info(f"Swept {len(expired)} idle conversation(s)")
        return len(expired)

    def start(self) -> None:
        """Start the background sweeper thread (idempotent)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._stop_event.clear()
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="conversation-sweeper", daemon=True
        )
        self._sweeper.start()

    def _sweep_loop(self) -> None:
        while not self._stop_event.wait(self.sweep_interval):
            try:
                self.sweep_expired()
            except Exception as e:
                logger.error(f"Conversation sweep failed: {e}", exc_info=True)

    def shutdown(self) -> None:
        """Stop the sweeper and drop all state."""
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout=self.sweep_interval)
            self._sweeper = None
        with self._lock:
            self._items.clear()


_store: Optional[ConversationStore] = None
_store_lock = threading.Lock()


def get_conversation_store() -> ConversationStore:
    """Process-wide store, created and started on first use."""
    global _store
    with _store_lock:
        if _store is None:
            _store = ConversationStore(
                idle_timeout=getattr(
                    settings,
                    "CONVERSATION_TIMEOUT_SECONDS",
                    ConversationDefaults.IDLE_TIMEOUT,
                )
            )
            _store.start()
        return _store
