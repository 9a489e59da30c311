# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Live signup events keyed by announcement id.
Bounded LRU with an idle TTL. Losing an entry is fine: the registry
rebuilds it from the announcement.
"""

from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from typing import Optional

from roster.core.config import settings
from roster.models.domain import SignupEvent


class EventRepository:
    """In-memory event storage with LRU + idle-TTL eviction."""

    def __init__(
        self,
        max_events: int | None = None,
        ttl_hours: float | None = None,
    ) -> None:
        self._store: "OrderedDict[str, SignupEvent]" = OrderedDict()
        self._max_events = max_events or settings.MAX_ACTIVE_EVENTS
        ttl = settings.EVENT_TTL_HOURS if ttl_hours is None else ttl_hours
        self._ttl = timedelta(hours=ttl)

    # ── Read ──

    def get(self, event_key: str) -> Optional[SignupEvent]:
        """Return the event and mark it recently used, or None if absent/expired."""
        self.evict_expired()
        event = self._store.get(event_key)
        if event is None:
            return None
        event.last_access = datetime.now(timezone.utc)
        self._store.move_to_end(event_key)
        return event

    def peek(self, event_key: str) -> Optional[SignupEvent]:
        return self._store.get(event_key)

    def get_all(self) -> list[SignupEvent]:
        return list(self._store.values())

    def exists(self, event_key: str) -> bool:
        return event_key in self._store

    def count(self) -> int:
        return len(self._store)

    # ── Write ──

    def save(self, event: SignupEvent) -> list[str]:
        """Store ``event``; returns the keys evicted to stay within bounds."""
        self._store[event.event_key] = event
        self._store.move_to_end(event.event_key)
        evicted: list[str] = []
        while len(self._store) > self._max_events:
            key, _ = self._store.popitem(last=False)
            evicted.append(key)
        return evicted

    def delete(self, event_key: str) -> Optional[SignupEvent]:
        return self._store.pop(event_key, None)

    def evict_expired(self) -> list[str]:
        if self._ttl.total_seconds() <= 0:
            return []
        cutoff = datetime.now(timezone.utc) - self._ttl
        expired = [k for k, e in self._store.items() if e.last_access <= cutoff]
        for key in expired:
            del self._store[key]
        return expired

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._store.clear()
