# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Event registry.

Owns the live SignupEvent per announcement. The in-memory copy is only a
cache: a missing entry is rebuilt from the announcement text. Rehydration
is serialized per event key so concurrent requests share one fetch.
"""

import asyncio
from typing import Callable, Optional

from roster.core.errors import (
    ChatPlatformError,
    DescriptorExtractionError,
    EventNotActive,
    MalformedEvent,
)
from roster.core.logging import get_logger
from roster.metrics.prometheus import ACTIVE_EVENTS, REHYDRATIONS_TOTAL
from roster.models.domain import AnnouncementMessage, EventDescriptor, SignupEvent
from roster.repositories.event_repository import EventRepository
from roster.services.chat_client import ChatClient
from roster.services.extractor import extract_descriptor

logger = get_logger(__name__)

Extractor = Callable[..., EventDescriptor]


class EventRegistry:
    """Lookup-or-rehydrate access to signup events."""

    def __init__(
        self,
        event_repo: EventRepository,
        chat_client: ChatClient,
        extractor: Extractor = extract_descriptor,
    ) -> None:
        self._events = event_repo
        self._chat = chat_client
        self._extract = extractor
        self._locks: dict[str, asyncio.Lock] = {}

    async def get(self, event_key: str, channel_id: str) -> SignupEvent:
        """Return the live event, rebuilding it from the announcement if needed."""
        for key in self._events.evict_expired():
            self._locks.pop(key, None)
            logger.info("Event expired: event=%s", key)
        event = self._events.get(event_key)
        if event is not None:
            return event

        lock = self._locks.setdefault(event_key, asyncio.Lock())
        async with lock:
            # Another request may have rehydrated while we waited.
            event = self._events.get(event_key)
            if event is not None:
                return event
            event = await self._rehydrate(event_key, channel_id)
            self._store(event)
            return event

    async def _rehydrate(self, event_key: str, channel_id: str) -> SignupEvent:
        try:
            message: AnnouncementMessage = await self._chat.fetch_message(channel_id, event_key)
        except ChatPlatformError as exc:
            REHYDRATIONS_TOTAL.labels(outcome="not_active").inc()
            logger.info("Rehydration failed: event=%s, reason=%s", event_key, exc)
            raise EventNotActive("This event is no longer active.") from exc

        try:
            descriptor = self.parse(message)
        except DescriptorExtractionError as exc:
            REHYDRATIONS_TOTAL.labels(outcome="malformed").inc()
            logger.warning(
                "Announcement could not be parsed: event=%s, missing=%s",
                event_key, exc.missing_fields,
            )
            raise MalformedEvent(
                "This event's announcement is missing details needed for signup."
            ) from exc

        REHYDRATIONS_TOTAL.labels(outcome="ok").inc()
        logger.info(
            "Event rehydrated: event=%s, run_id=%s, activity=%s",
            event_key, descriptor.run_id, descriptor.activity_name,
        )
        return SignupEvent(event_key=event_key, channel_id=channel_id, descriptor=descriptor)

    def parse(self, message: AnnouncementMessage) -> EventDescriptor:
        """Run the extractor on an announcement. Raises DescriptorExtractionError."""
        return self._extract(message.text, message.footer)

    def register(
        self, event_key: str, channel_id: str, descriptor: EventDescriptor
    ) -> SignupEvent:
        """Start tracking a freshly posted announcement."""
        event = SignupEvent(event_key=event_key, channel_id=channel_id, descriptor=descriptor)
        self._store(event)
        logger.info("Event registered: event=%s, run_id=%s", event_key, descriptor.run_id)
        return event

    def _store(self, event: SignupEvent) -> None:
        for key in self._events.save(event):
            self._locks.pop(key, None)
            logger.info("Event evicted: event=%s", key)
        ACTIVE_EVENTS.set(self._events.count())

    # ── Queries / admin ──

    def peek(self, event_key: str) -> Optional[SignupEvent]:
        return self._events.peek(event_key)

    def list_events(self) -> list[SignupEvent]:
        return self._events.get_all()

    def evict(self, event_key: str) -> bool:
        removed = self._events.delete(event_key) is not None
        self._locks.pop(event_key, None)
        ACTIVE_EVENTS.set(self._events.count())
        return removed

    def count(self) -> int:
        return self._events.count()
