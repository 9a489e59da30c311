# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Group-completion notifier.

When an event's roles are all filled, a delayed "group formed" post is
armed for its run. Any release before the delay elapses cancels it. Each
run is announced at most once until reset.
"""

import asyncio
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from roster.core.config import settings
from roster.core.errors import ChatPlatformError, TabularStoreError
from roster.core.logging import get_logger
from roster.metrics.prometheus import (
    NOTIFICATIONS_ARMED,
    NOTIFICATIONS_CANCELLED,
    NOTIFICATIONS_SENT,
    PENDING_NOTIFICATIONS,
)
from roster.models.domain import ROLE_CATALOG, SignupEvent
from roster.repositories.history_repository import HistoryRepository
from roster.repositories.tabular_store import TabularStore
from roster.services.chat_client import ChatClient

logger = get_logger(__name__)

FORMED_COLOR = 0x2ECC71

# Form responses column layout
FORM_TIMESTAMP, FORM_CONTACT, FORM_ACTIVITY, FORM_KEY_LEVEL, FORM_NOTES, FORM_PREF_TIME = range(6)


@dataclass
class PendingNotification:
    run_id: str
    event_key: str
    armed_at: datetime
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    def cancel(self) -> bool:
        """Idempotent: cancelling a finished or cancelled task is a no-op."""
        if self.task is None or self.task.done():
            return False
        self.task.cancel()
        return True


def _cell(row: list[str], index: int, default: str) -> str:
    if index < len(row) and row[index].strip():
        return row[index].strip()
    return default


def compose_notice(event: SignupEvent, form_row: Optional[list[str]]) -> dict[str, Any]:
    """Build the "group formed" embed from live claims and form details."""
    row = form_row or []
    title = _cell(row, FORM_ACTIVITY, event.descriptor.activity_name or "Unknown Dungeon")
    fields = [
        {"name": "Key Level", "value": _cell(row, FORM_KEY_LEVEL, "N/A"), "inline": True},
        {"name": "Preferred Time", "value": _cell(row, FORM_PREF_TIME, event.descriptor.scheduled_time or "N/A"), "inline": True},
        {"name": "Contact", "value": _cell(row, FORM_CONTACT, "N/A"), "inline": True},
        {"name": "Notes", "value": _cell(row, FORM_NOTES, "None"), "inline": False},
    ]
    for spec in ROLE_CATALOG:
        holder = event.claims.get(spec.id)
        fields.append({
            "name": f"{spec.emoji} {spec.label}".strip(),
            "value": holder.display_name if holder else "TBD",
            "inline": True,
        })
    return {
        "title": f"✅ Group Formed: {title}",
        "fields": fields,
        "footer": {"text": f"Run ID: {event.run_id}"},
        "color": FORMED_COLOR,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class GroupCompletionNotifier:
    """Debounced, cancellable, once-per-run group-formed notifications."""

    def __init__(
        self,
        store: TabularStore,
        chat_client: ChatClient,
        history_repo: HistoryRepository,
        channel_id: str | None = None,
        debounce_seconds: float | None = None,
        form_range: str | None = None,
        form_run_id_column: int | None = None,
        schedule_range: str | None = None,
        max_notified: int | None = None,
    ) -> None:
        self._store = store
        self._chat = chat_client
        self._history = history_repo
        self._channel_id = channel_id if channel_id is not None else settings.FORMED_GROUPS_CHANNEL_ID
        self._debounce = (
            settings.NOTIFY_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self._form_range = form_range or settings.FORM_RESPONSES_RANGE
        self._form_run_id_column = (
            settings.FORM_RUN_ID_COLUMN if form_run_id_column is None else form_run_id_column
        )
        self._schedule_range = schedule_range or settings.SCHEDULE_RANGE
        self._pending: dict[str, PendingNotification] = {}
        self._max_notified = max_notified or settings.MAX_ACTIVE_EVENTS
        # Oldest runs are forgotten first once the bound is reached.
        self._notified: OrderedDict[str, None] = OrderedDict()

    # ── Queries ──

    def is_pending(self, run_id: str) -> bool:
        return run_id in self._pending

    def is_notified(self, run_id: str) -> bool:
        return run_id in self._notified

    def pending(self) -> list[dict[str, str]]:
        return [
            {"run_id": p.run_id, "event_key": p.event_key, "armed_at": p.armed_at.isoformat()}
            for p in self._pending.values()
        ]

    # ── Commands ──

    def arm(self, event: SignupEvent) -> bool:
        """Arm a delayed notice if the event is complete and not yet announced.

        Must be called from the event loop, right after a committed claim.
        """
        run_id = event.run_id
        if not event.is_complete() or run_id in self._pending or run_id in self._notified:
            return False

        pending = PendingNotification(
            run_id=run_id,
            event_key=event.event_key,
            armed_at=datetime.now(timezone.utc),
        )
        self._pending[run_id] = pending
        pending.task = asyncio.get_running_loop().create_task(
            self._fire_after_delay(pending, event), name=f"group-formed-{run_id}"
        )
        NOTIFICATIONS_ARMED.inc()
        PENDING_NOTIFICATIONS.set(len(self._pending))
        self._history.record_event("notification_armed", run_id, {"event_key": event.event_key})
        logger.info("Group notification armed: run_id=%s, delay=%.1fs", run_id, self._debounce)
        return True

    def cancel(self, run_id: str) -> bool:
        """Drop the pending notice for ``run_id``. No-op if none is pending."""
        pending = self._pending.pop(run_id, None)
        if pending is None:
            return False
        pending.cancel()
        NOTIFICATIONS_CANCELLED.inc()
        PENDING_NOTIFICATIONS.set(len(self._pending))
        self._history.record_event("notification_cancelled", run_id, {"event_key": pending.event_key})
        logger.info("Group notification cancelled: run_id=%s", run_id)
        return True

    def reset(self, run_id: str) -> bool:
        """Allow ``run_id`` to be announced again. Also cancels a pending notice."""
        self.cancel(run_id)
        if run_id not in self._notified:
            return False
        self._notified.pop(run_id, None)
        logger.info("Group notification reset: run_id=%s", run_id)
        return True

    async def shutdown(self) -> None:
        tasks = [p.task for p in self._pending.values() if p.task is not None]
        for pending in list(self._pending.values()):
            pending.cancel()
        self._pending.clear()
        PENDING_NOTIFICATIONS.set(0)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Internal ──

    async def _fire_after_delay(self, pending: PendingNotification, event: SignupEvent) -> None:
        await asyncio.sleep(self._debounce)

        # Past this point the notice can no longer be cancelled.
        if self._pending.get(pending.run_id) is not pending:
            return
        del self._pending[pending.run_id]
        PENDING_NOTIFICATIONS.set(len(self._pending))
        self._mark_notified(pending.run_id)
        await self._send(event)

    def _mark_notified(self, run_id: str) -> None:
        self._notified[run_id] = None
        self._notified.move_to_end(run_id)
        while len(self._notified) > self._max_notified:
            self._notified.popitem(last=False)

    async def _send(self, event: SignupEvent) -> None:
        run_id = event.run_id
        form_row = await self._find_form_row(run_id)
        embed = compose_notice(event, form_row)

        try:
            await self._chat.post_message(self._channel_id, embed=embed)
        except ChatPlatformError as exc:
            self._notified.pop(run_id, None)
            NOTIFICATIONS_SENT.labels(status="failed").inc()
            logger.error("Group notification failed: run_id=%s, error=%s", run_id, exc)
            return

        NOTIFICATIONS_SENT.labels(status="sent").inc()
        self._history.record_event("notification_sent", run_id, {"members": event.snapshot()})
        logger.info("Posted formed group: run_id=%s, channel=%s", run_id, self._channel_id)
        await self._record_formed(event)

    async def _find_form_row(self, run_id: str) -> Optional[list[str]]:
        try:
            rows = await self._store.read_range(self._form_range)
        except TabularStoreError as exc:
            logger.warning("Form responses unavailable: run_id=%s, error=%s", run_id, exc)
            return None
        for row in rows:
            if self._form_run_id_column < len(row) and row[self._form_run_id_column] == run_id:
                return row
        logger.info("No form response for run: run_id=%s", run_id)
        return None

    async def _record_formed(self, event: SignupEvent) -> None:
        members = [
            event.claims[spec.id].display_name if spec.id in event.claims else ""
            for spec in ROLE_CATALOG
        ]
        try:
            await self._store.append_row(self._schedule_range, [f"Formed: {event.run_id}", *members])
        except TabularStoreError as exc:
            logger.warning("Formed-group row not recorded: run_id=%s, error=%s", event.run_id, exc)
