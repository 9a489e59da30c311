# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Signup orchestration.

Request flow for claims and releases:
registry lookup, state-machine commit, notifier arm/cancel, then the
best-effort side effects (ledger, controls). Nothing awaited after the
commit can change its outcome.
"""

from typing import Any, Awaitable, Optional

from roster.core.errors import LedgerSyncFailed, RosterError, SignupRejected
from roster.core.logging import get_logger
from roster.metrics.prometheus import CLAIMS_TOTAL, REJECTIONS_TOTAL, RELEASES_TOTAL
from roster.models.domain import ROLES, Claimant, SignupEvent
from roster.repositories.history_repository import HistoryRepository
from roster.services.chat_client import ChatClient, flatten_message
from roster.services.controls import ANY_ROLE, SIGNUP, ControlReconciler, parse_custom_id
from roster.services.event_registry import EventRegistry
from roster.services.ledger_sync import LedgerSynchronizer
from roster.services.notifier import GroupCompletionNotifier
from roster.services.state_machine import RoleClaimStateMachine

logger = get_logger(__name__)

REPLY_PREFIX: dict[str, str] = {
    "event_not_active": "⚠️",
    "malformed_event": "⚠️",
    "unknown_control": "⚠️",
}


class SignupService:
    """Business logic for claiming and releasing roles."""

    def __init__(
        self,
        registry: EventRegistry,
        state_machine: RoleClaimStateMachine,
        ledger: LedgerSynchronizer,
        reconciler: ControlReconciler,
        notifier: GroupCompletionNotifier,
        history_repo: HistoryRepository,
        chat_client: ChatClient,
    ) -> None:
        self._registry = registry
        self._machine = state_machine
        self._ledger = ledger
        self._controls = reconciler
        self._notifier = notifier
        self._history = history_repo
        self._chat = chat_client

    # ── Commands ──

    async def claim(
        self,
        event_key: str,
        channel_id: str,
        role: str,
        claimant: Claimant,
    ) -> dict[str, Any]:
        """Claim ``role``. Raises EventNotActive, MalformedEvent or a SignupRejected."""
        event = await self._registry.get(event_key, channel_id)
        try:
            outcome = self._machine.claim(event, role, claimant)
        except SignupRejected as exc:
            self._rejected(exc, event, claimant)
            raise
        armed = self._notifier.arm(event) if outcome.completed else False

        CLAIMS_TOTAL.labels(role=outcome.role.value).inc()
        self._history.record_event("claim", event.run_id, {
            "event_key": event_key,
            "role": outcome.role.value,
            "user_id": claimant.user_id,
            "display_name": claimant.display_name,
            "displaced": outcome.displaced.display_name if outcome.displaced else None,
        })
        logger.info(
            "Role claimed: event=%s, run_id=%s, role=%s, user=%s",
            event_key, event.run_id, outcome.role.value, claimant.display_name,
        )

        warning = await self._sync(
            self._ledger.record_claim(
                event.descriptor, outcome.role, claimant, displaced=outcome.displaced
            )
        )
        await self._controls.reconcile(event)

        label = ROLES[outcome.role].label.upper()
        return self._result(
            "claimed",
            event,
            outcome.role.value,
            claimant,
            f"✅ You signed up as **{label}** for {event.descriptor.activity_name}.",
            warning,
            notification_armed=armed,
        )

    async def release(
        self,
        event_key: str,
        channel_id: str,
        claimant: Claimant,
        role: Optional[str] = None,
    ) -> dict[str, Any]:
        """Release one held role (the first in catalog order unless ``role`` is given)."""
        event = await self._registry.get(event_key, channel_id)
        try:
            outcome = self._machine.release(event, claimant, role)
        except SignupRejected as exc:
            self._rejected(exc, event, claimant)
            raise
        cancelled = self._notifier.cancel(event.run_id)

        RELEASES_TOTAL.labels(role=outcome.role.value).inc()
        self._history.record_event("release", event.run_id, {
            "event_key": event_key,
            "role": outcome.role.value,
            "user_id": claimant.user_id,
            "display_name": claimant.display_name,
        })
        logger.info(
            "Role released: event=%s, run_id=%s, role=%s, user=%s",
            event_key, event.run_id, outcome.role.value, claimant.display_name,
        )

        warning = await self._sync(
            self._ledger.record_release(event.descriptor, outcome.role, claimant)
        )
        await self._controls.reconcile(event)

        label = ROLES[outcome.role].label.upper()
        return self._result(
            "released",
            event,
            outcome.role.value,
            claimant,
            f"❌ Your signup for **{label}** has been removed.",
            warning,
            notification_cancelled=cancelled,
        )

    async def handle_interaction(
        self,
        custom_id: str,
        channel_id: str,
        user_id: str,
        display_name: str,
    ) -> dict[str, Any]:
        """Button press entry point. Always returns an ephemeral reply."""
        try:
            action, role, event_key = parse_custom_id(custom_id)
        except ValueError:
            logger.info("Ignored unknown control: custom_id=%s", custom_id)
            return self._reply(False, "This button is not recognised.", error="unknown_control")

        claimant = Claimant(user_id=user_id, display_name=display_name)
        try:
            if action == SIGNUP:
                result = await self.claim(event_key, channel_id, role, claimant)
            else:
                result = await self.release(
                    event_key, channel_id, claimant, None if role == ANY_ROLE else role
                )
        except RosterError as exc:
            return self._reply(False, exc.message, error=exc.code)
        return self._reply(
            True, result["message"], warning=result["warning"], result=result
        )

    async def announce(
        self,
        channel_id: str,
        activity_name: str,
        scheduled_time: str,
        run_id: str,
        description: Optional[str] = None,
    ) -> dict[str, Any]:
        """Post a new signup announcement and start tracking it."""
        embed: dict[str, Any] = {
            "title": f"\U0001f5dd {activity_name}",
            "fields": [
                {"name": "Activity", "value": activity_name, "inline": True},
                {"name": "Date/Time", "value": scheduled_time, "inline": True},
                {"name": "Run ID", "value": run_id, "inline": True},
            ],
        }
        if description:
            embed["description"] = description
        # Parse the announcement exactly as rehydration will.
        flattened = flatten_message({"embeds": [embed]}, channel_id)
        descriptor = self._registry.parse(flattened)

        message_id = await self._chat.post_message(channel_id, embed=embed)
        event = self._registry.register(message_id, channel_id, descriptor)
        await self._controls.reconcile(event)
        return self.describe(event)

    # ── Queries ──

    def get_event(self, event_key: str) -> dict[str, Any]:
        event = self._registry.peek(event_key)
        if event is None:
            raise KeyError(f"Event '{event_key}' is not loaded")
        return self.describe(event)

    def list_events(self) -> list[dict[str, Any]]:
        return [self.describe(e) for e in self._registry.list_events()]

    def describe(self, event: SignupEvent) -> dict[str, Any]:
        return {
            "event_key": event.event_key,
            "channel_id": event.channel_id,
            "activity_name": event.descriptor.activity_name,
            "scheduled_time": event.descriptor.scheduled_time,
            "run_id": event.run_id,
            "claims": event.snapshot(),
            "complete": event.is_complete(),
            "notification_pending": self._notifier.is_pending(event.run_id),
            "notified": self._notifier.is_notified(event.run_id),
        }

    # ── Internal ──

    async def _sync(self, operation: Awaitable[None]) -> Optional[str]:
        try:
            await operation
        except LedgerSyncFailed as exc:
            return exc.message
        return None

    def _rejected(self, exc: SignupRejected, event: SignupEvent, claimant: Claimant) -> None:
        REJECTIONS_TOTAL.labels(reason=exc.code).inc()
        logger.info(
            "Signup rejected: event=%s, user=%s, reason=%s",
            event.event_key, claimant.display_name, exc.code,
        )

    def _result(
        self,
        status: str,
        event: SignupEvent,
        role: str,
        claimant: Claimant,
        message: str,
        warning: Optional[str],
        **extra: Any,
    ) -> dict[str, Any]:
        result = {
            "status": status,
            "event_key": event.event_key,
            "run_id": event.run_id,
            "role": role,
            "user_id": claimant.user_id,
            "display_name": claimant.display_name,
            "message": message,
            "warning": warning,
            "warning_code": LedgerSyncFailed.code if warning else None,
            "claims": event.snapshot(),
        }
        result.update(extra)
        return result

    def _reply(
        self,
        ok: bool,
        content: str,
        error: Optional[str] = None,
        warning: Optional[str] = None,
        result: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        if not ok:
            prefix = REPLY_PREFIX.get(error or "", "❌")
            content = f"{prefix} {content}"
        elif warning:
            content = f"{content}\n⚠️ {warning}"
        return {
            "ok": ok,
            "content": content,
            "ephemeral": True,
            "error": error,
            "warning": warning,
            "result": result,
        }
