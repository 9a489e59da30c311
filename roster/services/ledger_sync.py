# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Ledger synchronizer.

Mirrors committed claims and releases into the signup log and the schedule
grid. Runs strictly after the in-memory commit and never changes it: a
failed signup-log write raises LedgerSyncFailed, which the caller turns
into a warning for the requester, not a rollback.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from roster.core.config import settings
from roster.core.errors import LedgerSyncFailed, TabularStoreError
from roster.core.logging import get_logger
from roster.metrics.prometheus import LEDGER_SYNC_FAILURES
from roster.models.domain import ROLES, Claimant, EventDescriptor, RoleId
from roster.repositories.tabular_store import TabularStore

logger = get_logger(__name__)

LEDGER_WARNING = (
    "Your signup is saved, but the signup sheet could not be updated. "
    "An organizer has been notified."
)

# Signup log column layout (relative to the log range)
LOG_NAME, LOG_ROLE, LOG_ACTIVITY, LOG_RUN_ID, LOG_TIME, LOG_TIMESTAMP = range(6)


class LedgerSynchronizer:
    """Best-effort mirror of signup state into the tabular store."""

    def __init__(
        self,
        store: TabularStore,
        log_sheet: str | None = None,
        log_range: str | None = None,
        schedule_sheet: str | None = None,
        schedule_range: str | None = None,
    ) -> None:
        self._store = store
        self._log_sheet = log_sheet or settings.SIGNUP_LOG_SHEET
        self._log_range = log_range or settings.SIGNUP_LOG_RANGE
        self._schedule_sheet = schedule_sheet or settings.SCHEDULE_SHEET
        self._schedule_range = schedule_range or settings.SCHEDULE_RANGE
        self._run_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    # ── Commands ──

    async def record_claim(
        self,
        descriptor: EventDescriptor,
        role: RoleId,
        claimant: Claimant,
        displaced: Optional[Claimant] = None,
    ) -> None:
        """Append the signup record and fill the grid cell.

        The grid cell is written even when the signup log write fails.
        """
        async with self._serialized(descriptor.run_id):
            log_error: Optional[TabularStoreError] = None
            try:
                if displaced is not None:
                    await self._remove_log_record(descriptor.run_id, role, displaced)
                await self._store.append_row(self._log_range, [
                    claimant.display_name,
                    role.value.upper(),
                    descriptor.activity_name,
                    descriptor.run_id,
                    descriptor.scheduled_time,
                    datetime.now(timezone.utc).isoformat(),
                ])
            except TabularStoreError as exc:
                log_error = exc

            await self._write_grid(descriptor.run_id, role, claimant.display_name)
            if log_error is not None:
                raise self._failed("claim", descriptor.run_id, role, log_error) from log_error
        logger.info(
            "Ledger claim synced: run_id=%s, role=%s, user=%s",
            descriptor.run_id, role.value, claimant.display_name,
        )

    async def record_release(
        self,
        descriptor: EventDescriptor,
        role: RoleId,
        claimant: Claimant,
    ) -> None:
        """Remove the latest matching signup record and clear the grid cell."""
        async with self._serialized(descriptor.run_id):
            log_error: Optional[TabularStoreError] = None
            try:
                await self._remove_log_record(descriptor.run_id, role, claimant)
            except TabularStoreError as exc:
                log_error = exc

            await self._write_grid(descriptor.run_id, role, "")
            if log_error is not None:
                raise self._failed("release", descriptor.run_id, role, log_error) from log_error
        logger.info(
            "Ledger release synced: run_id=%s, role=%s, user=%s",
            descriptor.run_id, role.value, claimant.display_name,
        )

    def active_runs(self) -> list[str]:
        """Run ids with a ledger write in flight or queued."""
        return list(self._run_locks)

    # ── Internal ──

    @asynccontextmanager
    async def _serialized(self, run_id: str):
        """Hold the per-run lock; the lock is dropped once nobody uses it."""
        lock = self._run_locks.setdefault(run_id, asyncio.Lock())
        self._lock_users[run_id] = self._lock_users.get(run_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[run_id] -= 1
            if not self._lock_users[run_id]:
                del self._lock_users[run_id]
                del self._run_locks[run_id]

    async def _remove_log_record(self, run_id: str, role: RoleId, claimant: Claimant) -> None:
        rows = await self._store.find_rows(self._log_range, {
            LOG_NAME: claimant.display_name,
            LOG_ROLE: role.value.upper(),
            LOG_RUN_ID: run_id,
        })
        if not rows:
            logger.warning(
                "No signup record to remove: run_id=%s, role=%s, user=%s",
                run_id, role.value, claimant.display_name,
            )
            return
        latest = max(rows)
        await self._store.delete_rows(self._log_sheet, latest, latest)

    async def _write_grid(self, run_id: str, role: RoleId, value: str) -> None:
        """Grid updates are best-effort; a missing run row is only logged."""
        column = ROLES[role].column
        try:
            rows = await self._store.find_rows(self._schedule_range, {0: run_id})
            if not rows:
                logger.warning("Run not found in schedule grid: run_id=%s", run_id)
                return
            await self._store.write_cell(self._schedule_sheet, column, rows[0], value)
        except TabularStoreError as exc:
            LEDGER_SYNC_FAILURES.labels(operation="grid").inc()
            logger.warning(
                "Schedule grid update failed: run_id=%s, role=%s, error=%s",
                run_id, role.value, exc,
            )

    def _failed(
        self, operation: str, run_id: str, role: RoleId, exc: Exception
    ) -> LedgerSyncFailed:
        LEDGER_SYNC_FAILURES.labels(operation=operation).inc()
        logger.error(
            "Ledger %s failed: run_id=%s, role=%s, error=%s",
            operation, run_id, role.value, exc,
        )
        return LedgerSyncFailed(LEDGER_WARNING)
