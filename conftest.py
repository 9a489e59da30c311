# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Shared test doubles and wiring for the roster service tests.
"""

import asyncio
from typing import Any, Optional

import pytest

from roster.core.errors import ChatMessageNotFound, ChatPlatformError, TabularStoreError
from roster.models.domain import AnnouncementMessage, Claimant
from roster.repositories.event_repository import EventRepository
from roster.repositories.history_repository import HistoryRepository
from roster.repositories.tabular_store import InMemoryTabularStore
from roster.services.chat_client import ChatClient, flatten_message
from roster.services.controls import ControlReconciler
from roster.services.event_registry import EventRegistry
from roster.services.ledger_sync import LedgerSynchronizer
from roster.services.notifier import GroupCompletionNotifier
from roster.services.signup_service import SignupService
from roster.services.state_machine import RoleClaimStateMachine

EVENT_KEY = "1001"
CHANNEL_ID = "chan-1"
FORMED_CHANNEL_ID = "formed-groups"
RUN_ID = "RUN-42"

ANNOUNCEMENT = (
    "**Mythic+ Signup**\n"
    "**Activity:** Halls of Valor\n"
    "**Date/Time:** 2026-10-20 19:00\n"
    "**Run ID:** RUN-42\n"
)

ALICE = Claimant(user_id="u-alice", display_name="Alice")
BOB = Claimant(user_id="u-bob", display_name="Bob")
CAROL = Claimant(user_id="u-carol", display_name="Carol")
DAVE = Claimant(user_id="u-dave", display_name="Dave")
ERIN = Claimant(user_id="u-erin", display_name="Erin")
ADMIN = Claimant(user_id="u-admin", display_name="Admin")


class FakeChatClient(ChatClient):
    """Records every call; announcements live in ``messages``."""

    def __init__(self) -> None:
        self.messages: dict[str, AnnouncementMessage] = {}
        self.edits: list[tuple[str, str, list[dict[str, Any]]]] = []
        self.posts: list[dict[str, Any]] = []
        self.fetches: list[str] = []
        self.fetch_delay = 0.0
        self.fail_edit = False
        self.fail_post = False
        self._next_id = 5000

    def add_announcement(
        self, message_id: str, text: str, channel_id: str = CHANNEL_ID, footer: Optional[str] = None
    ) -> None:
        self.messages[message_id] = AnnouncementMessage(
            message_id=message_id, channel_id=channel_id, text=text, footer=footer
        )

    async def fetch_message(self, channel_id: str, message_id: str) -> AnnouncementMessage:
        self.fetches.append(message_id)
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if message_id not in self.messages:
            raise ChatMessageNotFound(f"Unknown message {message_id}")
        return self.messages[message_id]

    async def edit_controls(
        self, channel_id: str, message_id: str, components: list[dict[str, Any]]
    ) -> None:
        if self.fail_edit:
            raise ChatPlatformError("Missing Permissions")
        self.edits.append((channel_id, message_id, components))

    async def post_message(
        self,
        channel_id: str,
        content: Optional[str] = None,
        embed: Optional[dict[str, Any]] = None,
        components: Optional[list[dict[str, Any]]] = None,
    ) -> str:
        if self.fail_post:
            raise ChatPlatformError("Discord unavailable")
        self._next_id += 1
        message_id = str(self._next_id)
        self.posts.append({
            "id": message_id,
            "channel_id": channel_id,
            "content": content,
            "embed": embed,
            "components": components,
        })
        payload = {"id": message_id, "content": content, "embeds": [embed] if embed else []}
        self.messages[message_id] = flatten_message(payload, channel_id)
        return message_id

    def last_controls(self) -> dict[str, bool]:
        """custom_id -> disabled, from the most recent control edit."""
        _, _, components = self.edits[-1]
        return {b["custom_id"]: b["disabled"] for b in components[0]["components"]}


class FailingStore(InMemoryTabularStore):
    """In-memory store whose writes can be switched off."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.fail_appends = False
        self.fail_reads = False
        self.fail_cell_writes = False
        self.fail_deletes = False

    async def append_row(self, range_name, values):
        if self.fail_appends:
            raise TabularStoreError("quota exceeded")
        await super().append_row(range_name, values)

    async def read_range(self, range_name):
        if self.fail_reads:
            raise TabularStoreError("quota exceeded")
        return await super().read_range(range_name)

    async def write_cell(self, sheet, column, row, value):
        if self.fail_cell_writes:
            raise TabularStoreError("protected range")
        await super().write_cell(sheet, column, row, value)

    async def delete_rows(self, sheet, start_row, end_row):
        if self.fail_deletes:
            raise TabularStoreError("quota exceeded")
        await super().delete_rows(sheet, start_row, end_row)


def seeded_store() -> FailingStore:
    return FailingStore({
        "Run_Schedule": [
            ["Run ID", "Dungeon", "Key", "Date", "Time", "Tank", "Healer", "DPS 1", "DPS 2", "Notes", "Key Holder"],
            [RUN_ID, "Halls of Valor", "12"],
        ],
        "Form Responses 1": [
            ["Timestamp", "Contact", "Dungeon", "Key Level", "Notes", "Preferred Time", "Run ID"],
            ["2026-10-18 12:00", "alice#0001", "Halls of Valor", "+12", "Bring lust", "Tue 8pm", RUN_ID],
        ],
    })


class Harness:
    """A fully wired SignupService over in-memory collaborators."""

    def __init__(self, override_user_ids=(), debounce: float = 0.05) -> None:
        self.chat = FakeChatClient()
        self.chat.add_announcement(EVENT_KEY, ANNOUNCEMENT)
        self.store = seeded_store()
        self.history = HistoryRepository(max_size=1000)
        self.event_repo = EventRepository(max_events=50, ttl_hours=0)
        self.registry = EventRegistry(event_repo=self.event_repo, chat_client=self.chat)
        self.machine = RoleClaimStateMachine(override_user_ids=override_user_ids)
        self.ledger = LedgerSynchronizer(
            store=self.store,
            log_sheet="Signup Log",
            log_range="Signup Log!A:F",
            schedule_sheet="Run_Schedule",
            schedule_range="Run_Schedule!A:Z",
        )
        self.reconciler = ControlReconciler(chat_client=self.chat)
        self.notifier = GroupCompletionNotifier(
            store=self.store,
            chat_client=self.chat,
            history_repo=self.history,
            channel_id=FORMED_CHANNEL_ID,
            debounce_seconds=debounce,
            form_range="Form Responses 1!A:G",
            form_run_id_column=6,
            schedule_range="Run_Schedule!A:Z",
        )
        self.service = SignupService(
            registry=self.registry,
            state_machine=self.machine,
            ledger=self.ledger,
            reconciler=self.reconciler,
            notifier=self.notifier,
            history_repo=self.history,
            chat_client=self.chat,
        )

    async def claim(self, role: str, who: Claimant, event_key: str = EVENT_KEY):
        return await self.service.claim(event_key, CHANNEL_ID, role, who)

    async def release(self, who: Claimant, role: Optional[str] = None, event_key: str = EVENT_KEY):
        return await self.service.release(event_key, CHANNEL_ID, who, role)

    def formed_posts(self) -> list[dict[str, Any]]:
        return [p for p in self.chat.posts if p["channel_id"] == FORMED_CHANNEL_ID]


@pytest.fixture
def harness() -> Harness:
    return Harness()


@pytest.fixture
def override_harness() -> Harness:
    return Harness(override_user_ids=(ADMIN.user_id,))
