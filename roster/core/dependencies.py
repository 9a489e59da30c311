# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repositories and services.
"""

from roster.core.config import settings
from roster.core.logging import get_logger
from roster.repositories.event_repository import EventRepository
from roster.repositories.history_repository import HistoryRepository
from roster.repositories.tabular_store import InMemoryTabularStore, TabularStore
from roster.services.chat_client import DiscordChatClient
from roster.services.controls import ControlReconciler
from roster.services.event_registry import EventRegistry
from roster.services.ledger_sync import LedgerSynchronizer
from roster.services.notifier import GroupCompletionNotifier
from roster.services.sheets_client import GoogleSheetsStore
from roster.services.signup_service import SignupService
from roster.services.state_machine import RoleClaimStateMachine

logger = get_logger(__name__)


def _build_store() -> TabularStore:
    if settings.SHEET_ID:
        return GoogleSheetsStore()
    logger.warning("SHEET_ID not set, using in-memory tabular store")
    return InMemoryTabularStore()


# ── Singleton collaborators and repositories ──
_chat_client = DiscordChatClient()
_tabular_store = _build_store()
_event_repo = EventRepository()
_history_repo = HistoryRepository()

# ── Service instances (with injected dependencies) ──
_registry = EventRegistry(event_repo=_event_repo, chat_client=_chat_client)
_state_machine = RoleClaimStateMachine(override_user_ids=settings.OVERRIDE_USER_IDS)
_ledger = LedgerSynchronizer(store=_tabular_store)
_reconciler = ControlReconciler(chat_client=_chat_client)
_notifier = GroupCompletionNotifier(
    store=_tabular_store,
    chat_client=_chat_client,
    history_repo=_history_repo,
)
_signup_service = SignupService(
    registry=_registry,
    state_machine=_state_machine,
    ledger=_ledger,
    reconciler=_reconciler,
    notifier=_notifier,
    history_repo=_history_repo,
    chat_client=_chat_client,
)


# ── FastAPI dependency functions ──
def get_signup_service() -> SignupService:
    return _signup_service


def get_notifier() -> GroupCompletionNotifier:
    return _notifier


def get_registry() -> EventRegistry:
    return _registry


def get_history_repo() -> HistoryRepository:
    return _history_repo
