# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error taxonomy for the signup coordinator.

Registry failures and state-machine rejections are surfaced to the requester.
Ledger and control failures are recovered locally and never reach the caller
as exceptions.
"""


class RosterError(Exception):
    """Base class. ``code`` is a stable machine-readable identifier."""

    code = "roster_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


# ── Registry ──

class EventNotActive(RosterError):
    code = "event_not_active"


class MalformedEvent(RosterError):
    code = "malformed_event"


# ── State machine rejections (expected, user-facing) ──

class SignupRejected(RosterError):
    code = "signup_rejected"


class UnknownRole(SignupRejected):
    code = "unknown_role"


class RoleTaken(SignupRejected):
    code = "role_taken"


class AlreadySignedUp(SignupRejected):
    code = "already_signed_up"


class IneligibleForAuxiliary(SignupRejected):
    code = "ineligible_for_auxiliary"


class NotSignedUp(SignupRejected):
    code = "not_signed_up"


# ── Best-effort side effects ──

class LedgerSyncFailed(RosterError):
    code = "ledger_sync_failed"


class ControlReconciliationFailed(RosterError):
    code = "control_reconciliation_failed"


# ── Collaborators ──

class ChatPlatformError(RosterError):
    code = "chat_platform_error"


class ChatMessageNotFound(ChatPlatformError):
    code = "chat_message_not_found"


class TabularStoreError(RosterError):
    code = "tabular_store_error"


class DescriptorExtractionError(RosterError):
    code = "descriptor_extraction_error"

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(
            "Announcement is missing required field(s): " + ", ".join(self.missing_fields)
        )
