# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Control reconciliation.

Projects the claims of an event onto the announcement's buttons and pushes
the result to the chat platform. Rendering failures never affect signup
state: they are logged and counted, then dropped.
"""

from typing import Any

from pydantic import BaseModel

from roster.core.errors import ChatPlatformError, ControlReconciliationFailed
from roster.core.logging import get_logger
from roster.metrics.prometheus import CONTROL_UPDATE_FAILURES
from roster.models.domain import ROLE_ALIASES, ROLES, RoleId, SignupEvent
from roster.services.chat_client import ChatClient

logger = get_logger(__name__)

# Discord component constants
ACTION_ROW, BUTTON = 1, 2
STYLE_PRIMARY, STYLE_DANGER = 1, 4

SIGNUP, UNDO = "signup", "undo"
ANY_ROLE = "any"


class ControlState(BaseModel):
    custom_id: str
    label: str
    disabled: bool
    style: int = STYLE_PRIMARY


def build_custom_id(action: str, role: str, event_key: str) -> str:
    return f"{action}_{role}_{event_key}"


def parse_custom_id(custom_id: str) -> tuple[str, str, str]:
    """Split ``<action>_<role>_<event_key>``. Raises ValueError if malformed."""
    parts = custom_id.split("_", 2)
    if len(parts) != 3 or parts[0] not in (SIGNUP, UNDO) or not parts[1] or not parts[2]:
        raise ValueError(f"Unrecognised control id '{custom_id}'")
    return parts[0], parts[1], parts[2]


# Buttons rendered on every announcement, in display order.
SIGNUP_CONTROLS: tuple[tuple[str, str], ...] = (
    (RoleId.TANK.value, ROLES[RoleId.TANK].label),
    (RoleId.HEALER.value, ROLES[RoleId.HEALER].label),
    ("dps", "DPS"),
    (RoleId.KEYHOLDER.value, ROLES[RoleId.KEYHOLDER].label),
)


def project_controls(event: SignupEvent) -> list[ControlState]:
    """Which buttons are enabled for the current claims. Pure."""
    any_primary_claimed = any(ROLES[role].is_primary for role in event.claims)
    controls: list[ControlState] = []
    for role_name, label in SIGNUP_CONTROLS:
        slots = ROLE_ALIASES.get(role_name) or (RoleId(role_name),)
        filled = all(slot in event.claims for slot in slots)
        disabled = filled
        if not ROLES[slots[0]].is_primary:
            # Auxiliary unlocks once somebody holds a primary role.
            disabled = filled or not any_primary_claimed
        controls.append(ControlState(
            custom_id=build_custom_id(SIGNUP, role_name, event.event_key),
            label=label,
            disabled=disabled,
        ))
    controls.append(ControlState(
        custom_id=build_custom_id(UNDO, ANY_ROLE, event.event_key),
        label="Undo",
        disabled=False,
        style=STYLE_DANGER,
    ))
    return controls


def render_components(controls: list[ControlState]) -> list[dict[str, Any]]:
    """Discord action-row payload for the given control states."""
    return [{
        "type": ACTION_ROW,
        "components": [
            {
                "type": BUTTON,
                "style": c.style,
                "label": c.label,
                "custom_id": c.custom_id,
                "disabled": c.disabled,
            }
            for c in controls
        ],
    }]


class ControlReconciler:
    """Best-effort push of projected control state to the announcement."""

    def __init__(self, chat_client: ChatClient) -> None:
        self._chat = chat_client

    async def reconcile(self, event: SignupEvent) -> bool:
        try:
            await self._apply(event)
        except ControlReconciliationFailed as exc:
            CONTROL_UPDATE_FAILURES.inc()
            logger.warning("Control update failed: event=%s, error=%s", event.event_key, exc)
            return False
        return True

    async def _apply(self, event: SignupEvent) -> None:
        components = render_components(project_controls(event))
        try:
            await self._chat.edit_controls(event.channel_id, event.event_key, components)
        except ChatPlatformError as exc:
            raise ControlReconciliationFailed(str(exc)) from exc
