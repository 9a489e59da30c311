# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RoleId(str, Enum):
    TANK = "tank"
    HEALER = "healer"
    DPS1 = "dps1"
    DPS2 = "dps2"
    KEYHOLDER = "keyholder"


class RoleSpec(BaseModel):
    """Static description of one role slot."""
    model_config = ConfigDict(frozen=True)

    id: RoleId
    label: str
    kind: str = Field(..., pattern="^(primary|auxiliary)$")
    column: str = Field(..., pattern="^[A-Z]{1,2}$", description="Schedule grid column")
    emoji: str = ""
    required: bool = True

    @property
    def is_primary(self) -> bool:
        return self.kind == "primary"


# Catalog order is also the release search order: primaries before the auxiliary.
ROLE_CATALOG: tuple[RoleSpec, ...] = (
    RoleSpec(id=RoleId.TANK, label="Tank", kind="primary", column="F", emoji="\U0001f6e1"),
    RoleSpec(id=RoleId.HEALER, label="Healer", kind="primary", column="G", emoji="\U0001f489"),
    RoleSpec(id=RoleId.DPS1, label="DPS 1", kind="primary", column="H", emoji="⚔"),
    RoleSpec(id=RoleId.DPS2, label="DPS 2", kind="primary", column="I", emoji="⚔"),
    RoleSpec(id=RoleId.KEYHOLDER, label="Key Holder", kind="auxiliary", column="K", emoji="\U0001f5dd"),
)

ROLES: dict[RoleId, RoleSpec] = {spec.id: spec for spec in ROLE_CATALOG}

# Requested name -> candidate slots, first open one wins.
ROLE_ALIASES: dict[str, tuple[RoleId, ...]] = {
    "dps": (RoleId.DPS1, RoleId.DPS2),
}


class Claimant(BaseModel):
    """The user holding (or requesting) a role. Identity is ``user_id``."""
    model_config = ConfigDict(frozen=True)

    user_id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1)

    def same_user(self, other: Optional["Claimant"]) -> bool:
        return other is not None and other.user_id == self.user_id


class EventDescriptor(BaseModel):
    """Structured fields parsed out of an announcement."""
    model_config = ConfigDict(frozen=True)

    activity_name: str
    scheduled_time: str
    run_id: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SignupEvent(BaseModel):
    """Live signup state for one announcement.

    ``claims`` is mutated only by the state machine.
    """

    event_key: str
    channel_id: str
    descriptor: EventDescriptor
    claims: dict[RoleId, Claimant] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    last_access: datetime = Field(default_factory=_utcnow)

    @property
    def run_id(self) -> str:
        return self.descriptor.run_id

    def holder(self, role: RoleId) -> Optional[Claimant]:
        return self.claims.get(role)

    def roles_held_by(self, claimant: Claimant) -> list[RoleId]:
        """Roles held by ``claimant``, in catalog order."""
        return [
            spec.id for spec in ROLE_CATALOG
            if claimant.same_user(self.claims.get(spec.id))
        ]

    def holds_primary(self, claimant: Claimant) -> bool:
        return any(ROLES[role].is_primary for role in self.roles_held_by(claimant))

    def is_complete(self) -> bool:
        return all(spec.id in self.claims for spec in ROLE_CATALOG if spec.required)

    def snapshot(self) -> dict[str, dict[str, str]]:
        return {
            role.value: {"user_id": c.user_id, "display_name": c.display_name}
            for role, c in self.claims.items()
        }


class ClaimOutcome(BaseModel):
    """A committed claim, handed to downstream synchronization."""
    model_config = ConfigDict(frozen=True)

    role: RoleId
    claimant: Claimant
    displaced: Optional[Claimant] = None
    completed: bool = False


class ReleaseOutcome(BaseModel):
    """A committed release."""
    model_config = ConfigDict(frozen=True)

    role: RoleId
    claimant: Claimant


class AnnouncementMessage(BaseModel):
    """Flattened view of an announcement fetched from the chat platform."""

    message_id: str
    channel_id: str
    text: str
    footer: Optional[str] = None
