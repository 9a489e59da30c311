# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Role claim state machine.

The only code allowed to mutate ``SignupEvent.claims``. Both transitions are
plain synchronous functions: validation and commit happen without yielding
to the event loop, so no other request can observe or interleave with a
half-applied transition.
"""

from typing import Iterable, Optional

from roster.core.errors import (
    AlreadySignedUp,
    IneligibleForAuxiliary,
    NotSignedUp,
    RoleTaken,
    UnknownRole,
)
from roster.models.domain import (
    ROLE_ALIASES,
    ROLES,
    Claimant,
    ClaimOutcome,
    ReleaseOutcome,
    RoleId,
    SignupEvent,
)


def resolve_role(requested: str | RoleId) -> tuple[RoleId, ...]:
    """Map a requested role name to the candidate slots it may fill."""
    if isinstance(requested, RoleId):
        return (requested,)
    key = str(requested).strip().lower()
    if key in ROLE_ALIASES:
        return ROLE_ALIASES[key]
    try:
        return (RoleId(key),)
    except ValueError:
        raise UnknownRole(f"Unknown role '{requested}'")


class RoleClaimStateMachine:
    """Per-event authority over claim/release transitions."""

    def __init__(self, override_user_ids: Iterable[str] = ()) -> None:
        self._overrides: frozenset[str] = frozenset(override_user_ids)

    def is_override(self, claimant: Optional[Claimant]) -> bool:
        return claimant is not None and claimant.user_id in self._overrides

    # ── Claim ──

    def claim(
        self,
        event: SignupEvent,
        role: str | RoleId,
        claimant: Claimant,
    ) -> ClaimOutcome:
        """Validate and commit a claim. Raises a SignupRejected subclass."""
        candidates = resolve_role(role)
        override = self.is_override(claimant)

        for candidate in candidates:
            if claimant.same_user(event.claims.get(candidate)):
                raise AlreadySignedUp(
                    f"You're already signed up as {ROLES[candidate].label}."
                )

        target = self._pick_slot(event, candidates, override)
        spec = ROLES[target]

        if not override:
            if spec.is_primary and event.holds_primary(claimant):
                held = ", ".join(ROLES[r].label for r in event.roles_held_by(claimant))
                raise AlreadySignedUp(f"You're already signed up as {held}.")
            if not spec.is_primary and not event.holds_primary(claimant):
                raise IneligibleForAuxiliary(
                    f"You must sign up for a main role before taking {spec.label}."
                )

        displaced = event.claims.get(target)
        event.claims[target] = claimant

        return ClaimOutcome(
            role=target,
            claimant=claimant,
            displaced=displaced,
            completed=event.is_complete(),
        )

    def _pick_slot(
        self,
        event: SignupEvent,
        candidates: tuple[RoleId, ...],
        override: bool,
    ) -> RoleId:
        for candidate in candidates:
            if candidate not in event.claims:
                return candidate
        # Every candidate is held. Override identities may take over a slot,
        # but never one held by another override identity.
        if override:
            for candidate in candidates:
                if not self.is_override(event.claims[candidate]):
                    return candidate
        label = ROLES[candidates[0]].label if len(candidates) == 1 else "That role"
        raise RoleTaken(f"{label} is already taken.")

    # ── Release ──

    def release(
        self,
        event: SignupEvent,
        claimant: Claimant,
        role: str | RoleId | None = None,
    ) -> ReleaseOutcome:
        """Remove one role held by ``claimant``. Raises NotSignedUp."""
        held = event.roles_held_by(claimant)
        if role is not None:
            wanted = resolve_role(role)
            held = [r for r in held if r in wanted]
        if not held:
            raise NotSignedUp("You haven't signed up for this event.")

        released = held[0]
        del event.claims[released]
        return ReleaseOutcome(role=released, claimant=claimant)
