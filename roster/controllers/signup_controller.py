# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Interaction, claim and release endpoints.
Thin HTTP layer that delegates ALL logic to SignupService.
"""

from fastapi import APIRouter, Depends, HTTPException

from roster.core.dependencies import get_signup_service
from roster.core.errors import EventNotActive, MalformedEvent, SignupRejected
from roster.models.domain import Claimant
from roster.schemas.signup import (
    ClaimRequest,
    InteractionRequest,
    InteractionResponse,
    ReleaseRequest,
    SignupResponse,
)
from roster.services.signup_service import SignupService

router = APIRouter(prefix="/api/v1", tags=["Signups"])


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, EventNotActive):
        status = 404
    elif isinstance(exc, MalformedEvent):
        status = 422
    else:
        status = 409
    return HTTPException(status_code=status, detail={"error": exc.code, "message": exc.message})


@router.post("/interactions", response_model=InteractionResponse)
async def handle_interaction(
    payload: InteractionRequest,
    service: SignupService = Depends(get_signup_service),
):
    """Button press relayed from the chat gateway. Always answers with a reply."""
    return await service.handle_interaction(
        custom_id=payload.custom_id,
        channel_id=payload.channel_id,
        user_id=payload.user_id,
        display_name=payload.display_name,
    )


@router.post("/events/{event_key}/claims", response_model=SignupResponse)
async def claim_role(
    event_key: str,
    payload: ClaimRequest,
    service: SignupService = Depends(get_signup_service),
):
    """Claim a role on an event."""
    claimant = Claimant(user_id=payload.user_id, display_name=payload.display_name)
    try:
        return await service.claim(event_key, payload.channel_id, payload.role, claimant)
    except (EventNotActive, MalformedEvent, SignupRejected) as e:
        raise _http_error(e)


@router.delete("/events/{event_key}/claims", response_model=SignupResponse)
async def release_role(
    event_key: str,
    payload: ReleaseRequest,
    service: SignupService = Depends(get_signup_service),
):
    """Release the caller's role on an event."""
    claimant = Claimant(user_id=payload.user_id, display_name=payload.display_name)
    try:
        return await service.release(event_key, payload.channel_id, claimant, payload.role)
    except (EventNotActive, MalformedEvent, SignupRejected) as e:
        raise _http_error(e)
