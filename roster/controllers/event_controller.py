# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Events, announcements, pending notifications and history.
Thin HTTP layer that delegates ALL logic to SignupService / GroupCompletionNotifier.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from roster.core.dependencies import get_history_repo, get_notifier, get_signup_service
from roster.core.errors import ChatPlatformError, DescriptorExtractionError
from roster.repositories.history_repository import HistoryRepository
from roster.schemas.signup import AnnouncementRequest, EventResponse
from roster.services.notifier import GroupCompletionNotifier
from roster.services.signup_service import SignupService

router = APIRouter(prefix="/api/v1", tags=["Events"])


# ── Events ──

@router.get("/events", response_model=list[EventResponse])
def list_events(
    service: SignupService = Depends(get_signup_service),
):
    """List events currently held in memory."""
    return service.list_events()


@router.get("/events/{event_key}", response_model=EventResponse)
def get_event(
    event_key: str,
    service: SignupService = Depends(get_signup_service),
):
    """Get one in-memory event with its claims."""
    try:
        return service.get_event(event_key)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/announcements", response_model=EventResponse, status_code=201)
async def create_announcement(
    payload: AnnouncementRequest,
    service: SignupService = Depends(get_signup_service),
):
    """Post a signup announcement to a channel and start tracking it."""
    try:
        return await service.announce(
            channel_id=payload.channel_id,
            activity_name=payload.activity_name,
            scheduled_time=payload.scheduled_time,
            run_id=payload.run_id,
            description=payload.description,
        )
    except DescriptorExtractionError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except ChatPlatformError as e:
        raise HTTPException(status_code=502, detail=e.message)


# ── Notifications ──

@router.get("/notifications/pending")
def list_pending_notifications(
    notifier: GroupCompletionNotifier = Depends(get_notifier),
):
    """Group-formed notices armed but not yet posted."""
    return notifier.pending()


@router.delete("/notifications/{run_id}")
def reset_notification(
    run_id: str,
    notifier: GroupCompletionNotifier = Depends(get_notifier),
):
    """Cancel a pending notice and allow the run to be announced again."""
    was_pending = notifier.is_pending(run_id)
    was_notified = notifier.reset(run_id)
    if not (was_pending or was_notified):
        raise HTTPException(status_code=404, detail=f"No notification state for run '{run_id}'")
    return {"run_id": run_id, "cancelled": was_pending, "reset": was_notified}


# ── History ──

@router.get("/history")
def get_history(
    run_id: Optional[str] = None,
    event_type: Optional[str] = None,
    limit: int = Query(default=None, ge=1, description="Max results"),
    history_repo: HistoryRepository = Depends(get_history_repo),
):
    """Audit log of claims, releases and notifications."""
    return history_repo.get_all(run_id=run_id, event_type=event_type, limit=limit)
