# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from typing import Optional

from pydantic import BaseModel, Field


# ── Interaction Schemas ──

class InteractionRequest(BaseModel):
    """A button press relayed by the chat gateway."""
    custom_id: str = Field(..., min_length=1, max_length=100)
    channel_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1, max_length=255)


class InteractionResponse(BaseModel):
    ok: bool
    content: str
    ephemeral: bool = True
    error: Optional[str] = None
    warning: Optional[str] = None
    result: Optional[dict] = None


# ── Claim Schemas ──

class ClaimRequest(BaseModel):
    channel_id: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1, max_length=32, description="Role id or alias")
    user_id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1, max_length=255)


class ReleaseRequest(BaseModel):
    channel_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1, max_length=255)
    role: Optional[str] = Field(
        default=None, max_length=32, description="Specific role to release"
    )


class SignupResponse(BaseModel):
    status: str
    event_key: str
    run_id: str
    role: str
    user_id: str
    display_name: str
    message: str
    warning: Optional[str] = None
    warning_code: Optional[str] = None
    claims: dict[str, dict[str, str]]
    notification_armed: Optional[bool] = None
    notification_cancelled: Optional[bool] = None


# ── Event Schemas ──

class AnnouncementRequest(BaseModel):
    channel_id: str = Field(..., min_length=1)
    activity_name: str = Field(..., min_length=1, max_length=255)
    scheduled_time: str = Field(..., min_length=1, max_length=255)
    run_id: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=2000)


class EventResponse(BaseModel):
    event_key: str
    channel_id: str
    activity_name: str
    scheduled_time: str
    run_id: str
    claims: dict[str, dict[str, str]]
    complete: bool
    notification_pending: bool
    notified: bool
