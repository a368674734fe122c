"""Invitation Schemas — create/accept payloads and invitation views.

Invariants:
    - invited role is admin or member
    - expires_in_seconds is an optional positive override of the configured lifetime
"""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class InvitationCreate(BaseModel):
    invitee_email: str = Field(min_length=3, max_length=320)
    role: Literal["admin", "member"] = "member"
    expires_in_seconds: int | None = Field(None, gt=0)


class InvitationResend(BaseModel):
    invitee_email: str = Field(min_length=3, max_length=320)


class InvitationResentResponse(BaseModel):
    invitation_id: UUID
    expires_at: datetime
    delivered: bool
    warnings: list[str] = []


class InvitationCreatedResponse(BaseModel):
    invitation_id: UUID
    token: str
    expires_at: datetime
    warnings: list[str] = []


class InvitationAcceptedResponse(BaseModel):
    group_id: UUID
    role: str
    already_member: bool
    warnings: list[str] = []


class InvitationResponse(BaseModel):
    """Invitation view — the token is never echoed back in listings."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    group_id: UUID
    inviter_id: UUID
    invitee_email: str
    invited_role: str
    status: str
    created_at: datetime
    expires_at: datetime
    responded_at: datetime | None = None
