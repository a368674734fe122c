"""Invitation Routes — invite by email, remind, list pending, accept/decline by token.

Invariants:
    - Accept/decline authorise by the caller's verified email, not by group role
    - expires_in_seconds overrides the configured lifetime for one invitation
"""

from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.dependencies import CurrentUser, get_current_user, get_invitation_service
from app.schemas.invitation import (
    InvitationAcceptedResponse, InvitationCreate, InvitationCreatedResponse,
    InvitationResend, InvitationResentResponse, InvitationResponse,
)
from app.services.invitation_service import InvitationService

router = APIRouter(prefix="/api/v1", tags=["invitations"])


@router.post(
    "/groups/{group_id}/invitations",
    response_model=InvitationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    group_id: UUID,
    body: InvitationCreate,
    user: CurrentUser = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    expires_in = (
        timedelta(seconds=body.expires_in_seconds)
        if body.expires_in_seconds else None
    )
    result = await service.create_invitation(
        group_id, user.id, body.invitee_email, body.role, expires_in,
    )
    return InvitationCreatedResponse(
        invitation_id=result.invitation_id,
        token=result.token,
        expires_at=result.expires_at,
        warnings=result.warnings,
    )


@router.post(
    "/groups/{group_id}/invitations/resend",
    response_model=InvitationResentResponse,
)
async def resend_invitation(
    group_id: UUID,
    body: InvitationResend,
    user: CurrentUser = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    result = await service.resend_invitation(group_id, user.id, body.invitee_email)
    return InvitationResentResponse(
        invitation_id=result.invitation_id,
        expires_at=result.expires_at,
        delivered=result.delivered,
        warnings=result.warnings,
    )


@router.get(
    "/groups/{group_id}/invitations", response_model=list[InvitationResponse],
)
async def list_pending_invitations(
    group_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    return await service.list_pending_invitations(group_id, user.id)


@router.post(
    "/invitations/{token}/accept", response_model=InvitationAcceptedResponse,
)
async def accept_invitation(
    token: str,
    user: CurrentUser = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    result = await service.accept_invitation(token, user.id, user.email)
    return InvitationAcceptedResponse(
        group_id=result.group_id,
        role=result.role,
        already_member=result.already_member,
        warnings=result.warnings,
    )


@router.post("/invitations/{token}/decline", response_model=InvitationResponse)
async def decline_invitation(
    token: str,
    user: CurrentUser = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    return await service.decline_invitation(token, user.id, user.email)
