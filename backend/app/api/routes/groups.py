"""Group Routes — create, read (ledger view), edit, leave and delete groups.

Invariants:
    - Caller identity comes from get_current_user; never from the body
    - Routes never contain business logic (LedgerStore owns it)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.dependencies import CurrentUser, get_current_user, get_ledger_store
from app.schemas.group import GroupCreate, GroupLedgerResponse, GroupResponse, GroupUpdate
from app.services.ledger_store import LedgerStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/groups", tags=["groups"])


@router.post(
    "", response_model=GroupResponse, status_code=status.HTTP_201_CREATED,
)
async def create_group(
    body: GroupCreate,
    user: CurrentUser = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    return await store.create_group(
        user.id, body.name, body.description, body.category, body.currency,
    )


@router.get("/{group_id}", response_model=GroupLedgerResponse)
async def get_group_ledger(
    group_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    """Group, roster, expenses with splits, settlements and live invitations."""
    ledger = await store.get_group_ledger(group_id, user.id)
    return GroupLedgerResponse.model_validate(ledger)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
    group_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    await store.delete_group(group_id, user.id)


@router.patch("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: UUID,
    body: GroupUpdate,
    user: CurrentUser = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    return await store.update_group(
        group_id, user.id,
        name=body.name, description=body.description, category=body.category,
    )


@router.post("/{group_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
async def leave_group(
    group_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    await store.leave_group(group_id, user.id)
