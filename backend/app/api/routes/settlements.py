"""Settlement Routes — settle a debtor/creditor pair and list history.

Invariants:
    - Only the debtor or the creditor may settle (checked in core/allocation.py)
    - A settle that applies nothing is a 200 with settled_amount 0, not an error
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.dependencies import (
    CurrentUser, get_current_user, get_ledger_store, get_settlement_allocator,
)
from app.schemas.settlement import SettleRequest, SettleResponse, SettlementResponse
from app.services.ledger_store import LedgerStore
from app.services.settlement_allocator import SettlementAllocator

router = APIRouter(prefix="/api/v1/groups", tags=["settlements"])


@router.post("/{group_id}/settlements", response_model=SettleResponse)
async def settle(
    group_id: UUID,
    body: SettleRequest,
    user: CurrentUser = Depends(get_current_user),
    allocator: SettlementAllocator = Depends(get_settlement_allocator),
):
    result = await allocator.settle(
        group_id, body.debtor_id, body.creditor_id, body.amount,
        user.id, body.description,
    )
    return SettleResponse(
        settled_split_ids=result.settled_split_ids,
        settled_amount=result.settled_amount,
        remaining_amount=result.remaining_amount,
        settlement_id=result.settlement_id,
        warnings=result.warnings,
    )


@router.get("/{group_id}/settlements", response_model=list[SettlementResponse])
async def list_settlements(
    group_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    return await store.list_settlements(group_id, user.id)
