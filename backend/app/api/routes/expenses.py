"""Expense Routes — atomic expense + splits creation."""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.dependencies import CurrentUser, get_current_user, get_ledger_store
from app.core.expense_rules import SplitLine
from app.schemas.expense import ExpenseCreate, ExpenseCreatedResponse
from app.services.ledger_store import LedgerStore

router = APIRouter(prefix="/api/v1/groups", tags=["expenses"])


@router.post(
    "/{group_id}/expenses",
    response_model=ExpenseCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_expense(
    group_id: UUID,
    body: ExpenseCreate,
    user: CurrentUser = Depends(get_current_user),
    store: LedgerStore = Depends(get_ledger_store),
):
    result = await store.create_expense_with_splits(
        group_id=group_id,
        caller_id=user.id,
        payer_id=body.payer_id or user.id,
        description=body.description,
        amount=body.amount,
        category=body.category,
        notes=body.notes,
        splits=[SplitLine(user_id=s.user_id, amount=s.amount) for s in body.splits],
    )
    return ExpenseCreatedResponse(
        expense_id=result.expense_id, warnings=result.warnings,
    )
