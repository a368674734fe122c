"""Balance Routes — the caller's per-pair balances within a group."""

from uuid import UUID

from fastapi import APIRouter, Depends

from app.api.dependencies import CurrentUser, get_balance_calculator, get_current_user
from app.schemas.balance import (
    BalanceReportResponse, BalanceTotalsResponse, PairBalanceResponse,
)
from app.services.balance_calculator import BalanceCalculator

router = APIRouter(prefix="/api/v1/groups", tags=["balances"])


@router.get("/{group_id}/balances", response_model=BalanceReportResponse)
async def get_balances(
    group_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    calculator: BalanceCalculator = Depends(get_balance_calculator),
):
    report = await calculator.get_pair_balance(group_id, user.id)
    return BalanceReportResponse(
        user_id=report.user_id,
        balances=[
            PairBalanceResponse(
                user_id=b.user_id,
                amount_owed=b.amount_owed,
                amount_owes=b.amount_owes,
                net_balance=b.net_balance,
            )
            for b in report.balances
        ],
        totals=BalanceTotalsResponse(
            amount_owed=report.totals.amount_owed,
            amount_owes=report.totals.amount_owes,
            net_balance=report.totals.net_balance,
        ),
    )
