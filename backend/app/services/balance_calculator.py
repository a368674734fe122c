"""Balance Calculator — per-pair owed/owes for one member, from committed state.

Invariants:
    - Pure read: no writes, no cache; every call re-reads unsettled splits
    - Caller must be a member of the group (AuthorizationError otherwise)
    - Only unsettled splits of this group's expenses contribute
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.balances import (
    BalanceTotals, PairBalance, UnsettledShare,
    compute_pair_balances, summarize_balances,
)
from app.models.expense import Expense
from app.models.member import Member
from app.models.split import Split
from app.services.membership import get_group_or_404, require_member


@dataclass(frozen=True)
class BalanceReport:
    user_id: UUID
    balances: list[PairBalance]
    totals: BalanceTotals


class BalanceCalculator:
    """Derives balances between `user` and every other member."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_pair_balance(self, group_id: UUID, user_id: UUID) -> BalanceReport:
        await get_group_or_404(self.db, group_id)
        await require_member(self.db, group_id, user_id)

        members = await self.db.execute(
            select(Member.user_id)
            .where(Member.group_id == group_id)
            .order_by(Member.joined_at),
        )
        rows = await self.db.execute(
            select(Expense.payer_id, Split.user_id, Split.amount)
            .join(Expense, Expense.id == Split.expense_id)
            .where(Expense.group_id == group_id)
            .where(Split.is_settled.is_(False))
            .where(or_(Expense.payer_id == user_id, Split.user_id == user_id)),
        )
        shares = [
            UnsettledShare(payer_id=payer_id, owed_by=owed_by, amount=amount)
            for payer_id, owed_by, amount in rows.all()
        ]
        balances = compute_pair_balances(user_id, members.scalars().all(), shares)
        return BalanceReport(
            user_id=user_id,
            balances=balances,
            totals=summarize_balances(balances),
        )
