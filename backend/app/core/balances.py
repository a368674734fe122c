"""Balance Calculation — derives pairwise owed/owes from unsettled splits.

Invariants:
    - amount_owed: sum of unsettled splits where `user` paid and the other member owes
    - amount_owes: sum of unsettled splits where the other member paid and `user` owes
    - net_balance = amount_owed - amount_owes (positive => others owe `user`)
    - Self-owed shares (payer's own split) never contribute
    - Every other member appears exactly once, even with zero balance

Design Decisions:
    - Aggregation in Python over SQL SUM: Decimal-exact on every dialect
      (SQLite stores NUMERIC as REAL)
    - PURE: shell loads the shares, this module only folds them
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from app.core.domain_types import ZERO, to_money


@dataclass(frozen=True)
class UnsettledShare:
    """Projection of one unsettled split joined with its expense's payer."""
    payer_id: UUID
    owed_by: UUID
    amount: Decimal


@dataclass(frozen=True)
class PairBalance:
    """Balance between the requesting user and one other member."""
    user_id: UUID
    amount_owed: Decimal
    amount_owes: Decimal

    @property
    def net_balance(self) -> Decimal:
        return self.amount_owed - self.amount_owes


@dataclass(frozen=True)
class BalanceTotals:
    amount_owed: Decimal
    amount_owes: Decimal

    @property
    def net_balance(self) -> Decimal:
        return self.amount_owed - self.amount_owes


def compute_pair_balances(
    user_id: UUID,
    member_ids: Iterable[UUID],
    shares: Iterable[UnsettledShare],
) -> list[PairBalance]:
    """Fold unsettled shares into one PairBalance per other member."""
    others = [m for m in member_ids if m != user_id]
    owed: dict[UUID, Decimal] = {m: ZERO for m in others}
    owes: dict[UUID, Decimal] = {m: ZERO for m in others}

    for share in shares:
        if share.payer_id == share.owed_by:
            continue
        if share.payer_id == user_id and share.owed_by in owed:
            owed[share.owed_by] += share.amount
        elif share.owed_by == user_id and share.payer_id in owes:
            owes[share.payer_id] += share.amount

    return [
        PairBalance(
            user_id=m,
            amount_owed=to_money(owed[m]),
            amount_owes=to_money(owes[m]),
        )
        for m in others
    ]


def summarize_balances(balances: Iterable[PairBalance]) -> BalanceTotals:
    owed = ZERO
    owes = ZERO
    for b in balances:
        owed += b.amount_owed
        owes += b.amount_owes
    return BalanceTotals(amount_owed=to_money(owed), amount_owes=to_money(owes))
