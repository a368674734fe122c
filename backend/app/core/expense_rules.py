"""Expense Validation — pure checks run before any expense/split row is written.

Invariants:
    - amount > 0, splits non-empty, every split amount >= 0
    - No user appears twice in one expense's splits (mirrors UNIQUE(expense_id, user_id))
    - Amounts are quantized to cents BEFORE the checks; the store persists the
      returned cent values, so |sum(splits) - amount| <= tolerance holds on disk
    - PURE: raises ValidationError / MembershipError, never touches the DB

Design Decisions:
    - Membership check takes the roster as a set: the shell loads it once per request
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from app.core.domain_types import DEFAULT_SPLIT_TOLERANCE, ZERO, to_money
from app.core.errors import MembershipError, ValidationError


@dataclass(frozen=True)
class SplitLine:
    """One member's share of a new expense."""
    user_id: UUID
    amount: Decimal


def validate_expense_amounts(
    amount: Decimal,
    splits: list[SplitLine],
    tolerance: Decimal = DEFAULT_SPLIT_TOLERANCE,
) -> tuple[Decimal, list[SplitLine]]:
    """Quantize to cents, then reject non-positive totals, empty/duplicate/negative
    splits and sum mismatches. Returns the cent amounts the caller must persist."""
    amount = to_money(amount)
    splits = [SplitLine(user_id=line.user_id, amount=to_money(line.amount)) for line in splits]
    if amount <= ZERO:
        raise ValidationError("Expense amount must be positive", "amount")
    if not splits:
        raise ValidationError("At least one split is required", "splits")

    seen: set[UUID] = set()
    for line in splits:
        if line.amount < ZERO:
            raise ValidationError(
                f"Split amount for user '{line.user_id}' cannot be negative",
                "splits.amount",
            )
        if line.user_id in seen:
            raise ValidationError(
                f"User '{line.user_id}' appears more than once in splits",
                "splits.user_id",
            )
        seen.add(line.user_id)

    total = sum((line.amount for line in splits), ZERO)
    if abs(total - amount) > tolerance:
        raise ValidationError(
            f"Split amounts must equal expense amount. Expected: {amount}, Got: {total}",
            "splits",
        )
    return amount, splits


def ensure_members(
    user_ids: Iterable[UUID], roster: set[UUID], group_id: UUID,
) -> None:
    """Raise MembershipError for the first user not on the roster."""
    for user_id in user_ids:
        if user_id not in roster:
            raise MembershipError(str(user_id), str(group_id))
