"""Balance Calculator — per-pair balances from unsettled splits only."""

from decimal import Decimal
from uuid import uuid4

import pytest

from app.core.errors import AuthorizationError
from app.core.expense_rules import SplitLine
from app.services.balance_calculator import BalanceCalculator
from app.services.ledger_store import LedgerStore


async def test_balances_for_payer_and_debtor(test_db, clock, emitter, seeded):
    """Each side of a pair sees the mirrored owed and owes amounts."""
    store = LedgerStore(test_db, clock, emitter)
    await store.create_expense_with_splits(
        seeded.group_id, seeded.alice, seeded.alice, "Hotel", Decimal("90"),
        "lodging", None,
        [SplitLine(seeded.alice, Decimal("30")), SplitLine(seeded.bob, Decimal("30")),
         SplitLine(seeded.carol, Decimal("30"))],
    )
    await store.create_expense_with_splits(
        seeded.group_id, seeded.bob, seeded.bob, "Snacks", Decimal("10"),
        "food", None,
        [SplitLine(seeded.alice, Decimal("10"))],
    )

    calculator = BalanceCalculator(test_db)
    alice = await calculator.get_pair_balance(seeded.group_id, seeded.alice)
    by_user = {b.user_id: b for b in alice.balances}

    assert set(by_user) == {seeded.bob, seeded.carol}
    assert by_user[seeded.bob].amount_owed == Decimal("30.00")
    assert by_user[seeded.bob].amount_owes == Decimal("10.00")
    assert by_user[seeded.bob].net_balance == Decimal("20.00")
    assert by_user[seeded.carol].net_balance == Decimal("30.00")
    assert alice.totals.net_balance == Decimal("50.00")

    carol = await calculator.get_pair_balance(seeded.group_id, seeded.carol)
    carol_by_user = {b.user_id: b for b in carol.balances}
    assert carol_by_user[seeded.alice].amount_owes == Decimal("30.00")
    assert carol_by_user[seeded.bob].net_balance == Decimal("0.00")


async def test_non_member_cannot_read_balances(test_db, seeded):
    """Outsiders get 403 instead of the group's balances."""
    with pytest.raises(AuthorizationError):
        await BalanceCalculator(test_db).get_pair_balance(seeded.group_id, uuid4())
