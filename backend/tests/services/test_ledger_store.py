"""Ledger Store — groups, atomic expense creation and the ledger view.

Tests cover:
    - A rejected expense leaves no expense and no split rows
    - Splits are stored unsettled, as cents, and sum to the expense amount
    - Notifications go to split owners other than the payer, after commit
    - Delivery failures become warnings; the expense still exists
    - Group edits and leaving respect owner/admin rights
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.core.errors import (
    AuthorizationError, MembershipError, NotFoundError, StateConflictError, ValidationError,
)
from app.core.expense_rules import SplitLine
from app.models.expense import Expense
from app.models.group import Group
from app.models.member import Member
from app.models.notification import Notification
from app.models.split import Split
from app.models.user import User
from app.services.ledger_store import LedgerStore
from app.services.notification_emitter import NotificationEmitter

from tests.services.fakes import RecordingDispatcher


def _store(test_db, clock, emitter) -> LedgerStore:
    return LedgerStore(test_db, clock, emitter)


async def _count(db, model) -> int:
    return (await db.execute(select(func.count()).select_from(model))).scalar_one()


async def test_create_expense_writes_expense_and_splits(test_db, clock, emitter, seeded):
    """One expense row plus three unsettled splits summing to the amount."""
    store = _store(test_db, clock, emitter)
    result = await store.create_expense_with_splits(
        seeded.group_id, seeded.alice, seeded.alice, "Dinner", Decimal("300.00"),
        "food", None,
        [SplitLine(seeded.alice, Decimal("100")), SplitLine(seeded.bob, Decimal("100")),
         SplitLine(seeded.carol, Decimal("100"))],
    )

    rows = (await test_db.execute(
        select(Split.user_id, Split.amount, Split.is_settled)
        .where(Split.expense_id == result.expense_id),
    )).all()
    assert len(rows) == 3
    assert sum(amount for _, amount, _ in rows) == Decimal("300.00")
    assert not any(settled for _, _, settled in rows)
    assert result.warnings == []


async def test_expense_notifies_non_payer_split_owners(
    test_db, clock, emitter, dispatcher, seeded,
):
    """Bob and Carol are notified; the payer is not."""
    store = _store(test_db, clock, emitter)
    await store.create_expense_with_splits(
        seeded.group_id, seeded.alice, seeded.alice, "Dinner", Decimal("90"),
        "food", None,
        [SplitLine(seeded.alice, Decimal("30")), SplitLine(seeded.bob, Decimal("30")),
         SplitLine(seeded.carol, Decimal("30"))],
    )

    recipients = (await test_db.execute(
        select(Notification.user_id).where(Notification.type == "expense_added"),
    )).scalars().all()
    assert set(recipients) == {seeded.bob, seeded.carol}
    assert {n["user_id"] for n in dispatcher.sent} == {seeded.bob, seeded.carol}


async def test_sum_mismatch_leaves_no_rows(test_db, clock, emitter, seeded):
    """A mismatched split sum rolls back before any row is written."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(ValidationError):
        await store.create_expense_with_splits(
            seeded.group_id, seeded.alice, seeded.alice, "Dinner", Decimal("100"),
            "food", None,
            [SplitLine(seeded.alice, Decimal("50")), SplitLine(seeded.bob, Decimal("40"))],
        )
    assert await _count(test_db, Expense) == 0
    assert await _count(test_db, Split) == 0


async def test_sub_cent_amounts_checked_after_rounding(test_db, clock, emitter, seeded):
    """10.004 split 3 x 3.335 rounds to 10.00 vs 3 x 3.34: rejected, nothing stored."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(ValidationError) as exc:
        await store.create_expense_with_splits(
            seeded.group_id, seeded.alice, seeded.alice, "Taxi", Decimal("10.004"),
            "transport", None,
            [SplitLine(u, Decimal("3.335")) for u in (seeded.alice, seeded.bob, seeded.carol)],
        )
    assert exc.value.field == "splits"
    assert await _count(test_db, Expense) == 0
    assert await _count(test_db, Split) == 0


async def test_stored_amounts_are_the_validated_cents(test_db, clock, emitter, seeded):
    """Sub-cent inputs that still balance are persisted exactly as checked."""
    store = _store(test_db, clock, emitter)
    result = await store.create_expense_with_splits(
        seeded.group_id, seeded.alice, seeded.alice, "Taxi", Decimal("10.004"),
        "transport", None,
        [SplitLine(seeded.alice, Decimal("5.001")), SplitLine(seeded.bob, Decimal("4.999"))],
    )
    expense_amount = (await test_db.execute(
        select(Expense.amount).where(Expense.id == result.expense_id),
    )).scalar_one()
    split_amounts = (await test_db.execute(
        select(Split.amount).where(Split.expense_id == result.expense_id),
    )).scalars().all()
    assert Decimal(expense_amount) == Decimal("10.00")
    assert sorted(Decimal(a) for a in split_amounts) == [Decimal("5.00"), Decimal("5.00")]
    assert abs(sum(Decimal(a) for a in split_amounts) - Decimal(expense_amount)) <= Decimal("0.01")


async def test_non_member_split_rejected_without_rows(test_db, clock, emitter, seeded):
    """A split for a non-member rejects the whole expense."""
    outsider = uuid4()
    test_db.add(User(id=outsider, email="eve@example.com"))
    await test_db.commit()

    store = _store(test_db, clock, emitter)
    with pytest.raises(MembershipError):
        await store.create_expense_with_splits(
            seeded.group_id, seeded.alice, seeded.alice, "Dinner", Decimal("100"),
            "food", None,
            [SplitLine(seeded.alice, Decimal("50")), SplitLine(outsider, Decimal("50"))],
        )
    assert await _count(test_db, Expense) == 0


async def test_non_member_payer_rejected(test_db, clock, emitter, seeded):
    """The payer must belong to the group."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(MembershipError):
        await store.create_expense_with_splits(
            seeded.group_id, seeded.alice, uuid4(), "Dinner", Decimal("10"),
            "food", None, [SplitLine(seeded.alice, Decimal("10"))],
        )


async def test_caller_must_be_member(test_db, clock, emitter, seeded):
    """A caller outside the group cannot add expenses."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(AuthorizationError):
        await store.create_expense_with_splits(
            seeded.group_id, uuid4(), seeded.alice, "Dinner", Decimal("10"),
            "food", None, [SplitLine(seeded.alice, Decimal("10"))],
        )


async def test_unknown_group_is_404(test_db, clock, emitter, seeded):
    """Adding an expense to a missing group is a 404."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(NotFoundError):
        await store.create_expense_with_splits(
            uuid4(), seeded.alice, seeded.alice, "Dinner", Decimal("10"),
            "food", None, [SplitLine(seeded.alice, Decimal("10"))],
        )


async def test_delivery_failure_is_a_warning(test_db, clock, seeded):
    """A failed delivery is reported as a warning; the expense is kept."""
    emitter = NotificationEmitter(test_db, RecordingDispatcher(fail=True))
    store = _store(test_db, clock, emitter)
    result = await store.create_expense_with_splits(
        seeded.group_id, seeded.alice, seeded.alice, "Taxi", Decimal("20"),
        "transport", None,
        [SplitLine(seeded.alice, Decimal("10")), SplitLine(seeded.bob, Decimal("10"))],
    )

    assert len(result.warnings) == 1
    assert "expense_added" in result.warnings[0]
    assert await _count(test_db, Expense) == 1
    assert await _count(test_db, Notification) == 1


async def test_create_group_adds_creator_as_admin(test_db, clock, emitter, seeded):
    """The creator becomes an admin member; currency is uppercased."""
    store = _store(test_db, clock, emitter)
    group = await store.create_group(seeded.bob, "Flat", currency="eur")

    role = (await test_db.execute(
        select(Member.role)
        .where(Member.group_id == group.id)
        .where(Member.user_id == seeded.bob),
    )).scalar_one()
    assert role == "admin"
    assert group.currency == "EUR"


async def test_delete_group_requires_creator_and_cascades(test_db, clock, emitter, seeded):
    """Only the creator may delete, and deletion removes dependent rows."""
    store = _store(test_db, clock, emitter)
    await store.create_expense_with_splits(
        seeded.group_id, seeded.alice, seeded.alice, "Dinner", Decimal("20"),
        "food", None,
        [SplitLine(seeded.alice, Decimal("10")), SplitLine(seeded.bob, Decimal("10"))],
    )

    with pytest.raises(AuthorizationError):
        await store.delete_group(seeded.group_id, seeded.bob)

    await store.delete_group(seeded.group_id, seeded.alice)
    assert await _count(test_db, Group) == 0
    assert await _count(test_db, Member) == 0
    assert await _count(test_db, Split) == 0


async def test_group_ledger_composes_roster_and_expenses(test_db, clock, emitter, seeded):
    """The ledger view bundles the group, members, expenses and settlements."""
    store = _store(test_db, clock, emitter)
    await store.create_expense_with_splits(
        seeded.group_id, seeded.bob, seeded.bob, "Fuel", Decimal("60"),
        "transport", "full tank",
        [SplitLine(seeded.alice, Decimal("30")), SplitLine(seeded.bob, Decimal("30"))],
    )

    ledger = await store.get_group_ledger(seeded.group_id, seeded.carol)

    assert ledger.group.name == "Trip"
    assert sorted(m.email for m in ledger.members) == [
        "alice@example.com", "bob@example.com", "carol@example.com",
    ]
    assert len(ledger.expenses) == 1
    assert ledger.expenses[0].notes == "full tank"
    assert len(ledger.expenses[0].splits) == 2
    assert ledger.settlements == []


async def test_update_group_edits_details_but_not_creator(test_db, clock, emitter, seeded):
    """Owner renames and recategorises; created_by and currency are untouched."""
    store = _store(test_db, clock, emitter)
    group = await store.update_group(
        seeded.group_id, seeded.alice, name="  Ski Trip ", category="travel",
    )

    assert group.name == "Ski Trip"
    assert group.category == "travel"
    assert group.created_by == seeded.alice
    assert group.currency == "USD"


async def test_plain_member_cannot_update_group(test_db, clock, emitter, seeded):
    """Only the creator or an admin may edit group details."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(AuthorizationError):
        await store.update_group(seeded.group_id, seeded.bob, name="Mine now")
    name = (await test_db.execute(
        select(Group.name).where(Group.id == seeded.group_id),
    )).scalar_one()
    assert name == "Trip"


async def test_blank_group_name_rejected(test_db, clock, emitter, seeded):
    """A whitespace-only name is a validation error on update."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(ValidationError) as exc:
        await store.update_group(seeded.group_id, seeded.alice, name="   ")
    assert exc.value.field == "name"


async def test_member_can_leave_group(test_db, clock, emitter, seeded):
    """Leaving deletes only the caller's membership row."""
    store = _store(test_db, clock, emitter)
    await store.leave_group(seeded.group_id, seeded.bob)

    roster = (await test_db.execute(
        select(Member.user_id).where(Member.group_id == seeded.group_id),
    )).scalars().all()
    assert set(roster) == {seeded.alice, seeded.carol}


async def test_owner_cannot_leave_group(test_db, clock, emitter, seeded):
    """The creator is refused with OWNER_CANNOT_LEAVE and stays a member."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(StateConflictError) as exc:
        await store.leave_group(seeded.group_id, seeded.alice)
    assert exc.value.code == "OWNER_CANNOT_LEAVE"
    assert await _count(test_db, Member) == 3


async def test_non_member_cannot_leave(test_db, clock, emitter, seeded):
    """Leaving a group you are not in is an authorization error."""
    store = _store(test_db, clock, emitter)
    with pytest.raises(AuthorizationError):
        await store.leave_group(seeded.group_id, uuid4())
