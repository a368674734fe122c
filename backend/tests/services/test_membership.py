"""Membership Helpers — race-safe member insertion and identity mirroring."""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from app.core.errors import AuthorizationError, NotFoundError
from app.models.member import Member
from app.models.user import User
from app.services.membership import (
    email_is_member, get_group_or_404, insert_member_if_absent,
    load_roster, require_member, upsert_user,
)


async def test_duplicate_member_insert_is_absorbed(test_db, clock, seeded):
    """A second insert for the same user is a no-op and keeps the first role."""
    dave = uuid4()
    test_db.add(User(id=dave, email="dave@example.com"))
    await test_db.commit()

    first = await insert_member_if_absent(
        test_db, seeded.group_id, dave, "member", clock.now(),
    )
    second = await insert_member_if_absent(
        test_db, seeded.group_id, dave, "admin", clock.now(),
    )
    await test_db.commit()

    assert (first, second) == (True, False)
    rows = (await test_db.execute(
        select(func.count(Member.id), func.max(Member.role))
        .where(Member.group_id == seeded.group_id)
        .where(Member.user_id == dave),
    )).one()
    assert tuple(rows) == (1, "member")


async def test_roster_and_guards(test_db, seeded):
    """Roster, role lookup and email checks read the seeded group."""
    roster = await load_roster(test_db, seeded.group_id)
    assert roster == {seeded.alice: "admin", seeded.bob: "member", seeded.carol: "member"}
    assert await require_member(test_db, seeded.group_id, seeded.bob) == "member"
    assert await email_is_member(test_db, seeded.group_id, "carol@example.com")
    assert not await email_is_member(test_db, seeded.group_id, "dave@example.com")

    with pytest.raises(AuthorizationError):
        await require_member(test_db, seeded.group_id, uuid4())
    with pytest.raises(NotFoundError):
        await get_group_or_404(test_db, uuid4())


async def test_upsert_user_inserts_then_updates(test_db):
    """Upsert creates the user, then updates email without clearing the name."""
    user_id = uuid4()
    await upsert_user(test_db, user_id, "dave@example.com", "Dave")
    await upsert_user(test_db, user_id, "dave@new.example.com")
    await test_db.commit()

    email, name = (await test_db.execute(
        select(User.email, User.display_name).where(User.id == user_id),
    )).one()
    assert email == "dave@new.example.com"
    assert name == "Dave"
