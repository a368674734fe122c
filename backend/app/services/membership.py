"""Membership Helpers — roster reads, member guards and race-safe member insertion.

Invariants:
    - insert_member_if_absent never raises on a duplicate (group, user): the
      UNIQUE constraint decides, ON CONFLICT DO NOTHING absorbs the loser
    - require_member raises AuthorizationError (caller-facing check);
      expense_rules.ensure_members raises MembershipError (referenced users)
    - upsert_user keeps users.email in sync with the verified identity

Design Decisions:
    - Dialect-specific insert constructs (postgresql / sqlite) over
      try/except IntegrityError: no savepoint needed, no aborted transaction
    - Generic dialects fall back to a SAVEPOINT + IntegrityError check
"""

import logging
import uuid
from datetime import datetime
from uuid import UUID

from sqlalchemy import insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AuthorizationError, ErrorContext, NotFoundError
from app.infrastructure.database import dialect_name
from app.models.group import Group
from app.models.member import Member
from app.models.user import User

logger = logging.getLogger(__name__)

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def get_group_or_404(
    db: AsyncSession, group_id: UUID, *, for_update: bool = False,
) -> Group:
    query = select(Group).where(Group.id == group_id)
    if for_update:
        query = query.with_for_update()
    result = await db.execute(query)
    group = result.scalar_one_or_none()
    if not group:
        raise NotFoundError("Group", str(group_id))
    return group


async def load_roster(db: AsyncSession, group_id: UUID) -> dict[UUID, str]:
    """Map of user_id -> role for every member of the group."""
    result = await db.execute(
        select(Member.user_id, Member.role).where(Member.group_id == group_id),
    )
    return {user_id: role for user_id, role in result.all()}


async def require_member(
    db: AsyncSession, group_id: UUID, user_id: UUID,
) -> str:
    """Return the caller's role or raise AuthorizationError."""
    result = await db.execute(
        select(Member.role)
        .where(Member.group_id == group_id)
        .where(Member.user_id == user_id),
    )
    role = result.scalar_one_or_none()
    if role is None:
        raise AuthorizationError(
            "User is not a member of this group",
            ErrorContext(group_id=str(group_id), user_id=str(user_id)),
        )
    return role


async def email_is_member(db: AsyncSession, group_id: UUID, email: str) -> bool:
    result = await db.execute(
        select(Member.id)
        .join(User, User.id == Member.user_id)
        .where(Member.group_id == group_id)
        .where(User.email == email),
    )
    return result.first() is not None


async def insert_member_if_absent(
    db: AsyncSession,
    group_id: UUID,
    user_id: UUID,
    role: str,
    joined_at: datetime,
) -> bool:
    """Insert the membership row. Returns False when it already existed."""
    values = {
        "id": uuid.uuid4(),
        "group_id": group_id,
        "user_id": user_id,
        "role": role,
        "joined_at": joined_at,
    }
    dialect_insert = _UPSERT_INSERTS.get(dialect_name(db))
    if dialect_insert is not None:
        stmt = dialect_insert(Member).values(**values).on_conflict_do_nothing(
            index_elements=["group_id", "user_id"],
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    try:
        async with db.begin_nested():
            await db.execute(insert(Member).values(**values))
        return True
    except IntegrityError:
        logger.info(
            "Concurrent membership insert absorbed",
            extra={"group_id": group_id, "user_id": user_id},
        )
        return False


async def upsert_user(
    db: AsyncSession, user_id: UUID, email: str, display_name: str | None = None,
) -> None:
    """Mirror a verified identity into users (id is authoritative)."""
    dialect_insert = _UPSERT_INSERTS.get(dialect_name(db))
    if dialect_insert is None:
        existing = await db.get(User, user_id)
        if existing is None:
            db.add(User(id=user_id, email=email, display_name=display_name))
        else:
            existing.email = email
            if display_name:
                existing.display_name = display_name
        await db.flush()
        return

    updates = {"email": email}
    if display_name:
        updates["display_name"] = display_name
    stmt = dialect_insert(User).values(
        id=user_id, email=email, display_name=display_name,
    )
    stmt = stmt.on_conflict_do_update(index_elements=["id"], set_=updates)
    await db.execute(stmt)
