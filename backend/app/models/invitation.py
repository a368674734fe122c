"""Invitation ORM — token-bearing offer for a non-member to join a group.

Invariants:
    - token is unique and unguessable (secrets.token_urlsafe)
    - invitee_email stored lower-case
    - status in {pending, accepted, declined, expired}; only pending is non-terminal
    - At most one active (pending, unexpired) invitation per (group_id, invitee_email);
      checked under the group row lock in services/invitation_service.py and
      backed by a partial unique index over pending rows
    - expires_at > created_at (CHECK)

Design Decisions:
    - String status + CHECK over a native enum type: portable to SQLite test DBs
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, ForeignKey, CheckConstraint, Index, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Invitation(Base):
    """Group invitation entity."""
    __tablename__ = "invitations"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'expired')",
            name="ck_invitations_status",
        ),
        CheckConstraint(
            "invited_role IN ('admin', 'member')", name="ck_invitations_role",
        ),
        CheckConstraint("expires_at > created_at", name="ck_invitations_expiry_after_creation"),
        Index("ix_invitations_group_email", "group_id", "invitee_email"),
        Index("ix_invitations_status_expires", "status", "expires_at"),
        Index(
            "uq_invitations_pending_group_email",
            "group_id", "invitee_email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    group_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
    )
    inviter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    invitee_email: Mapped[str] = mapped_column(String(320), nullable=False)
    invited_role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="member",
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )
    token: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
