"""Group ORM — the aggregate root of the ledger.

Invariants:
    - created_by is immutable once set
    - Deleting a Group cascades to members, expenses (and their splits),
      settlements and invitations

Design Decisions:
    - passive_deletes=True: the DB's ON DELETE CASCADE removes children, so
      deleting a group never lazy-loads collections in async context
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Group(Base):
    """Shared-expense context with a membership roster."""
    __tablename__ = "groups"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, default="general",
    )
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="USD",
    )
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    members: Mapped[list["Member"]] = relationship(
        "Member", back_populates="group",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    expenses: Mapped[list["Expense"]] = relationship(
        "Expense", back_populates="group",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    settlements: Mapped[list["Settlement"]] = relationship(
        "Settlement", cascade="all, delete-orphan", passive_deletes=True,
    )
    invitations: Mapped[list["Invitation"]] = relationship(
        "Invitation", cascade="all, delete-orphan", passive_deletes=True,
    )

    @validates("created_by")
    def _freeze_creator(self, key, value):
        if self.created_by is not None and self.created_by != value:
            raise ValueError("Group creator cannot be changed")
        return value
