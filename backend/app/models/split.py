"""Split ORM — one member's owed share of an expense.

Invariants:
    - amount >= 0 (CHECK); never modified after creation
    - is_settled transitions false -> true only, via the settlement allocator's
      compare-and-swap (services/settlement_allocator.attempt_settle)
    - settled_at is stamped in the same UPDATE that flips is_settled
    - UNIQUE(expense_id, user_id): one share per user per expense

Design Decisions:
    - created_at is the allocation order key (oldest debt first); indexed with
      user_id for the settlement candidate query
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean, Numeric, DateTime, ForeignKey, UniqueConstraint,
    CheckConstraint, Index,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class Split(Base):
    """Expense split entity."""
    __tablename__ = "expense_splits"
    __table_args__ = (
        UniqueConstraint("expense_id", "user_id", name="uq_expense_splits_expense_user"),
        CheckConstraint("amount >= 0", name="ck_expense_splits_amount_non_negative"),
        Index("ix_expense_splits_user_unsettled", "user_id", "is_settled", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    expense_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("expenses.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    is_settled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    settled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    expense: Mapped["Expense"] = relationship("Expense", back_populates="splits")
