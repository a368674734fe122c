"""User ORM — local mirror of identities verified by the upstream identity service.

Invariants:
    - id is the identity provider's user id (never generated here)
    - email is unique and stored lower-case

Design Decisions:
    - Upserted from request headers on every call (api/dependencies.py), so
      invitations can resolve "is this email already a member?" with a join
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from app.db.base import Base


class User(Base):
    """Verified user known to the ledger."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    email: Mapped[str] = mapped_column(
        String(320), nullable=False, unique=True,
    )
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
