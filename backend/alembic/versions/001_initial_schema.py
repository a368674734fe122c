"""Initial schema — users, groups, members, expenses, splits, settlements,
invitations, notifications.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    if nullable:
        return sa.Column(name, sa.DateTime(timezone=True), nullable=True)
    return sa.Column(
        name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(),
    )


def _fk(name: str, target: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name, UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete="CASCADE"), nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("display_name", sa.String(200), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "groups",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        _fk("created_by", "users.id"),
        _timestamp("created_at"),
    )

    op.create_table(
        "group_members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("group_id", "groups.id"),
        _fk("user_id", "users.id"),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        _timestamp("joined_at"),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_members_group_user"),
        sa.CheckConstraint("role IN ('admin', 'member')", name="ck_group_members_role"),
    )
    op.create_index("ix_group_members_group_id", "group_members", ["group_id"])
    op.create_index("ix_group_members_user_id", "group_members", ["user_id"])

    op.create_table(
        "expenses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("group_id", "groups.id"),
        _fk("payer_id", "users.id"),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("notes", sa.Text, nullable=True),
        _timestamp("created_at"),
        sa.CheckConstraint("amount > 0", name="ck_expenses_amount_positive"),
    )
    op.create_index("ix_expenses_group_id", "expenses", ["group_id"])
    op.create_index("ix_expenses_payer_id", "expenses", ["payer_id"])

    op.create_table(
        "expense_splits",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("expense_id", "expenses.id"),
        _fk("user_id", "users.id"),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("is_settled", sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamp("settled_at", nullable=True),
        _timestamp("created_at"),
        sa.UniqueConstraint("expense_id", "user_id", name="uq_expense_splits_expense_user"),
        sa.CheckConstraint("amount >= 0", name="ck_expense_splits_amount_non_negative"),
    )
    op.create_index("ix_expense_splits_expense_id", "expense_splits", ["expense_id"])
    op.create_index(
        "ix_expense_splits_user_unsettled", "expense_splits",
        ["user_id", "is_settled", "created_at"],
    )

    op.create_table(
        "settlements",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("group_id", "groups.id"),
        _fk("payer_id", "users.id"),
        _fk("receiver_id", "users.id"),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        _timestamp("settled_at"),
        sa.CheckConstraint("amount > 0", name="ck_settlements_amount_positive"),
        sa.CheckConstraint("payer_id <> receiver_id", name="ck_settlements_distinct_parties"),
    )
    op.create_index("ix_settlements_group_id", "settlements", ["group_id"])
    op.create_index("ix_settlements_payer_id", "settlements", ["payer_id"])
    op.create_index("ix_settlements_receiver_id", "settlements", ["receiver_id"])

    op.create_table(
        "invitations",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("group_id", "groups.id"),
        _fk("inviter_id", "users.id"),
        sa.Column("invitee_email", sa.String(320), nullable=False),
        sa.Column("invited_role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        _timestamp("created_at"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        _timestamp("accepted_at", nullable=True),
        _timestamp("responded_at", nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted', 'declined', 'expired')",
            name="ck_invitations_status",
        ),
        sa.CheckConstraint("invited_role IN ('admin', 'member')", name="ck_invitations_role"),
        sa.CheckConstraint(
            "expires_at > created_at", name="ck_invitations_expiry_after_creation",
        ),
    )
    op.create_index("ix_invitations_inviter_id", "invitations", ["inviter_id"])
    op.create_index("ix_invitations_group_email", "invitations", ["group_id", "invitee_email"])
    op.create_index("ix_invitations_status_expires", "invitations", ["status", "expires_at"])
    op.create_index(
        "uq_invitations_pending_group_email", "invitations",
        ["group_id", "invitee_email"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
    )

    op.create_table(
        "notifications",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _fk("user_id", "users.id"),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
    )
    op.create_index("ix_notifications_user_read", "notifications", ["user_id", "is_read"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("invitations")
    op.drop_table("settlements")
    op.drop_table("expense_splits")
    op.drop_table("expenses")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("users")
