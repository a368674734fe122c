"""Group Schemas — group creation and the composed ledger view.

Invariants:
    - GroupCreate.name: 1-200 chars, stripped, non-empty
    - currency is a 3-letter code, upper-cased
    - GroupUpdate carries no created_by or currency field
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.expense import ExpenseResponse
from app.schemas.invitation import InvitationResponse
from app.schemas.settlement import SettlementResponse


class GroupCreate(BaseModel):
    """Group creation — the caller becomes creator and admin."""
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    category: str = Field("general", max_length=50)
    currency: str = Field("USD", pattern=r"^[A-Za-z]{3}$")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class GroupUpdate(BaseModel):
    """Partial edit; omitted fields keep their value. Creator and currency are fixed."""
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=2000)
    category: str | None = Field(None, max_length=50)


class GroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None = None
    category: str
    currency: str
    created_by: UUID
    created_at: datetime


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    email: str
    display_name: str | None = None
    role: str
    joined_at: datetime


class GroupLedgerResponse(BaseModel):
    """Everything the group page renders."""
    model_config = ConfigDict(from_attributes=True)

    group: GroupResponse
    members: list[MemberResponse]
    expenses: list[ExpenseResponse]
    settlements: list[SettlementResponse]
    pending_invitations: list[InvitationResponse]
