"""Settlement Schemas — settle request and its allocation result."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class SettleRequest(BaseModel):
    """Settle up to `amount` of debtor's debt to creditor."""
    debtor_id: UUID
    creditor_id: UUID
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    description: str | None = Field(None, max_length=500)


class SettleResponse(BaseModel):
    settled_split_ids: list[UUID]
    settled_amount: Decimal
    remaining_amount: Decimal
    settlement_id: UUID | None = None
    warnings: list[str] = []


class SettlementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payer_id: UUID
    receiver_id: UUID
    amount: Decimal
    description: str | None = None
    settled_at: datetime
