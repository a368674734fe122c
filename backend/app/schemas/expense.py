"""Expense Schemas — request/response models for expense creation.

Invariants:
    - Amounts are Decimal with at most 2 decimal places; never float
    - splits non-empty; per-split and sum rules are enforced in core/expense_rules.py
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SplitInput(BaseModel):
    """One member's share of an expense."""
    user_id: UUID
    amount: Decimal = Field(max_digits=10, decimal_places=2)


class ExpenseCreate(BaseModel):
    """Expense creation — payer defaults to the caller."""
    payer_id: UUID | None = None
    description: str = Field(min_length=1, max_length=500)
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    category: str = Field("general", max_length=50)
    notes: str | None = Field(None, max_length=2000)
    splits: list[SplitInput] = Field(min_length=1)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description cannot be empty or whitespace")
        return v


class ExpenseCreatedResponse(BaseModel):
    expense_id: UUID
    warnings: list[str] = []


class SplitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    amount: Decimal
    is_settled: bool
    settled_at: datetime | None = None


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    payer_id: UUID
    description: str
    amount: Decimal
    category: str
    notes: str | None = None
    created_at: datetime
    splits: list[SplitResponse] = []
