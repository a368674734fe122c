"""Balance Schemas — per-pair balances for the calling member.

Invariants:
    - net_balance = amount_owed - amount_owes (positive: the other user owes you)
"""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel


class PairBalanceResponse(BaseModel):
    user_id: UUID
    amount_owed: Decimal
    amount_owes: Decimal
    net_balance: Decimal


class BalanceTotalsResponse(BaseModel):
    amount_owed: Decimal
    amount_owes: Decimal
    net_balance: Decimal


class BalanceReportResponse(BaseModel):
    user_id: UUID
    balances: list[PairBalanceResponse]
    totals: BalanceTotalsResponse
