"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (identity headers aside, all input arrives here)
    - Money fields are Decimal, serialised as strings

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
