"""API Layer — FastAPI routes, identity dependencies and error handlers.

Invariants:
    - Routes registered explicitly in main.py (no auto-discovery)
    - All endpoints return structured JSON; errors use the LedgerError envelope

Design Decisions:
    - Thin routes delegate to services; identity resolved once per request
"""
