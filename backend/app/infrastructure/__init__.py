"""Infrastructure Layer — database, locking, delivery and cross-cutting concerns.

Invariants:
    - Infrastructure imports only errors and pure helpers from core/
    - Outbound calls and lock contention wrapped with retry/timeout/error mapping

Design Decisions:
    - Resilient wrappers over raw clients (ADR: single responsibility)
"""
