"""Services Layer — imperative shell around the pure ledger core.

Invariants:
    - Every service receives its AsyncSession (and Clock) explicitly
    - Each mutation commits once; failures roll back before re-raising
    - Notifications are emitted only after the originating commit

Design Decisions:
    - One service per concern (store, balances, allocator, invitations, inbox)
"""
