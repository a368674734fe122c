"""Error Hierarchy — status codes, codes and the REST envelope."""

from app.core.errors import (
    AuthenticationError, AuthorizationError, ConcurrencyConflictError,
    DatabaseError, ErrorContext, LedgerError, MembershipError,
    NotFoundError, StateConflictError, ValidationError,
)


def test_every_error_is_a_ledger_error():
    """All error kinds share the base class and map to their status."""
    errors = [
        ValidationError("bad", "amount"),
        MembershipError("u", "g"),
        AuthenticationError(),
        AuthorizationError("no"),
        NotFoundError("Group", "g"),
        StateConflictError("gone", "INVITATION_EXPIRED"),
        DatabaseError("down", "commit"),
        ConcurrencyConflictError("busy"),
    ]
    assert all(isinstance(e, LedgerError) for e in errors)
    assert [e.http_status for e in errors] == [400, 422, 401, 403, 404, 409, 503, 409]


def test_codes_match_error_kind():
    """Each error kind carries its machine-readable code."""
    assert ValidationError("bad", "amount").code == "VALIDATION_ERROR"
    assert MembershipError("u", "g").code == "NOT_A_MEMBER"
    assert AuthorizationError("no").code == "FORBIDDEN"
    assert ConcurrencyConflictError("busy").code == "CONCURRENCY_CONFLICT"
    assert StateConflictError("x", "ALREADY_MEMBER").code == "ALREADY_MEMBER"


def test_to_response_envelope_carries_context():
    """The envelope includes category, timestamp and context fields."""
    err = ConcurrencyConflictError(
        "busy", ErrorContext(group_id="g1", user_id="u1", retry_after_ms=1000),
    )
    body = err.to_response()["error"]
    assert body["code"] == "CONCURRENCY_CONFLICT"
    assert body["category"] == "conflict"
    assert body["context"] == {
        "group_id": "g1", "user_id": "u1", "retry_after_ms": 1000,
    }
    assert "timestamp" in body


def test_database_error_message_names_operation():
    """DatabaseError names the failed operation and is critical."""
    err = DatabaseError("Connection or operational error", "execute")
    assert err.message == "Database execute failed: Connection or operational error"
    assert err.severity.value == "critical"
