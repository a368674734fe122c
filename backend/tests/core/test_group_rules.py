"""Group Rules — management rights and leaving.

Tests cover:
    - Creator and admins manage; plain members do not
    - The creator can never leave
    - Group names are stripped and must not be blank
"""

from uuid import uuid4

import pytest

from app.core.errors import AuthorizationError, StateConflictError, ValidationError
from app.core.group_rules import (
    clean_group_name, ensure_can_leave, ensure_can_manage_group, is_group_manager,
)

OWNER, OTHER = uuid4(), uuid4()


def test_creator_and_admin_are_managers():
    """The creator manages regardless of role; admins manage too."""
    assert is_group_manager(OWNER, OWNER, None)
    assert is_group_manager(OTHER, OWNER, "admin")
    assert not is_group_manager(OTHER, OWNER, "member")


def test_plain_member_cannot_manage():
    """A member role raises AuthorizationError."""
    with pytest.raises(AuthorizationError):
        ensure_can_manage_group(OTHER, OWNER, "member")


def test_owner_cannot_leave():
    """Leaving is refused for the creator with OWNER_CANNOT_LEAVE."""
    ensure_can_leave(OTHER, OWNER)
    with pytest.raises(StateConflictError) as exc:
        ensure_can_leave(OWNER, OWNER)
    assert exc.value.code == "OWNER_CANNOT_LEAVE"
    assert exc.value.http_status == 409


def test_group_name_stripped_and_required():
    """Whitespace is trimmed; a blank name is a validation error on 'name'."""
    assert clean_group_name("  Flat 3 ") == "Flat 3"
    with pytest.raises(ValidationError) as exc:
        clean_group_name("   ")
    assert exc.value.field == "name"
