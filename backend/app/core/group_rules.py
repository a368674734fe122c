"""Group Rules — who may manage a group and who may leave it.

Invariants:
    - The creator and admins manage the group (edit details, invite, remind)
    - The creator can never leave; the group must be deleted instead
    - created_by never changes, so ownership cannot be transferred by an edit
"""

from uuid import UUID

from app.core.domain_types import MemberRole
from app.core.errors import AuthorizationError, StateConflictError, ValidationError


def is_group_manager(user_id: UUID, creator_id: UUID, role: str | None) -> bool:
    return user_id == creator_id or role == MemberRole.ADMIN.value


def ensure_can_manage_group(user_id: UUID, creator_id: UUID, role: str | None) -> None:
    if not is_group_manager(user_id, creator_id, role):
        raise AuthorizationError("Only group owners/admins can change group details")


def ensure_can_leave(user_id: UUID, creator_id: UUID) -> None:
    if user_id == creator_id:
        raise StateConflictError(
            "Group owner cannot leave the group; delete the group instead",
            "OWNER_CANNOT_LEAVE",
        )


def clean_group_name(name: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError("Group name cannot be empty", "name")
    return cleaned
