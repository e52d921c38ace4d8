"""Role based access table.

Every guarded operation has a name here and maps to the set of member
roles allowed to perform it.  Engines call :func:`require` at their
entry point instead of comparing roles inline, which keeps the whole
security model auditable in one file.
"""

from family_chores.errors import Unauthorized
from family_chores.models import Role

OP_CREATE_CHORE = "create_chore"
OP_EDIT_CHORE = "edit_chore"
OP_DELETE_CHORE = "delete_chore"
OP_SUBMIT_CHORE = "submit_chore"
OP_APPROVE_CHORE = "approve_chore"
OP_REJECT_CHORE = "reject_chore"
OP_EXPIRE_CHORES = "expire_chores"
OP_MANAGE_TEMPLATES = "manage_templates"
OP_ADJUST_POINTS = "adjust_points"
OP_RECONCILE_POINTS = "reconcile_points"
OP_MANAGE_OWN_WISHLIST = "manage_own_wishlist"
OP_MANAGE_ANY_WISHLIST = "manage_any_wishlist"
OP_FULFILL_FOR_MEMBER = "fulfill_for_member"
OP_MANAGE_WISHLIST_SETTINGS = "manage_wishlist_settings"

PARENT_ROLES = frozenset({Role.MOM, Role.DAD})
ADULT_ROLES = PARENT_ROLES | {Role.ADULT}
ALL_ROLES = frozenset(Role)

ROLE_PERMISSIONS = {
    OP_CREATE_CHORE: ADULT_ROLES,
    OP_EDIT_CHORE: ADULT_ROLES,
    OP_DELETE_CHORE: ADULT_ROLES,
    OP_SUBMIT_CHORE: ALL_ROLES,
    OP_APPROVE_CHORE: PARENT_ROLES,
    OP_REJECT_CHORE: PARENT_ROLES,
    OP_EXPIRE_CHORES: ADULT_ROLES,
    OP_MANAGE_TEMPLATES: ADULT_ROLES,
    OP_ADJUST_POINTS: PARENT_ROLES,
    OP_RECONCILE_POINTS: PARENT_ROLES,
    OP_MANAGE_OWN_WISHLIST: ALL_ROLES,
    OP_MANAGE_ANY_WISHLIST: PARENT_ROLES,
    OP_FULFILL_FOR_MEMBER: PARENT_ROLES,
    OP_MANAGE_WISHLIST_SETTINGS: PARENT_ROLES,
}


def is_allowed(role: Role | str, operation: str) -> bool:
    return Role(role) in ROLE_PERMISSIONS.get(operation, frozenset())


def require(role: Role | str, operation: str) -> None:
    """Raise :class:`Unauthorized` unless ``role`` may run ``operation``."""
    if not is_allowed(role, operation):
        raise Unauthorized(f"Role {Role(role).value} may not {operation}")
