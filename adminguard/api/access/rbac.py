"""
ADMINGUARD - Role-Based Access Control (RBAC)

Defines admin roles, permissions and the role -> permission table.
This is the authoritative source for access control data.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional


# ============================================================
# Permissions
# ============================================================


class Permission(str, Enum):
    """All permissions in the admin portal."""

    VIEW = "view"
    EDIT_PROFILE = "edit_profile"
    DISABLE_UPLOADS = "disable_uploads"
    DELETE_USER = "delete_user"
    EXPORT_DATA = "export_data"
    MANAGE_ROLES = "manage_roles"


# ============================================================
# Roles
# ============================================================


class AdminRole(str, Enum):
    """Admin roles, declared lowest first."""

    SUPPORT_READONLY = "support_readonly"
    SUPPORT_WRITE_LIMITED = "support_write_limited"
    ADMIN = "admin"


ROLE_HIERARCHY: List[AdminRole] = [
    AdminRole.SUPPORT_READONLY,
    AdminRole.SUPPORT_WRITE_LIMITED,
    AdminRole.ADMIN,
]


def role_level(role: AdminRole) -> int:
    """Position of a role in the hierarchy (0 is lowest)."""
    return ROLE_HIERARCHY.index(AdminRole(role))


def parse_role(value: str) -> Optional[AdminRole]:
    """Parse a stored role string, None when it is not a known role."""
    try:
        return AdminRole(value)
    except ValueError:
        return None


# ============================================================
# Role Permission Mappings
# ============================================================


# Permissions each role adds on top of the role below it.
ROLE_GRANTS: Dict[AdminRole, FrozenSet[Permission]] = {
    AdminRole.SUPPORT_READONLY: frozenset({
        Permission.VIEW,
    }),
    AdminRole.SUPPORT_WRITE_LIMITED: frozenset({
        Permission.EDIT_PROFILE,
        Permission.DISABLE_UPLOADS,
    }),
    AdminRole.ADMIN: frozenset({
        Permission.DELETE_USER,
        Permission.EXPORT_DATA,
        Permission.MANAGE_ROLES,
    }),
}


def _build_role_permissions() -> Dict[AdminRole, FrozenSet[Permission]]:
    """Accumulate grants up the hierarchy so higher roles inherit lower sets."""
    permissions: Dict[AdminRole, FrozenSet[Permission]] = {}
    inherited: FrozenSet[Permission] = frozenset()
    for role in ROLE_HIERARCHY:
        inherited = inherited | ROLE_GRANTS[role]
        permissions[role] = inherited
    return permissions


ROLE_PERMISSIONS: Dict[AdminRole, FrozenSet[Permission]] = _build_role_permissions()


# ============================================================
# Action Mapping
# ============================================================


# Concrete action names used by callers, mapped onto permissions.
ACTION_PERMISSIONS: Dict[str, Permission] = {
    "view_user": Permission.VIEW,
    "view_users": Permission.VIEW,
    "view_audit": Permission.VIEW,
    "search_users": Permission.VIEW,
    "delete_user": Permission.DELETE_USER,
    "edit_profile": Permission.EDIT_PROFILE,
    "disable_uploads": Permission.DISABLE_UPLOADS,
    "toggle_uploads": Permission.DISABLE_UPLOADS,
    "export_data": Permission.EXPORT_DATA,
    "manage_roles": Permission.MANAGE_ROLES,
}


def resolve_permission(action: str) -> Optional[Permission]:
    """Map an action name to its permission; unmapped names are the permission itself."""
    action = getattr(action, "value", action)
    if action in ACTION_PERMISSIONS:
        return ACTION_PERMISSIONS[action]
    try:
        return Permission(action)
    except ValueError:
        return None


def get_role_permissions(role: AdminRole) -> FrozenSet[Permission]:
    """Get all permissions for a role."""
    return ROLE_PERMISSIONS.get(AdminRole(role), frozenset())


def has_permission(role: AdminRole, permission: Permission) -> bool:
    """Check if a role carries a specific permission."""
    return permission in get_role_permissions(role)


# ============================================================
# Write-Sensitive Actions
# ============================================================


READ_ONLY_PERMISSIONS: FrozenSet[Permission] = frozenset({Permission.VIEW})


def is_write_sensitive(permission: Optional[Permission]) -> bool:
    """Every action except pure reads needs MFA and a fresh credential."""
    return permission not in READ_ONLY_PERMISSIONS


def can_assign_role(assigner_role: AdminRole, target_role: AdminRole) -> bool:
    """An assigner may grant roles up to and including their own level."""
    return role_level(target_role) <= role_level(assigner_role)
