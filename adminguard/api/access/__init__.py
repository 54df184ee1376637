"""
ADMINGUARD - Access & Authority Module

Role-based access control, the access guard and audit logging.

Components:
- rbac.py: Roles, permissions, role -> permission table
- roles.py: Role records and the role store contract
- guard.py: Ordered authorization checks
- audit.py: Append-only audit trail

Usage:
    from adminguard.api.access import AccessGuard, Principal, AuthorizeOptions

    decision = AccessGuard().authorize(principal, "delete_user")
"""

from adminguard.api.access.rbac import (
    AdminRole,
    Permission,
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    get_role_permissions,
    has_permission,
    is_write_sensitive,
    resolve_permission,
    role_level,
)

from adminguard.api.access.roles import RoleRecord, RoleStore

from adminguard.api.access.guard import (
    AccessDecision,
    AccessGuard,
    AuthorizeOptions,
    Identity,
    Principal,
    SessionAccess,
    is_credential_fresh,
)

from adminguard.api.access.audit import (
    AuditAction,
    AuditLog,
    AuditLogEntry,
    AuditStore,
    InMemoryAuditStore,
    hash_ip,
)

__all__ = [
    # Roles and Permissions
    "AdminRole",
    "Permission",
    "ROLE_HIERARCHY",
    "ROLE_PERMISSIONS",
    "get_role_permissions",
    "has_permission",
    "is_write_sensitive",
    "resolve_permission",
    "role_level",
    "RoleRecord",
    "RoleStore",

    # Guard
    "AccessDecision",
    "AccessGuard",
    "AuthorizeOptions",
    "Identity",
    "Principal",
    "SessionAccess",
    "is_credential_fresh",

    # Audit
    "AuditAction",
    "AuditLog",
    "AuditLogEntry",
    "AuditStore",
    "InMemoryAuditStore",
    "hash_ip",
]
