"""
ADMINGUARD - Role Store

Role records for admin principals and the store contract used to read them.
Lookups are never cached: a deactivated admin must be blocked on the very next
request.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Protocol

from adminguard.api.access.rbac import AdminRole


@dataclass(frozen=True)
class RoleRecord:
    """Admin role assignment for one principal."""

    principal_id: str
    role: AdminRole
    is_active: bool = True
    last_credential_change_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def with_changes(
        self,
        role: Optional[AdminRole] = None,
        is_active: Optional[bool] = None,
        updated_at: Optional[datetime] = None,
    ) -> "RoleRecord":
        """Copy of the record with the given fields replaced."""
        return replace(
            self,
            role=role if role is not None else self.role,
            is_active=is_active if is_active is not None else self.is_active,
            updated_at=updated_at or self.updated_at,
        )


class RoleStore(Protocol):
    """
    Read/write access to admin role records.

    get_role returns None for "not an admin". Infrastructure failures must raise
    ExternalError so they are never mistaken for a missing role.
    """

    async def get_role(self, principal_id: str) -> Optional[RoleRecord]:
        ...

    async def update_role(
        self,
        principal_id: str,
        role: Optional[AdminRole] = None,
        is_active: Optional[bool] = None,
    ) -> Optional[RoleRecord]:
        ...
