"""
Admin Schemas

Pydantic models for the admin request layer.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from adminguard.api.access.rbac import AdminRole


# ==================== Requests ====================


class ToggleUploadsRequest(BaseModel):
    """Enable or disable uploads for a user."""

    disable: bool


class RoleUpdateRequest(BaseModel):
    """Change an admin's role or active flag."""

    role: Optional[AdminRole] = None
    is_active: Optional[bool] = None


# ==================== Responses ====================


class ActionResponse(BaseModel):
    """Result of a privileged action."""

    success: bool = True
    data: Dict[str, Any] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    """Caller's admin session state."""

    id: str
    email: Optional[str] = None
    role: AdminRole
    is_active: bool
    has_mfa: bool
    requires_action: Optional[str] = None


class AuditEntryResponse(BaseModel):
    """Audit entry as shown in the audit browser."""

    id: str
    created_at: str
    actor_id: Optional[str] = None
    actor_role: str
    action: str
    target_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    ip_hash: Optional[str] = None
    user_agent: Optional[str] = None


class AuditListResponse(BaseModel):
    """Paginated audit entries."""

    entries: List[AuditEntryResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    actions: List[str] = Field(default_factory=list)


class UserSummaryResponse(BaseModel):
    """End user as listed in the user browser."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    uploads_disabled: bool = False
    subscription_status: Optional[str] = None
    subscription_tier: Optional[str] = None
    created_at: Optional[str] = None


class UserListResponse(BaseModel):
    """Paginated end users."""

    users: List[UserSummaryResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
    search: Optional[str] = None


class UserDetailResponse(BaseModel):
    """One end user with recent activity and the caller's allowed actions."""

    user: UserSummaryResponse
    email: Optional[str] = None
    analysis_count: int = 0
    recent_analyses: List[Dict[str, Any]] = Field(default_factory=list)
    can_write: bool = False
    can_delete: bool = False
