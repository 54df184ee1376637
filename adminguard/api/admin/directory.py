"""
User Directory

Contract for the external user-record store that privileged actions operate
on, plus the read models it returns. The store is opaque to the core and is
reached only through these calls.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Tuple


@dataclass(frozen=True)
class UserProfile:
    """End-user profile as held by the data store."""

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None
    uploads_disabled: bool = False
    subscription_status: Optional[str] = None
    subscription_tier: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class AuthSummary:
    """Identity-provider facts about an end user."""

    provider: str = "unknown"
    email_confirmed: bool = False
    last_sign_in_at: Optional[datetime] = None
    mfa_enabled: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ExportSnapshot:
    """Raw material for a debug export; redaction happens in the executor."""

    profile: UserProfile
    auth: AuthSummary = field(default_factory=AuthSummary)
    analysis_count: int = 0
    recent_analyses: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class UserDetails:
    """Everything the user detail screen shows about one end user."""

    profile: UserProfile
    email: Optional[str] = None
    analysis_count: int = 0
    recent_analyses: List[Dict[str, Any]] = field(default_factory=list)


class UserDirectory(Protocol):
    """
    Side-effecting operations on end-user records.

    Missing targets raise NotFoundError; store failures raise ExternalError.
    """

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        ...

    async def search_profiles(
        self, search: Optional[str] = None, limit: int = 20, offset: int = 0
    ) -> Tuple[List[UserProfile], int]:
        """Newest profiles first, matching an exact id or a partial email."""
        ...

    async def get_user_details(self, user_id: str) -> Optional[UserDetails]:
        ...

    async def delete_user(self, user_id: str) -> None:
        ...

    async def set_uploads_disabled(self, user_id: str, disabled: bool) -> None:
        ...

    async def load_export_snapshot(self, user_id: str) -> Optional[ExportSnapshot]:
        ...
