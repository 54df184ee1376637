"""
ADMINGUARD - Access Guard

Decides whether an admin principal may perform an action. The guard is a pure
function of the principal facts, the action, the options and the static
permission table: it performs no I/O and writes no audit entries.

Checks run in a fixed order and the first failing one wins:

    1. role record exists
    2. role is active
    3. required role level (only when requested)
    4. MFA for write-sensitive actions
    5. credential freshness for write-sensitive actions
    6. role permission set
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from adminguard.api.access.rbac import (
    AdminRole,
    Permission,
    has_permission,
    is_write_sensitive,
    resolve_permission,
    role_level,
)
from adminguard.api.access.roles import RoleRecord


logger = logging.getLogger("ADMINGUARD_AccessGuard")


DEFAULT_CREDENTIAL_MAX_AGE_DAYS = 180

REASON_NOT_ADMIN = "not admin"
REASON_INACTIVE = "inactive"
REASON_INSUFFICIENT_ROLE = "insufficient role"
REASON_MFA_REQUIRED = "MFA required"
REASON_CREDENTIAL_ROTATION = "credential rotation required"


# ============================================================
# Decision Types
# ============================================================


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of a single authorization evaluation."""

    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


@dataclass(frozen=True)
class AuthorizeOptions:
    """Overrides for flows that run before MFA or credential setup is complete."""

    required_role: Optional[AdminRole] = None
    allow_pending_mfa: bool = False
    allow_expired_credential: bool = False


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as reported by the identity provider."""

    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class Principal:
    """An identity joined with its admin role record and MFA state."""

    id: str
    email: Optional[str]
    role_record: Optional[RoleRecord]
    has_mfa: bool = False

    @property
    def role(self) -> Optional[AdminRole]:
        return self.role_record.role if self.role_record else None

    @property
    def is_active(self) -> bool:
        return bool(self.role_record and self.role_record.is_active)

    @property
    def last_credential_change_at(self) -> Optional[datetime]:
        return self.role_record.last_credential_change_at if self.role_record else None


@dataclass(frozen=True)
class SessionAccess:
    """Result of the session-level guard used by protected screens."""

    decision: AccessDecision
    requires_action: Optional[str] = None


# ============================================================
# Credential Freshness
# ============================================================


def days_since(moment: datetime, now: datetime) -> float:
    """Fractional days elapsed between moment and now."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (now - moment).total_seconds() / 86400


def is_credential_fresh(
    last_change: Optional[datetime],
    now: datetime,
    max_age_days: int = DEFAULT_CREDENTIAL_MAX_AGE_DAYS,
) -> bool:
    """
    Check whether a credential was rotated within max_age_days.

    A missing timestamp counts as fresh: principals that sign in through OAuth
    or one-time codes never record a password change.
    """
    if last_change is None:
        return True
    return days_since(last_change, now) <= max_age_days


# ============================================================
# Access Guard
# ============================================================


class AccessGuard:
    """Evaluates role, account state, MFA and credential freshness."""

    def __init__(
        self,
        credential_max_age_days: int = DEFAULT_CREDENTIAL_MAX_AGE_DAYS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.credential_max_age_days = credential_max_age_days
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def authorize(
        self,
        principal: Principal,
        action: str,
        options: Optional[AuthorizeOptions] = None,
    ) -> AccessDecision:
        """Decide whether principal may perform action."""
        options = options or AuthorizeOptions()
        action_name = getattr(action, "value", action)
        permission = resolve_permission(action_name)

        decision = self._check_account(principal, options)
        if decision is not None:
            return decision

        if is_write_sensitive(permission):
            decision = self._check_mfa(principal, options)
            if decision is not None:
                return decision

            decision = self._check_freshness(principal, options)
            if decision is not None:
                return decision

        if permission is None or not has_permission(principal.role, permission):
            role_name = principal.role.value
            logger.debug(f"Permission denied: {role_name} -> {action_name}")
            return AccessDecision.deny(f"role {role_name} cannot {action_name}")

        return AccessDecision.allow()

    def verify_access(
        self,
        principal: Principal,
        options: Optional[AuthorizeOptions] = None,
    ) -> SessionAccess:
        """
        Session-level guard for protected screens.

        Runs the account, MFA and freshness checks regardless of action and
        reports which setup step is still outstanding, so that the MFA and
        password screens can be served under the matching override.
        """
        options = options or AuthorizeOptions()

        decision = (
            self._check_account(principal, options)
            or self._check_mfa(principal, options)
            or self._check_freshness(principal, options)
            or AccessDecision.allow()
        )

        requires_action = None
        if decision.allowed:
            if not principal.has_mfa:
                requires_action = "mfa"
            elif not self._is_fresh(principal):
                requires_action = "password"

        return SessionAccess(decision=decision, requires_action=requires_action)

    # ==================== Individual Checks ====================

    def _check_account(
        self, principal: Principal, options: AuthorizeOptions
    ) -> Optional[AccessDecision]:
        if principal.role_record is None:
            return AccessDecision.deny(REASON_NOT_ADMIN)

        if not principal.is_active:
            return AccessDecision.deny(REASON_INACTIVE)

        if options.required_role is not None:
            if role_level(principal.role) < role_level(options.required_role):
                return AccessDecision.deny(REASON_INSUFFICIENT_ROLE)

        return None

    def _check_mfa(
        self, principal: Principal, options: AuthorizeOptions
    ) -> Optional[AccessDecision]:
        if not principal.has_mfa and not options.allow_pending_mfa:
            return AccessDecision.deny(REASON_MFA_REQUIRED)
        return None

    def _check_freshness(
        self, principal: Principal, options: AuthorizeOptions
    ) -> Optional[AccessDecision]:
        if not self._is_fresh(principal) and not options.allow_expired_credential:
            return AccessDecision.deny(REASON_CREDENTIAL_ROTATION)
        return None

    def _is_fresh(self, principal: Principal) -> bool:
        return is_credential_fresh(
            principal.last_credential_change_at,
            self._clock(),
            self.credential_max_age_days,
        )
