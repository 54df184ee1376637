"""
Admin Service

Read-side admin operations: session verification for protected screens,
browsing end users and browsing the audit trail.
"""

import logging
import math
from typing import Any, Dict, Optional, Union

from adminguard.api.access.audit import AuditAction
from adminguard.api.access.guard import AuthorizeOptions, Principal
from adminguard.api.access.rbac import AdminRole, Permission, has_permission
from adminguard.api.admin.directory import UserProfile
from adminguard.api.admin.executor import ActionDependencies, AdminOperation, RequestContext
from adminguard.api.admin.redaction import redact_email
from adminguard.api.admin.results import (
    Err,
    ErrorKind,
    MSG_ACTION_FAILED,
    MSG_NOT_FOUND,
    Ok,
    Result,
)
from adminguard.api.exceptions import AuditWriteError, ExternalError


logger = logging.getLogger("ADMINGUARD_AdminService")


class SessionService(AdminOperation):
    """Session-level guard for protected screens."""

    action = "view"

    async def verify_session(
        self,
        actor_token: str,
        options: Optional[AuthorizeOptions] = None,
    ) -> Result:
        """
        Check that the caller may use the admin portal at all.

        On success the payload names the caller's role and any setup step
        ("mfa" or "password") still outstanding under the given overrides.
        """
        principal = await self.authenticate(actor_token)
        if isinstance(principal, Err):
            return principal

        access = self.deps.guard.verify_access(principal, options)
        if not access.decision.allowed:
            return Err(ErrorKind.FORBIDDEN, access.decision.reason)

        return Ok({
            "id": principal.id,
            "email": principal.email,
            "role": principal.role.value,
            "is_active": principal.is_active,
            "has_mfa": principal.has_mfa,
            "requires_action": access.requires_action,
        })


class AuditTrailService(AdminOperation):
    """Browse the audit trail; restricted to the admin role."""

    action = "view_audit"

    async def list_entries(
        self,
        actor_token: str,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        page: int = 1,
    ) -> Result:
        """Page through audit entries, newest first."""
        principal = await self.authenticate(actor_token)
        if isinstance(principal, Err):
            return principal

        decision = self.deps.guard.authorize(
            principal,
            self.action,
            AuthorizeOptions(required_role=AdminRole.ADMIN),
        )
        if not decision.allowed:
            return Err(ErrorKind.FORBIDDEN, decision.reason)

        audit_log = self.deps.audit_log
        page = max(page, 1)
        try:
            entries, total = await self._call(
                audit_log.query(action=action, actor_id=actor_id, page=page)
            )
            actions = await self._call(audit_log.distinct_actions())
        except ExternalError as e:
            logger.error(f"Audit query failed: {e}")
            return Err(ErrorKind.EXTERNAL_ERROR, MSG_ACTION_FAILED)

        page_size = audit_log.page_size
        return Ok({
            "entries": [entry.to_dict() for entry in entries],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": math.ceil(total / page_size) if total > 0 else 1,
            "actions": actions,
        })


USER_PAGE_SIZE = 20


class UserBrowserService(AdminOperation):
    """
    User list, search and detail screens, open to every admin role.

    Searches and detail views leave USER_SEARCH and USER_VIEW entries. These
    are reads, so an audit outage is escalated by the audit log but does not
    hide the screen.
    """

    action = "view_users"

    def __init__(self, deps: ActionDependencies, page_size: int = USER_PAGE_SIZE):
        super().__init__(deps)
        self.page_size = page_size

    async def _viewer(self, actor_token: str, action: str) -> Union[Principal, Err]:
        principal = await self.authenticate(actor_token)
        if isinstance(principal, Err):
            return principal

        decision = self.deps.guard.authorize(principal, action)
        if not decision.allowed:
            return Err(ErrorKind.FORBIDDEN, decision.reason)
        return principal

    async def _record_read(
        self,
        action: AuditAction,
        principal: Principal,
        target_id: Optional[str],
        metadata: Dict[str, Any],
        request: Optional[RequestContext],
    ) -> Optional[str]:
        entry = self._entry(action, principal, target_id, metadata, request or RequestContext())
        try:
            return await self.deps.audit_log.record(entry)
        except AuditWriteError:
            logger.error(f"{entry.action} by {principal.id} served without an audit entry")
            return None

    async def search_users(
        self,
        actor_token: str,
        search: Optional[str] = None,
        page: int = 1,
        request: Optional[RequestContext] = None,
    ) -> Result:
        """Page through end users newest first, optionally matching id or email."""
        principal = await self._viewer(actor_token, "search_users" if search else "view_users")
        if isinstance(principal, Err):
            return principal

        search = (search or "").strip() or None
        page = max(page, 1)
        try:
            profiles, total = await self._call(
                self.deps.directory.search_profiles(
                    search, limit=self.page_size, offset=(page - 1) * self.page_size
                )
            )
        except ExternalError as e:
            logger.error(f"User search failed: {e}")
            return Err(ErrorKind.EXTERNAL_ERROR, MSG_ACTION_FAILED)

        if search:
            await self._record_read(
                AuditAction.USER_SEARCH,
                principal,
                None,
                {"search_query": search, "results_count": len(profiles)},
                request,
            )

        return Ok({
            "users": [_profile_dict(p) for p in profiles],
            "total": total,
            "page": page,
            "page_size": self.page_size,
            "total_pages": math.ceil(total / self.page_size) if total > 0 else 1,
            "search": search,
        })

    async def view_user(
        self,
        actor_token: str,
        user_id: str,
        request: Optional[RequestContext] = None,
    ) -> Result:
        """Load one end user's profile and recent analyses."""
        principal = await self._viewer(actor_token, "view_user")
        if isinstance(principal, Err):
            return principal

        try:
            details = await self._call(self.deps.directory.get_user_details(user_id))
        except ExternalError as e:
            logger.error(f"User detail lookup failed for {user_id}: {e}")
            return Err(ErrorKind.EXTERNAL_ERROR, MSG_ACTION_FAILED)
        if details is None:
            return Err(ErrorKind.NOT_FOUND, MSG_NOT_FOUND)

        await self._record_read(
            AuditAction.USER_VIEW,
            principal,
            user_id,
            {"email": redact_email(details.email)},
            request,
        )

        return Ok({
            "user": _profile_dict(details.profile),
            "email": details.email,
            "analysis_count": details.analysis_count,
            "recent_analyses": details.recent_analyses,
            "can_write": has_permission(principal.role, Permission.DISABLE_UPLOADS),
            "can_delete": has_permission(principal.role, Permission.DELETE_USER),
        })


def _profile_dict(profile: UserProfile) -> Dict[str, Any]:
    return {
        "id": profile.id,
        "email": profile.email,
        "full_name": profile.full_name,
        "uploads_disabled": profile.uploads_disabled,
        "subscription_status": profile.subscription_status,
        "subscription_tier": profile.subscription_tier,
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
    }
