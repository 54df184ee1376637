"""
Privileged Admin Actions

One executor per privileged operation on an end user or admin principal.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from adminguard.api.access.audit import AuditAction
from adminguard.api.access.guard import Principal
from adminguard.api.access.rbac import AdminRole, can_assign_role, parse_role, role_level
from adminguard.api.admin.executor import ActionExecutor, ActionOutcome, RequestContext
from adminguard.api.admin.redaction import redact_email, redact_name, sanitize_for_audit
from adminguard.api.admin.results import Result
from adminguard.api.exceptions import NotFoundError


logger = logging.getLogger("ADMINGUARD_Actions")

EXPORT_TYPE = "debug_summary"


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# ==================== Delete User ====================


class DeleteUserAction(ActionExecutor):
    """
    Delete an end user's identity and cascade their data.

    Deletion cannot be undone, so the audit entry is written after the side
    effect and an audit failure does not turn the deletion into an error.
    """

    action = "delete_user"
    audit_required = False

    def success_action(self, params: Dict[str, Any]) -> str:
        return AuditAction.USER_DELETE

    def failure_action(self, params: Dict[str, Any]) -> str:
        return AuditAction.USER_DELETE_FAILED

    async def perform(
        self, principal: Principal, target_id: str, params: Dict[str, Any]
    ) -> ActionOutcome:
        directory = self.deps.directory
        # A user without a profile still owns an identity to remove.
        profile = await directory.get_profile(target_id)

        await directory.delete_user(target_id)
        logger.info(f"User {target_id} deleted by {principal.id}")

        email = profile.email if profile else None
        return ActionOutcome(
            data={"user_id": target_id, "deleted": True},
            metadata={
                "deleted_email": redact_email(email) or "unknown",
                "deleted_by_admin": True,
            },
        )


# ==================== Toggle Uploads ====================


class ToggleUploadsAction(ActionExecutor):
    """Enable or disable video uploads for an end user."""

    action = "disable_uploads"
    audit_required = True

    @staticmethod
    def _disable(params: Dict[str, Any]) -> bool:
        return bool(params["disable"])

    async def execute(
        self,
        actor_token: str,
        target_id: str,
        params: Optional[Dict[str, Any]] = None,
        request: Optional[RequestContext] = None,
    ) -> Result:
        if params is None or params.get("disable") is None:
            raise ValueError("disable must be given explicitly")
        return await super().execute(actor_token, target_id, params, request)

    def success_action(self, params: Dict[str, Any]) -> str:
        if self._disable(params):
            return AuditAction.UPLOADS_DISABLED
        return AuditAction.UPLOADS_ENABLED

    def failure_action(self, params: Dict[str, Any]) -> str:
        if self._disable(params):
            return AuditAction.UPLOADS_DISABLE_FAILED
        return AuditAction.UPLOADS_ENABLE_FAILED

    async def perform(
        self, principal: Principal, target_id: str, params: Dict[str, Any]
    ) -> ActionOutcome:
        disable = self._disable(params)
        directory = self.deps.directory

        profile = await directory.get_profile(target_id)
        if profile is None:
            raise NotFoundError(f"User {target_id} not found", code="USER_NOT_FOUND")

        await directory.set_uploads_disabled(target_id, disable)

        return ActionOutcome(
            data={
                "user_id": target_id,
                "uploads_disabled": disable,
                "previous_uploads_disabled": profile.uploads_disabled,
            },
            metadata={"new_state": "disabled" if disable else "enabled"},
        )

    async def compensate(
        self, principal: Principal, target_id: str, params: Dict[str, Any], outcome: ActionOutcome
    ) -> bool:
        previous = outcome.data["previous_uploads_disabled"]
        await self.deps.directory.set_uploads_disabled(target_id, previous)
        return True


# ==================== Export Data ====================


class ExportUserDataAction(ActionExecutor):
    """
    Build a redacted, read-only debug export of an end user's data.

    The export is only handed back once its DATA_EXPORT entry is durable.
    """

    action = "export_data"
    audit_required = True

    def success_action(self, params: Dict[str, Any]) -> str:
        return AuditAction.DATA_EXPORT

    def failure_action(self, params: Dict[str, Any]) -> str:
        return AuditAction.DATA_EXPORT_FAILED

    async def perform(
        self, principal: Principal, target_id: str, params: Dict[str, Any]
    ) -> ActionOutcome:
        snapshot = await self.deps.directory.load_export_snapshot(target_id)
        if snapshot is None:
            raise NotFoundError(f"User {target_id} not found", code="USER_NOT_FOUND")

        profile = snapshot.profile
        auth = snapshot.auth
        export = {
            "export_generated_at": datetime.now(timezone.utc).isoformat(),
            "export_generated_by": principal.id,
            "user": {
                "id": target_id,
                "email_redacted": redact_email(profile.email),
                "full_name_redacted": redact_name(profile.full_name),
                "created_at": _isoformat(profile.created_at),
                "updated_at": _isoformat(profile.updated_at),
                "uploads_disabled": profile.uploads_disabled,
                "subscription_status": profile.subscription_status,
                "subscription_tier": profile.subscription_tier,
            },
            "auth": {
                "provider": auth.provider,
                "email_confirmed": auth.email_confirmed,
                "last_sign_in": _isoformat(auth.last_sign_in_at),
                "mfa_enabled": auth.mfa_enabled,
                "created_at": _isoformat(auth.created_at),
            },
            "analyses": {
                "total_count": snapshot.analysis_count,
                "recent": sanitize_for_audit(snapshot.recent_analyses),
            },
        }

        return ActionOutcome(data=export, metadata={"export_type": EXPORT_TYPE})


# ==================== Manage Roles ====================


class UpdateRoleAction(ActionExecutor):
    """Change another admin's role or active flag."""

    action = "manage_roles"
    required_role = AdminRole.ADMIN
    audit_required = True

    def success_action(self, params: Dict[str, Any]) -> str:
        return AuditAction.ROLE_UPDATED

    def failure_action(self, params: Dict[str, Any]) -> str:
        return AuditAction.ROLE_UPDATE_FAILED

    def precheck(
        self, principal: Principal, target_id: str, params: Dict[str, Any]
    ) -> Optional[str]:
        new_role = params.get("role")
        if new_role is not None:
            parsed = parse_role(new_role)
            if parsed is None:
                return f"unknown role {new_role}"
            if not can_assign_role(principal.role, parsed):
                return f"role {principal.role.value} cannot assign {parsed.value}"

        if target_id == principal.id:
            if params.get("is_active") is False:
                return "cannot deactivate own admin role"
            if new_role is not None and role_level(parse_role(new_role)) < role_level(principal.role):
                return "cannot lower own admin role"

        return None

    async def perform(
        self, principal: Principal, target_id: str, params: Dict[str, Any]
    ) -> ActionOutcome:
        roles = self.deps.roles
        current = await roles.get_role(target_id)
        if current is None:
            raise NotFoundError(f"Admin role for {target_id} not found", code="ROLE_NOT_FOUND")

        new_role = parse_role(params["role"]) if params.get("role") is not None else None
        is_active = params.get("is_active")

        updated = await roles.update_role(target_id, role=new_role, is_active=is_active)
        if updated is None:
            raise NotFoundError(f"Admin role for {target_id} not found", code="ROLE_NOT_FOUND")

        return ActionOutcome(
            data={
                "principal_id": target_id,
                "role": updated.role.value,
                "is_active": updated.is_active,
                "previous_role": current.role.value,
                "previous_is_active": current.is_active,
            },
            metadata={
                "previous_role": current.role.value,
                "new_role": updated.role.value,
                "is_active": updated.is_active,
            },
        )

    async def compensate(
        self, principal: Principal, target_id: str, params: Dict[str, Any], outcome: ActionOutcome
    ) -> bool:
        restored = await self.deps.roles.update_role(
            target_id,
            role=AdminRole(outcome.data["previous_role"]),
            is_active=outcome.data["previous_is_active"],
        )
        return restored is not None
