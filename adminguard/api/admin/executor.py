"""
Action Executor

Base class for privileged actions. Every execution follows the same path:

    resolve actor -> authorize -> perform side effect -> audit -> result

A denial returns Forbidden without touching the data store. Once the side
effect has been attempted, exactly one audit entry is written whose action
name encodes the outcome (`<ACTION>` or `<ACTION>_FAILED`).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, Optional, TypeVar, Union

from adminguard.api.access.audit import AuditAction, AuditLog, AuditLogEntry, hash_ip
from adminguard.api.access.guard import (
    AccessGuard,
    AuthorizeOptions,
    Identity,
    Principal,
)
from adminguard.api.access.rbac import AdminRole
from adminguard.api.access.roles import RoleStore
from adminguard.api.admin.directory import UserDirectory
from adminguard.api.admin.results import (
    Err,
    ErrorKind,
    MSG_ACTION_FAILED,
    MSG_AUDIT_UNAVAILABLE,
    MSG_NOT_FOUND,
    MSG_UNAUTHENTICATED,
    Ok,
    Result,
)
from adminguard.api.auth.service import MfaChecker, PrincipalResolver
from adminguard.api.exceptions import (
    AdminGuardError,
    AuditWriteError,
    ExternalError,
    ExternalTimeoutError,
    NotFoundError,
    UnauthenticatedError,
)


logger = logging.getLogger("ADMINGUARD_Executor")

T = TypeVar("T")


@dataclass
class RequestContext:
    """Client facts attached to audit entries."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


@dataclass
class ActionOutcome:
    """What a side effect produced: caller payload and audit metadata."""

    data: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ActionDependencies:
    """External collaborators shared by all executors."""

    resolver: PrincipalResolver
    roles: RoleStore
    mfa: MfaChecker
    directory: UserDirectory
    audit_log: AuditLog
    guard: AccessGuard = field(default_factory=AccessGuard)
    timeout_sec: Optional[float] = None
    log_denials: bool = True
    ip_hash_salt: str = ""


class AdminOperation:
    """Shared plumbing: collaborator timeouts and caller resolution."""

    action: str = ""

    def __init__(self, deps: ActionDependencies):
        self.deps = deps

    async def authenticate(self, actor_token: str) -> Union[Principal, Err]:
        """Resolve the caller into a Principal, or an Err for the caller."""
        try:
            identity = await self._call(self.deps.resolver.lookup_principal(actor_token))
        except UnauthenticatedError:
            return Err(ErrorKind.UNAUTHENTICATED, MSG_UNAUTHENTICATED)
        except ExternalError as e:
            logger.error(f"Principal lookup failed for {self.action}: {e}")
            return Err(ErrorKind.EXTERNAL_ERROR, MSG_ACTION_FAILED)

        try:
            return await self._resolve_principal(identity)
        except ExternalError as e:
            logger.error(f"Role lookup failed for {identity.id}: {e}")
            return Err(ErrorKind.EXTERNAL_ERROR, MSG_ACTION_FAILED)

    async def _resolve_principal(self, identity: Identity) -> Principal:
        role_record = await self._call(self.deps.roles.get_role(identity.id))
        has_mfa = False
        if role_record is not None:
            has_mfa = bool(await self._call(self.deps.mfa.check_mfa_enabled(identity.id)))
        return Principal(
            id=identity.id,
            email=identity.email,
            role_record=role_record,
            has_mfa=has_mfa,
        )

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Await a collaborator call under the configured time budget."""
        if self.deps.timeout_sec is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.deps.timeout_sec)
        except asyncio.TimeoutError as e:
            raise ExternalTimeoutError(
                f"{self.action} collaborator call exceeded {self.deps.timeout_sec}s"
            ) from e

    def _entry(
        self,
        action: str,
        principal: Principal,
        target_id: Optional[str],
        metadata: Dict[str, Any],
        request: RequestContext,
    ) -> AuditLogEntry:
        return AuditLogEntry.create(
            action=action,
            actor_id=principal.id,
            actor_role=principal.role.value if principal.role else "none",
            target_id=target_id,
            metadata=metadata,
            ip_hash=hash_ip(request.ip_address, self.deps.ip_hash_salt),
            user_agent=request.user_agent,
        )


class ActionExecutor(AdminOperation):
    """
    Wraps one privileged side effect with authorization and auditing.

    Subclasses set `action` (the permission-bearing action name) and implement
    perform(). `audit_required` marks action classes whose success may not be
    confirmed unless its audit entry is durable; for those, compensate() is
    given a chance to undo the side effect when the audit write fails.
    """

    required_role: Optional[AdminRole] = None
    audit_required: bool = False

    # ==================== Subclass Hooks ====================

    def success_action(self, params: Dict[str, Any]) -> str:
        raise NotImplementedError

    def failure_action(self, params: Dict[str, Any]) -> str:
        raise NotImplementedError

    def authorize_options(self, params: Dict[str, Any]) -> AuthorizeOptions:
        return AuthorizeOptions(required_role=self.required_role)

    def precheck(
        self, principal: Principal, target_id: str, params: Dict[str, Any]
    ) -> Optional[str]:
        """Action-specific denial reason, checked after the guard allows."""
        return None

    async def perform(
        self, principal: Principal, target_id: str, params: Dict[str, Any]
    ) -> ActionOutcome:
        raise NotImplementedError

    async def compensate(
        self, principal: Principal, target_id: str, params: Dict[str, Any], outcome: ActionOutcome
    ) -> bool:
        """Undo a confirmed side effect; return True when it was undone."""
        return False

    # ==================== Execution ====================

    async def execute(
        self,
        actor_token: str,
        target_id: str,
        params: Optional[Dict[str, Any]] = None,
        request: Optional[RequestContext] = None,
    ) -> Result:
        """Run the action on behalf of the caller identified by actor_token."""
        params = dict(params or {})
        request = request or RequestContext()

        principal = await self.authenticate(actor_token)
        if isinstance(principal, Err):
            return principal

        decision = self.deps.guard.authorize(principal, self.action, self.authorize_options(params))
        reason = decision.reason if not decision.allowed else self.precheck(principal, target_id, params)
        if reason is not None:
            await self._record_denial(principal, target_id, reason, request)
            return Err(ErrorKind.FORBIDDEN, reason)

        return await self._perform_and_audit(principal, target_id, params, request)

    async def _perform_and_audit(
        self,
        principal: Principal,
        target_id: str,
        params: Dict[str, Any],
        request: RequestContext,
    ) -> Result:
        try:
            outcome = await self._call(self.perform(principal, target_id, params))
        except NotFoundError as e:
            audit_id = await self._record_failure(principal, target_id, params, request, e)
            return Err(ErrorKind.NOT_FOUND, MSG_NOT_FOUND, audit_id=audit_id)
        except ExternalError as e:
            logger.error(f"{self.action} failed for target {target_id}: {e}")
            audit_id = await self._record_failure(principal, target_id, params, request, e)
            return Err(ErrorKind.EXTERNAL_ERROR, MSG_ACTION_FAILED, audit_id=audit_id)
        except Exception as e:
            logger.exception(f"Unexpected error during {self.action} on target {target_id}")
            await self._record_failure(principal, target_id, params, request, e)
            raise

        entry = self._entry(
            self.success_action(params), principal, target_id, outcome.metadata, request
        )
        try:
            audit_id = await self.deps.audit_log.record(entry)
        except AuditWriteError:
            if not self.audit_required:
                logger.error(
                    f"{entry.action} on target {target_id} completed without a durable audit entry"
                )
                return Ok(outcome.data)
            undone = await self._compensate(principal, target_id, params, outcome)
            logger.error(
                f"{entry.action} on target {target_id} not confirmed: audit write failed "
                f"(side effect {'reverted' if undone else 'kept'})"
            )
            return Err(ErrorKind.AUDIT_WRITE_ERROR, MSG_AUDIT_UNAVAILABLE)

        data = dict(outcome.data)
        data.setdefault("audit_id", audit_id)
        return Ok(data)

    async def _compensate(
        self,
        principal: Principal,
        target_id: str,
        params: Dict[str, Any],
        outcome: ActionOutcome,
    ) -> bool:
        try:
            return await self._call(self.compensate(principal, target_id, params, outcome))
        except AdminGuardError as e:
            logger.error(f"Could not revert {self.action} on target {target_id}: {e}")
            return False

    # ==================== Audit Helpers ====================

    async def _record_failure(
        self,
        principal: Principal,
        target_id: str,
        params: Dict[str, Any],
        request: RequestContext,
        error: Exception,
    ) -> Optional[str]:
        message = getattr(error, "message", None) or str(error) or type(error).__name__
        entry = self._entry(
            self.failure_action(params), principal, target_id, {"error": message}, request
        )
        try:
            return await self.deps.audit_log.record(entry)
        except AuditWriteError:
            # Already escalated by AuditLog; the original error is what the caller sees.
            return None

    async def _record_denial(
        self,
        principal: Principal,
        target_id: str,
        reason: str,
        request: RequestContext,
    ) -> None:
        logger.info(f"Denied {self.action} for {principal.id}: {reason}")
        if not self.deps.log_denials:
            return

        entry = self._entry(
            AuditAction.UNAUTHORIZED_ACCESS,
            principal,
            target_id,
            {"attempted_action": self.action, "reason": reason},
            request,
        )
        try:
            await self.deps.audit_log.record(entry)
        except AuditWriteError:
            logger.warning(f"Denial of {self.action} for {principal.id} was not recorded")

