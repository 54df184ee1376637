"""
FastAPI Dependencies

Wires the core's collaborators for each request.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import async_sessionmaker

from adminguard.api.access.audit import AuditLog
from adminguard.api.access.guard import AccessGuard
from adminguard.api.admin.executor import ActionDependencies, RequestContext
from adminguard.api.auth.service import JwtPrincipalResolver
from adminguard.api.config import settings
from adminguard.api.db.repositories import (
    SqlAuditStore,
    SqlMfaChecker,
    SqlRoleStore,
    SqlUserDirectory,
)
from adminguard.api.db.session import get_session_maker


bearer = HTTPBearer(auto_error=False)


def get_session_factory() -> async_sessionmaker:
    """Session maker for the SQL repositories; overridden in tests."""
    return get_session_maker()


def get_action_dependencies(
    sessions: async_sessionmaker = Depends(get_session_factory),
) -> ActionDependencies:
    """Build the collaborator set for one request."""
    return ActionDependencies(
        resolver=JwtPrincipalResolver(audience=settings.IDP_JWT_AUDIENCE),
        roles=SqlRoleStore(sessions),
        mfa=SqlMfaChecker(sessions),
        directory=SqlUserDirectory(sessions),
        audit_log=AuditLog(
            SqlAuditStore(sessions),
            retries=settings.AUDIT_WRITE_RETRIES,
            timeout_sec=settings.EXTERNAL_CALL_TIMEOUT_SEC,
            page_size=settings.AUDIT_PAGE_SIZE,
        ),
        guard=AccessGuard(credential_max_age_days=settings.CREDENTIAL_MAX_AGE_DAYS),
        timeout_sec=settings.EXTERNAL_CALL_TIMEOUT_SEC,
        log_denials=settings.AUDIT_LOG_DENIALS,
        ip_hash_salt=settings.IP_HASH_SALT,
    )


def get_actor_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
) -> str:
    """Bearer token of the caller; empty when absent so the core reports Unauthenticated."""
    return credentials.credentials if credentials else ""


def get_request_context(request: Request) -> RequestContext:
    """Client address and user agent for audit entries."""
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
