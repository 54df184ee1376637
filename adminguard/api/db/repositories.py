"""
SQL Repositories

SQLAlchemy implementations of the collaborator contracts used by the core.
Each call runs in its own short transaction so that an acknowledged write is
committed before the call returns. Driver and connection failures surface as
ExternalError, never as "not found".
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from adminguard.api.access.audit import AuditLogEntry
from adminguard.api.access.rbac import AdminRole, parse_role
from adminguard.api.access.roles import RoleRecord
from adminguard.api.admin.directory import AuthSummary, ExportSnapshot, UserDetails, UserProfile
from adminguard.api.db.models import (
    AdminRoleRow,
    AnalysisRow,
    AuditLogRow,
    AuthUserRow,
    MfaFactorRow,
    ProfileRow,
    utcnow,
)
from adminguard.api.exceptions import ExternalError, NotFoundError


logger = logging.getLogger("ADMINGUARD_Repositories")

RECENT_ANALYSES_LIMIT = 10
DETAIL_ANALYSES_LIMIT = 5


class SqlRepository:
    """Shared session handling for SQL-backed collaborators."""

    def __init__(self, sessions: async_sessionmaker):
        self._sessions = sessions

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self._sessions() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"{operation} failed: {e}")
            raise ExternalError(f"{operation} failed", code="STORE_UNAVAILABLE") from e


# ==================== Role Store ====================


def _to_role_record(row: AdminRoleRow) -> Optional[RoleRecord]:
    role = parse_role(row.role)
    if role is None:
        logger.warning(f"Ignoring unknown admin role {row.role!r} for {row.user_id}")
        return None
    return RoleRecord(
        principal_id=row.user_id,
        role=role,
        is_active=row.is_active,
        last_credential_change_at=row.last_password_change_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class SqlRoleStore(SqlRepository):
    """Admin role records in the admin_roles table."""

    async def get_role(self, principal_id: str) -> Optional[RoleRecord]:
        async with self._session("Role lookup") as session:
            row = await session.get(AdminRoleRow, principal_id)
            return _to_role_record(row) if row else None

    async def update_role(
        self,
        principal_id: str,
        role: Optional[AdminRole] = None,
        is_active: Optional[bool] = None,
    ) -> Optional[RoleRecord]:
        async with self._session("Role update") as session:
            row = await session.get(AdminRoleRow, principal_id)
            if row is None:
                return None
            if role is not None:
                row.role = AdminRole(role).value
            if is_active is not None:
                row.is_active = is_active
            row.updated_at = utcnow()
            record = _to_role_record(row)
            await session.commit()
            return record


class SqlMfaChecker(SqlRepository):
    """MFA state from enrolled identity-provider factors."""

    async def check_mfa_enabled(self, principal_id: str) -> bool:
        async with self._session("MFA lookup") as session:
            count = await session.scalar(
                select(func.count(MfaFactorRow.id)).where(
                    MfaFactorRow.user_id == principal_id,
                    MfaFactorRow.status == "verified",
                )
            )
            return bool(count)


# ==================== Audit Store ====================


def _to_entry(row: AuditLogRow) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        created_at=row.created_at,
        actor_id=row.actor_user_id,
        actor_role=row.actor_role,
        action=row.action,
        target_id=row.target_user_id,
        metadata=dict(row.metadata_ or {}),
        ip_hash=row.ip_hash,
        user_agent=row.user_agent,
    )


class SqlAuditStore(SqlRepository):
    """Append-only audit_logs table. Rows are inserted, never updated."""

    async def append(self, entry: AuditLogEntry) -> str:
        async with self._session("Audit write") as session:
            # A retried write whose first attempt did commit must not duplicate
            if await session.get(AuditLogRow, entry.id) is not None:
                return entry.id

            session.add(
                AuditLogRow(
                    id=entry.id,
                    created_at=entry.created_at,
                    actor_user_id=entry.actor_id,
                    actor_role=entry.actor_role,
                    action=entry.action,
                    target_user_id=entry.target_id,
                    metadata_=dict(entry.metadata),
                    ip_hash=entry.ip_hash,
                    user_agent=entry.user_agent,
                )
            )
            await session.commit()
            return entry.id

    async def query(
        self,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[AuditLogEntry], int]:
        query = select(AuditLogRow)
        if action:
            query = query.where(AuditLogRow.action == action)
        if actor_id:
            query = query.where(AuditLogRow.actor_user_id == actor_id)

        async with self._session("Audit query") as session:
            count_query = select(func.count()).select_from(query.subquery())
            total = await session.scalar(count_query) or 0

            query = query.order_by(desc(AuditLogRow.created_at)).limit(limit).offset(offset)
            result = await session.execute(query)
            return [_to_entry(row) for row in result.scalars().all()], total

    async def distinct_actions(self, limit: int = 1000) -> List[str]:
        async with self._session("Audit action listing") as session:
            result = await session.execute(
                select(AuditLogRow.action).distinct().limit(limit)
            )
            return sorted(result.scalars().all())


# ==================== User Directory ====================


def _to_profile(row: ProfileRow) -> UserProfile:
    return UserProfile(
        id=row.id,
        email=row.email,
        full_name=row.full_name,
        uploads_disabled=row.uploads_disabled,
        subscription_status=row.subscription_status,
        subscription_tier=row.subscription_tier,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def _analysis_summary(
    session: AsyncSession, user_id: str, limit: int = RECENT_ANALYSES_LIMIT
) -> Tuple[int, List[dict]]:
    """Analysis count and the most recent analyses of one user."""
    count = await session.scalar(
        select(func.count(AnalysisRow.id)).where(AnalysisRow.user_id == user_id)
    ) or 0

    result = await session.execute(
        select(AnalysisRow)
        .where(AnalysisRow.user_id == user_id)
        .order_by(desc(AnalysisRow.created_at))
        .limit(limit)
    )
    recent = [
        {
            "id": a.id,
            "created_at": a.created_at.isoformat() if a.created_at else None,
            "confidence_score": a.confidence_score,
            "primary_issue": a.primary_issue,
        }
        for a in result.scalars().all()
    ]
    return count, recent


class SqlUserDirectory(SqlRepository):
    """End-user records: profiles, analyses and identity accounts."""

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        async with self._session("Profile lookup") as session:
            row = await session.get(ProfileRow, user_id)
            return _to_profile(row) if row else None

    async def search_profiles(
        self, search: Optional[str] = None, limit: int = 20, offset: int = 0
    ) -> Tuple[List[UserProfile], int]:
        async with self._session("Profile search") as session:
            base = select(ProfileRow)
            if search:
                base = base.where(
                    or_(
                        ProfileRow.id == search,
                        ProfileRow.email.icontains(search, autoescape=True),
                    )
                )

            total = await session.scalar(
                select(func.count()).select_from(base.subquery())
            ) or 0

            result = await session.execute(
                base.order_by(desc(ProfileRow.created_at)).offset(offset).limit(limit)
            )
            return [_to_profile(row) for row in result.scalars().all()], total

    async def get_user_details(self, user_id: str) -> Optional[UserDetails]:
        async with self._session("User details") as session:
            profile = await session.get(ProfileRow, user_id)
            if profile is None:
                return None

            analysis_count, recent = await _analysis_summary(
                session, user_id, limit=DETAIL_ANALYSES_LIMIT
            )
            auth_user = await session.get(AuthUserRow, user_id)
            email = (auth_user.email if auth_user else None) or profile.email

            return UserDetails(
                profile=_to_profile(profile),
                email=email,
                analysis_count=analysis_count,
                recent_analyses=recent,
            )

    async def delete_user(self, user_id: str) -> None:
        async with self._session("User deletion") as session:
            profile = await session.get(ProfileRow, user_id)
            auth_user = await session.get(AuthUserRow, user_id)
            if profile is None and auth_user is None:
                raise NotFoundError(f"User {user_id} not found", code="USER_NOT_FOUND")

            await session.execute(delete(AnalysisRow).where(AnalysisRow.user_id == user_id))
            await session.execute(delete(MfaFactorRow).where(MfaFactorRow.user_id == user_id))
            await session.execute(delete(ProfileRow).where(ProfileRow.id == user_id))
            await session.execute(delete(AuthUserRow).where(AuthUserRow.id == user_id))
            await session.commit()

    async def set_uploads_disabled(self, user_id: str, disabled: bool) -> None:
        async with self._session("Uploads toggle") as session:
            row = await session.get(ProfileRow, user_id)
            if row is None:
                raise NotFoundError(f"User {user_id} not found", code="USER_NOT_FOUND")
            row.uploads_disabled = disabled
            row.updated_at = utcnow()
            await session.commit()

    async def load_export_snapshot(self, user_id: str) -> Optional[ExportSnapshot]:
        async with self._session("Export snapshot") as session:
            profile = await session.get(ProfileRow, user_id)
            if profile is None:
                return None

            analysis_count, recent = await _analysis_summary(session, user_id)

            auth_user = await session.get(AuthUserRow, user_id)
            auth = AuthSummary()
            if auth_user is not None:
                verified = await session.scalar(
                    select(func.count(MfaFactorRow.id)).where(
                        MfaFactorRow.user_id == user_id,
                        MfaFactorRow.status == "verified",
                    )
                )
                auth = AuthSummary(
                    provider=auth_user.provider or "unknown",
                    email_confirmed=auth_user.email_confirmed_at is not None,
                    last_sign_in_at=auth_user.last_sign_in_at,
                    mfa_enabled=bool(verified),
                    created_at=auth_user.created_at,
                )

            return ExportSnapshot(
                profile=_to_profile(profile),
                auth=auth,
                analysis_count=analysis_count,
                recent_analyses=recent,
            )
