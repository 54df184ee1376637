"""
ADMINGUARD Test Configuration
=============================

Pytest fixtures and in-memory collaborators for the admin core tests.
"""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set, Tuple

import pytest

from adminguard.api.access.audit import AuditLog, InMemoryAuditStore
from adminguard.api.access.guard import AccessGuard, Identity, Principal
from adminguard.api.access.rbac import AdminRole
from adminguard.api.access.roles import RoleRecord
from adminguard.api.admin.directory import AuthSummary, ExportSnapshot, UserDetails, UserProfile
from adminguard.api.admin.executor import ActionDependencies
from adminguard.api.exceptions import ExternalError, NotFoundError, UnauthenticatedError


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


# ==================== Fakes ====================


class FakeResolver:
    """Token -> identity map standing in for the identity provider."""

    def __init__(self):
        self.tokens: Dict[str, Identity] = {}

    def issue(self, token: str, principal_id: str, email: Optional[str] = None) -> str:
        self.tokens[token] = Identity(id=principal_id, email=email)
        return token

    async def lookup_principal(self, actor_token: str) -> Identity:
        if actor_token not in self.tokens:
            raise UnauthenticatedError("Invalid or expired token")
        return self.tokens[actor_token]


class FakeRoleStore:
    """Role records held in a dict."""

    def __init__(self):
        self.records: Dict[str, RoleRecord] = {}
        self.unavailable = False

    def put(self, record: RoleRecord) -> RoleRecord:
        self.records[record.principal_id] = record
        return record

    async def get_role(self, principal_id: str) -> Optional[RoleRecord]:
        if self.unavailable:
            raise ExternalError("role store unavailable")
        return self.records.get(principal_id)

    async def update_role(
        self,
        principal_id: str,
        role: Optional[AdminRole] = None,
        is_active: Optional[bool] = None,
    ) -> Optional[RoleRecord]:
        current = self.records.get(principal_id)
        if current is None:
            return None
        updated = current.with_changes(role=role, is_active=is_active, updated_at=NOW)
        self.records[principal_id] = updated
        return updated


class FakeMfaChecker:
    """Principals with a verified factor."""

    def __init__(self):
        self.enrolled: Set[str] = set()

    async def check_mfa_enabled(self, principal_id: str) -> bool:
        return principal_id in self.enrolled


class FakeDirectory:
    """End-user records with switchable failures."""

    def __init__(self):
        self.profiles: Dict[str, UserProfile] = {}
        self.identities: Set[str] = set()
        self.analyses: Dict[str, List[dict]] = {}
        self.deleted: List[str] = []
        self.toggles: List[tuple] = []
        self.fail_with: Optional[Exception] = None

    def add_profile(self, profile: UserProfile) -> UserProfile:
        self.profiles[profile.id] = profile
        return profile

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    async def search_profiles(
        self, search: Optional[str] = None, limit: int = 20, offset: int = 0
    ) -> Tuple[List[UserProfile], int]:
        self._maybe_fail()
        matches = [
            p for p in self.profiles.values()
            if not search
            or p.id == search
            or search.lower() in (p.email or "").lower()
        ]
        matches.sort(key=lambda p: p.created_at or NOW, reverse=True)
        return matches[offset:offset + limit], len(matches)

    async def get_user_details(self, user_id: str) -> Optional[UserDetails]:
        self._maybe_fail()
        profile = self.profiles.get(user_id)
        if profile is None:
            return None
        recent = self.analyses.get(user_id, [])
        return UserDetails(
            profile=profile,
            email=profile.email,
            analysis_count=len(recent),
            recent_analyses=recent[:5],
        )

    async def delete_user(self, user_id: str) -> None:
        self._maybe_fail()
        if user_id not in self.profiles and user_id not in self.identities:
            raise NotFoundError(f"User {user_id} not found")
        self.profiles.pop(user_id, None)
        self.identities.discard(user_id)
        self.deleted.append(user_id)

    async def set_uploads_disabled(self, user_id: str, disabled: bool) -> None:
        self._maybe_fail()
        self.profiles[user_id] = replace(self.profiles[user_id], uploads_disabled=disabled)
        self.toggles.append((user_id, disabled))

    async def load_export_snapshot(self, user_id: str) -> Optional[ExportSnapshot]:
        self._maybe_fail()
        profile = self.profiles.get(user_id)
        if profile is None:
            return None
        recent = self.analyses.get(user_id, [])
        return ExportSnapshot(
            profile=profile,
            auth=AuthSummary(provider="email", email_confirmed=True, mfa_enabled=False),
            analysis_count=len(recent),
            recent_analyses=recent,
        )


class FlakyAuditStore(InMemoryAuditStore):
    """Audit store that fails its next `failures` appends."""

    def __init__(self, failures: int = 0):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def append(self, entry):
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("audit store unavailable")
        return await super().append(entry)


# ==================== Fixtures ====================


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def guard():
    """Access guard with a fixed clock."""
    return AccessGuard(clock=lambda: NOW)


@pytest.fixture
def make_principal():
    """Build a principal from role facts."""

    def _make(
        role: Optional[AdminRole] = AdminRole.ADMIN,
        is_active: bool = True,
        has_mfa: bool = True,
        credential_age_days: Optional[float] = 10,
        principal_id: str = "admin-1",
    ) -> Principal:
        record = None
        if role is not None:
            last_change = None
            if credential_age_days is not None:
                last_change = NOW - timedelta(days=credential_age_days)
            record = RoleRecord(
                principal_id=principal_id,
                role=role,
                is_active=is_active,
                last_credential_change_at=last_change,
            )
        return Principal(
            id=principal_id,
            email=f"{principal_id}@example.com",
            role_record=record,
            has_mfa=has_mfa,
        )

    return _make


@pytest.fixture
def resolver():
    return FakeResolver()


@pytest.fixture
def role_store():
    return FakeRoleStore()


@pytest.fixture
def mfa():
    return FakeMfaChecker()


@pytest.fixture
def directory():
    directory = FakeDirectory()
    directory.add_profile(
        UserProfile(
            id="user-1",
            email="alice@example.com",
            full_name="Alice Smith",
            uploads_disabled=False,
            subscription_status="active",
            subscription_tier="annual",
            created_at=NOW - timedelta(days=30),
        )
    )
    return directory


@pytest.fixture
def audit_store():
    return FlakyAuditStore()


@pytest.fixture
def deps(resolver, role_store, mfa, directory, audit_store, guard):
    """Collaborators wired for executor tests."""
    return ActionDependencies(
        resolver=resolver,
        roles=role_store,
        mfa=mfa,
        directory=directory,
        audit_log=AuditLog(audit_store, retries=1),
        guard=guard,
        log_denials=True,
        ip_hash_salt="test-salt",
    )


@pytest.fixture
def enroll(resolver, role_store, mfa):
    """Register an admin with the fakes and return their token."""

    def _enroll(
        principal_id: str,
        role: AdminRole,
        is_active: bool = True,
        has_mfa: bool = True,
        credential_age_days: Optional[float] = 10,
    ) -> str:
        last_change = None
        if credential_age_days is not None:
            last_change = NOW - timedelta(days=credential_age_days)
        role_store.put(
            RoleRecord(
                principal_id=principal_id,
                role=role,
                is_active=is_active,
                last_credential_change_at=last_change,
            )
        )
        if has_mfa:
            mfa.enrolled.add(principal_id)
        return resolver.issue(f"token-{principal_id}", principal_id, f"{principal_id}@corp.test")

    return _enroll
