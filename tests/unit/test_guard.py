"""
Tests for Access Guard
======================

Ordered authorization checks: account state, MFA, credential freshness and
role permissions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from adminguard.api.access.guard import (
    REASON_CREDENTIAL_ROTATION,
    REASON_INACTIVE,
    REASON_INSUFFICIENT_ROLE,
    REASON_MFA_REQUIRED,
    REASON_NOT_ADMIN,
    AccessDecision,
    AccessGuard,
    AuthorizeOptions,
    days_since,
    is_credential_fresh,
)
from adminguard.api.access.rbac import AdminRole


NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestCredentialFreshness:
    """Tests for credential age evaluation."""

    def test_missing_timestamp_is_fresh(self):
        """Should treat a principal with no recorded change as fresh."""
        assert is_credential_fresh(None, NOW)

    def test_recent_change_is_fresh(self):
        """Should accept a credential changed 10 days ago."""
        assert is_credential_fresh(NOW - timedelta(days=10), NOW)

    def test_boundary_is_fresh(self):
        """Should accept a credential exactly at the maximum age."""
        assert is_credential_fresh(NOW - timedelta(days=180), NOW)

    def test_old_change_is_stale(self):
        """Should reject a credential older than the maximum age."""
        assert not is_credential_fresh(NOW - timedelta(days=181), NOW)

    def test_custom_max_age(self):
        """Should honour a configured maximum age."""
        assert not is_credential_fresh(NOW - timedelta(days=31), NOW, max_age_days=30)

    def test_naive_timestamp_treated_as_utc(self):
        """Should compare naive timestamps as UTC."""
        naive = (NOW - timedelta(days=2)).replace(tzinfo=None)
        assert days_since(naive, NOW) == pytest.approx(2.0)


class TestAuthorize:
    """Tests for action authorization."""

    def test_admin_allowed_everything(self, guard, make_principal):
        """Should allow a fully set-up admin any action."""
        principal = make_principal(AdminRole.ADMIN)
        for action in ("view_user", "delete_user", "export_data", "toggle_uploads", "manage_roles"):
            assert guard.authorize(principal, action) == AccessDecision.allow()

    def test_no_role_record(self, guard, make_principal):
        """Should deny principals without a role record."""
        decision = guard.authorize(make_principal(role=None), "view_user")
        assert decision == AccessDecision.deny(REASON_NOT_ADMIN)

    @pytest.mark.parametrize("role", list(AdminRole))
    @pytest.mark.parametrize("has_mfa", [True, False])
    def test_inactive_role(self, guard, make_principal, role, has_mfa):
        """Should deny inactive admins regardless of role or MFA, even for reads."""
        principal = make_principal(role, is_active=False, has_mfa=has_mfa)
        for action in ("view_user", "delete_user"):
            decision = guard.authorize(principal, action)
            assert not decision.allowed
            assert decision.reason == REASON_INACTIVE

    def test_readonly_cannot_delete(self, guard, make_principal):
        """Should deny delete_user to support_readonly on the permission check."""
        principal = make_principal(AdminRole.SUPPORT_READONLY, has_mfa=True)
        decision = guard.authorize(principal, "delete_user")
        assert not decision.allowed
        assert decision.reason == "role support_readonly cannot delete_user"

    def test_write_limited_cannot_delete(self, guard, make_principal):
        """Should deny deletion to support_write_limited with MFA and fresh credential."""
        principal = make_principal(AdminRole.SUPPORT_WRITE_LIMITED, credential_age_days=10)
        decision = guard.authorize(principal, "delete_user")
        assert not decision.allowed
        assert decision.reason == "role support_write_limited cannot delete_user"

    def test_write_limited_can_toggle_uploads(self, guard, make_principal):
        """Should allow upload toggles to support_write_limited."""
        principal = make_principal(AdminRole.SUPPORT_WRITE_LIMITED)
        assert guard.authorize(principal, "toggle_uploads").allowed

    def test_readonly_can_view(self, guard, make_principal):
        """Should allow reads to support_readonly."""
        assert guard.authorize(make_principal(AdminRole.SUPPORT_READONLY), "view_user").allowed

    def test_readonly_cannot_export(self, guard, make_principal):
        """Should deny exports to support_readonly."""
        decision = guard.authorize(make_principal(AdminRole.SUPPORT_READONLY), "export_data")
        assert decision.reason == "role support_readonly cannot export_data"

    def test_mfa_required_for_writes(self, guard, make_principal):
        """Should deny a write to an admin without MFA."""
        decision = guard.authorize(make_principal(has_mfa=False), "delete_user")
        assert decision == AccessDecision.deny(REASON_MFA_REQUIRED)

    def test_mfa_not_required_for_reads(self, guard, make_principal):
        """Should allow a read without MFA."""
        assert guard.authorize(make_principal(has_mfa=False), "view_user").allowed

    def test_stale_credential_blocks_writes(self, guard, make_principal):
        """Should deny an export when the credential is 200 days old."""
        decision = guard.authorize(make_principal(credential_age_days=200), "export_data")
        assert decision == AccessDecision.deny(REASON_CREDENTIAL_ROTATION)

    def test_stale_credential_allows_reads(self, guard, make_principal):
        """Should allow reads with a stale credential."""
        assert guard.authorize(make_principal(credential_age_days=200), "view_user").allowed

    def test_missing_credential_timestamp_allowed(self, guard, make_principal):
        """Should allow writes when no credential change was ever recorded."""
        principal = make_principal(credential_age_days=None)
        assert guard.authorize(principal, "delete_user").allowed

    def test_unknown_action_denied(self, guard, make_principal):
        """Should deny actions that map to no permission."""
        decision = guard.authorize(make_principal(), "launch_rockets")
        assert decision.reason == "role admin cannot launch_rockets"


class TestCheckOrder:
    """Tests for the first-failure-wins ordering."""

    def test_inactive_before_mfa(self, guard, make_principal):
        """Should report inactive before MFA."""
        principal = make_principal(is_active=False, has_mfa=False)
        assert guard.authorize(principal, "delete_user").reason == REASON_INACTIVE

    def test_mfa_before_freshness(self, guard, make_principal):
        """Should report MFA before credential rotation."""
        principal = make_principal(has_mfa=False, credential_age_days=400)
        assert guard.authorize(principal, "delete_user").reason == REASON_MFA_REQUIRED

    def test_freshness_before_permission(self, guard, make_principal):
        """Should report credential rotation before the permission check."""
        principal = make_principal(AdminRole.SUPPORT_READONLY, credential_age_days=400)
        assert guard.authorize(principal, "delete_user").reason == REASON_CREDENTIAL_ROTATION

    def test_required_role_before_mfa(self, guard, make_principal):
        """Should report insufficient role before MFA."""
        principal = make_principal(AdminRole.SUPPORT_WRITE_LIMITED, has_mfa=False)
        options = AuthorizeOptions(required_role=AdminRole.ADMIN)
        decision = guard.authorize(principal, "toggle_uploads", options)
        assert decision.reason == REASON_INSUFFICIENT_ROLE


class TestOverrides:
    """Tests for the MFA and credential setup overrides."""

    def test_allow_pending_mfa(self, guard, make_principal):
        """Should skip the MFA check when pending MFA is allowed."""
        principal = make_principal(AdminRole.SUPPORT_WRITE_LIMITED, has_mfa=False)
        options = AuthorizeOptions(allow_pending_mfa=True)
        assert guard.authorize(principal, "toggle_uploads", options).allowed

    def test_allow_expired_credential(self, guard, make_principal):
        """Should skip the freshness check when expired credentials are allowed."""
        principal = make_principal(credential_age_days=365)
        options = AuthorizeOptions(allow_expired_credential=True)
        assert guard.authorize(principal, "export_data", options).allowed

    def test_overrides_do_not_bypass_permissions(self, guard, make_principal):
        """Should still apply the permission table under overrides."""
        principal = make_principal(AdminRole.SUPPORT_READONLY, has_mfa=False)
        options = AuthorizeOptions(allow_pending_mfa=True, allow_expired_credential=True)
        assert not guard.authorize(principal, "delete_user", options).allowed

    def test_configured_max_age(self, make_principal):
        """Should use the guard's configured credential age."""
        guard = AccessGuard(credential_max_age_days=30, clock=lambda: NOW)
        principal = make_principal(credential_age_days=45)
        assert guard.authorize(principal, "delete_user").reason == REASON_CREDENTIAL_ROTATION


class TestVerifyAccess:
    """Tests for the session-level guard."""

    def test_fully_set_up(self, guard, make_principal):
        """Should allow with no outstanding setup step."""
        access = guard.verify_access(make_principal(AdminRole.SUPPORT_READONLY))
        assert access.decision.allowed
        assert access.requires_action is None

    def test_missing_mfa_denied(self, guard, make_principal):
        """Should deny a session without MFA."""
        access = guard.verify_access(make_principal(has_mfa=False))
        assert access.decision.reason == REASON_MFA_REQUIRED

    def test_pending_mfa_reports_step(self, guard, make_principal):
        """Should allow the MFA setup screen and report the mfa step."""
        access = guard.verify_access(
            make_principal(has_mfa=False), AuthorizeOptions(allow_pending_mfa=True)
        )
        assert access.decision.allowed
        assert access.requires_action == "mfa"

    def test_expired_credential_reports_step(self, guard, make_principal):
        """Should allow the password screen and report the password step."""
        access = guard.verify_access(
            make_principal(credential_age_days=300),
            AuthorizeOptions(allow_expired_credential=True),
        )
        assert access.decision.allowed
        assert access.requires_action == "password"

    def test_non_admin_denied(self, guard, make_principal):
        """Should deny principals without a role."""
        access = guard.verify_access(make_principal(role=None))
        assert access.decision.reason == REASON_NOT_ADMIN
        assert access.requires_action is None
