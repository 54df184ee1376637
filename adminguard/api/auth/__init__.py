"""Authentication module."""

from adminguard.api.auth.service import JwtPrincipalResolver, MfaChecker, PrincipalResolver
from adminguard.api.auth.jwt import verify_token

__all__ = ["JwtPrincipalResolver", "MfaChecker", "PrincipalResolver", "verify_token"]
