"""
Identity Service

Resolves the authenticated caller and their MFA state from the external
identity provider.
"""

from typing import Optional, Protocol

from adminguard.api.access.guard import Identity
from adminguard.api.auth.jwt import verify_token
from adminguard.api.exceptions import UnauthenticatedError


class PrincipalResolver(Protocol):
    """Resolves an actor token to an identity, raising UnauthenticatedError."""

    async def lookup_principal(self, actor_token: str) -> Identity:
        ...


class MfaChecker(Protocol):
    """Reports whether a principal has a verified second factor."""

    async def check_mfa_enabled(self, principal_id: str) -> bool:
        ...


class JwtPrincipalResolver:
    """Resolve callers from identity-provider access tokens."""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.audience = audience

    async def lookup_principal(self, actor_token: str) -> Identity:
        payload = verify_token(
            actor_token,
            secret=self.secret,
            algorithm=self.algorithm,
            audience=self.audience,
        )
        if not payload:
            raise UnauthenticatedError("Invalid or expired token", code="UNAUTHENTICATED")

        return Identity(id=str(payload["sub"]), email=payload.get("email"))
