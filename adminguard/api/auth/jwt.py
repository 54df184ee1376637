"""
JWT Token Verification

Verify access tokens issued by the external identity provider. Tokens are
never minted here.
"""

import logging
from typing import Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from adminguard.api.config import settings


logger = logging.getLogger("ADMINGUARD_Jwt")


def verify_token(
    token: str,
    secret: Optional[str] = None,
    algorithm: Optional[str] = None,
    audience: Optional[str] = None,
) -> Optional[dict]:
    """
    Verify and decode an identity-provider JWT.

    Args:
        token: JWT token string
        secret: Shared signing secret (defaults to settings)
        algorithm: Signing algorithm (defaults to settings)
        audience: Expected "aud" claim; None skips the audience check

    Returns:
        Decoded payload if valid, None otherwise
    """
    if not token:
        return None

    secret = secret or settings.IDP_JWT_SECRET
    algorithm = algorithm or settings.IDP_JWT_ALGORITHM

    options = {"require": ["sub", "exp"]}
    if audience is None:
        options["verify_aud"] = False

    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[algorithm],
            audience=audience,
            options=options,
        )
    except ExpiredSignatureError:
        logger.debug("Rejected expired identity token")
        return None
    except InvalidTokenError as e:
        logger.debug(f"Rejected invalid identity token: {e}")
        return None

    return payload
