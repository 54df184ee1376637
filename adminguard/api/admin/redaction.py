"""
Field-level redaction for exports and audit metadata.
"""

from typing import Any, Optional

MASK = "***"

SENSITIVE_FIELDS = {
    "password", "password_hash", "secret", "token", "access_token",
    "refresh_token", "api_key", "encryption_key", "private_key",
    "service_role_key", "mfa_secret", "recovery_codes",
}


def redact_email(email: Optional[str]) -> Optional[str]:
    """Keep the first three characters: alice@example.com -> ali***@***."""
    if not email:
        return None
    return f"{email[:3]}{MASK}@{MASK}"


def redact_name(full_name: Optional[str]) -> Optional[str]:
    """Keep the first two characters: Alice Smith -> Al***."""
    if not full_name:
        return None
    return f"{full_name[:2]}{MASK}"


def sanitize_for_audit(data: Any) -> Any:
    """Remove sensitive fields from data before it is logged or exported."""
    if isinstance(data, dict):
        return {
            k: "[REDACTED]" if str(k).lower() in SENSITIVE_FIELDS else sanitize_for_audit(v)
            for k, v in data.items()
        }
    elif isinstance(data, (list, tuple)):
        return [sanitize_for_audit(item) for item in data]
    else:
        return data
