"""
Tagged results returned by privileged action executors.

The request-handling layer decides how to present each kind (redirect, error
page, HTTP status); executors never raise for expected outcomes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Union


class ErrorKind(str, Enum):
    """Error taxonomy exposed to callers."""

    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    EXTERNAL_ERROR = "external_error"
    AUDIT_WRITE_ERROR = "audit_write_error"


RETRIABLE_KINDS = {ErrorKind.EXTERNAL_ERROR}


@dataclass(frozen=True)
class Ok:
    """Successful execution carrying the action's payload."""

    data: Dict[str, Any] = field(default_factory=dict)

    ok = True


@dataclass(frozen=True)
class Err:
    """Failed execution with a user-safe message."""

    kind: ErrorKind
    message: str
    audit_id: Optional[str] = None

    ok = False

    @property
    def retriable(self) -> bool:
        return self.kind in RETRIABLE_KINDS


Result = Union[Ok, Err]


# User-visible messages; details stay in audit metadata and operational logs.
MSG_UNAUTHENTICATED = "Not authenticated"
MSG_ACTION_FAILED = "action failed"
MSG_AUDIT_UNAVAILABLE = "action could not be recorded"
MSG_NOT_FOUND = "User not found"
