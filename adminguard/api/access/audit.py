"""
ADMINGUARD - Audit Logging System

Append-only audit trail for every privileged action attempt, successful or
not. Entries are immutable once written and are never updated or deleted here;
retention is an external policy concern.
"""

import asyncio
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple
from uuid import uuid4

from adminguard.api.exceptions import AuditWriteError, ExternalTimeoutError


logger = logging.getLogger("ADMINGUARD_Audit")

# Compliance gaps are routed to a dedicated channel for operational alerting.
alert_logger = logging.getLogger("ADMINGUARD_AuditAlerts")


# ============================================================
# Audit Actions
# ============================================================


FAILED_SUFFIX = "_FAILED"


class AuditAction(str, Enum):
    """Action names written to the audit trail."""

    USER_VIEW = "USER_VIEW"
    USER_SEARCH = "USER_SEARCH"
    USER_DELETE = "USER_DELETE"
    USER_DELETE_FAILED = "USER_DELETE_FAILED"
    UPLOADS_DISABLED = "UPLOADS_DISABLED"
    UPLOADS_ENABLED = "UPLOADS_ENABLED"
    UPLOADS_DISABLE_FAILED = "UPLOADS_DISABLE_FAILED"
    UPLOADS_ENABLE_FAILED = "UPLOADS_ENABLE_FAILED"
    DATA_EXPORT = "DATA_EXPORT"
    DATA_EXPORT_FAILED = "DATA_EXPORT_FAILED"
    ROLE_UPDATED = "ROLE_UPDATED"
    ROLE_UPDATE_FAILED = "ROLE_UPDATE_FAILED"
    UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"


def is_failure_action(action: str) -> bool:
    """Failed attempts are distinguished by the action name suffix."""
    return getattr(action, "value", action).endswith(FAILED_SUFFIX)


# ============================================================
# Audit Entry Structure
# ============================================================


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit record of one privileged action attempt."""

    id: str
    created_at: datetime
    actor_id: Optional[str]
    actor_role: str
    action: str
    target_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    ip_hash: Optional[str] = None
    user_agent: Optional[str] = None

    @classmethod
    def create(
        cls,
        action: str,
        actor_id: Optional[str],
        actor_role: str,
        target_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_hash: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> "AuditLogEntry":
        """Build a new entry with a fresh id and timestamp."""
        return cls(
            id=str(uuid4()),
            created_at=datetime.now(timezone.utc),
            actor_id=actor_id,
            actor_role=actor_role,
            action=getattr(action, "value", action),
            target_id=target_id,
            metadata=dict(metadata or {}),
            ip_hash=ip_hash,
            user_agent=user_agent,
        )

    @property
    def failed(self) -> bool:
        return is_failure_action(self.action)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "actor_id": self.actor_id,
            "actor_role": self.actor_role,
            "action": self.action,
            "target_id": self.target_id,
            "metadata": self.metadata,
            "ip_hash": self.ip_hash,
            "user_agent": self.user_agent,
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def compute_hash(self) -> str:
        """Compute SHA256 hash for integrity verification."""
        content = f"{self.id}{self.created_at.isoformat()}{self.actor_id}{self.action}{self.target_id}"
        return hashlib.sha256(content.encode()).hexdigest()


def hash_ip(ip_address: Optional[str], salt: str) -> Optional[str]:
    """Salted hash of a client address; the raw address is never stored."""
    if not ip_address:
        return None
    return hmac.new(salt.encode(), ip_address.encode(), hashlib.sha256).hexdigest()


# ============================================================
# Audit Store Contract
# ============================================================


class AuditStore(Protocol):
    """Durable, append-only backing store for audit entries."""

    async def append(self, entry: AuditLogEntry) -> str:
        """Persist entry durably and return its id."""
        ...

    async def query(
        self,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[AuditLogEntry], int]:
        ...

    async def distinct_actions(self, limit: int = 1000) -> List[str]:
        ...


# ============================================================
# Audit Log
# ============================================================


class AuditLog:
    """
    Central audit logging service.

    record() returns only once the store has acknowledged the entry. A failed
    write is retried a bounded number of times; after that the gap is escalated
    on the alert channel and AuditWriteError propagates to the caller.
    """

    def __init__(
        self,
        store: AuditStore,
        retries: int = 1,
        timeout_sec: Optional[float] = None,
        page_size: int = 50,
    ):
        self.store = store
        self.retries = max(0, retries)
        self.timeout_sec = timeout_sec
        self.page_size = page_size

    async def record(self, entry: AuditLogEntry) -> str:
        """Append entry to the trail and return its id."""
        attempts = self.retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                entry_id = await self._append(entry)
            except Exception as e:
                last_error = e
                logger.warning(
                    f"Audit write attempt {attempt}/{attempts} failed for "
                    f"{entry.action} (entry {entry.id}): {e}"
                )
                continue

            logger.info(
                "AUDIT",
                extra={
                    "audit_event": entry.to_dict(),
                    "event_hash": entry.compute_hash(),
                },
            )
            return entry_id

        alert_logger.critical(
            f"AUDIT GAP: entry {entry.id} action={entry.action} "
            f"actor={entry.actor_id} target={entry.target_id} was not persisted "
            f"after {attempts} attempt(s): {last_error}"
        )
        raise AuditWriteError(
            f"Failed to write audit log entry {entry.id}",
            code="AUDIT_WRITE_FAILED",
            details={"action": entry.action, "error": str(last_error)},
            attempts=attempts,
        ) from last_error

    async def _append(self, entry: AuditLogEntry) -> str:
        if self.timeout_sec is None:
            return await self.store.append(entry)
        try:
            return await asyncio.wait_for(self.store.append(entry), timeout=self.timeout_sec)
        except asyncio.TimeoutError as e:
            raise ExternalTimeoutError(
                f"Audit store did not acknowledge within {self.timeout_sec}s"
            ) from e

    async def query(
        self,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Tuple[List[AuditLogEntry], int]:
        """Query entries newest first with optional action and actor filters."""
        page_size = page_size or self.page_size
        offset = (max(page, 1) - 1) * page_size
        return await self.store.query(
            action=action,
            actor_id=actor_id,
            limit=page_size,
            offset=offset,
        )

    async def distinct_actions(self, limit: int = 1000) -> List[str]:
        """Sorted distinct action names, for filter menus."""
        return sorted(set(await self.store.distinct_actions(limit=limit)))


class InMemoryAuditStore:
    """Process-local audit store for tests and local development."""

    def __init__(self):
        self.entries: List[AuditLogEntry] = []

    async def append(self, entry: AuditLogEntry) -> str:
        if any(existing.id == entry.id for existing in self.entries):
            return entry.id
        self.entries.append(entry)
        return entry.id

    async def query(
        self,
        action: Optional[str] = None,
        actor_id: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[AuditLogEntry], int]:
        matches = [
            e for e in self.entries
            if (action is None or e.action == action)
            and (actor_id is None or e.actor_id == actor_id)
        ]
        matches.sort(key=lambda e: e.created_at, reverse=True)
        return matches[offset:offset + limit], len(matches)

    async def distinct_actions(self, limit: int = 1000) -> List[str]:
        return sorted({e.action for e in self.entries})[:limit]
