"""
SQLAlchemy ORM Models

Tables backing the admin role store, the audit trail and the end-user records
that privileged actions operate on.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class AdminRoleRow(Base):
    """Admin role assignment, provisioned externally."""

    __tablename__ = "admin_roles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    last_password_change_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<AdminRole {self.user_id} {self.role}>"


class AuditLogRow(Base):
    """Append-only audit trail entry."""

    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, index=True
    )

    actor_user_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    target_user_id: Mapped[Optional[str]] = mapped_column(String(64))

    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict] = mapped_column("metadata", JSONType, default=dict)

    ip_hash: Mapped[Optional[str]] = mapped_column(String(64))
    user_agent: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} by {self.actor_user_id}>"


class AuthUserRow(Base):
    """Identity-provider account mirrored for admin lookups."""

    __tablename__ = "auth_users"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    provider: Mapped[str] = mapped_column(String(50), default="email")
    email_confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_sign_in_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    factors: Mapped[list["MfaFactorRow"]] = relationship(
        "MfaFactorRow", back_populates="user", cascade="all, delete-orphan"
    )


class MfaFactorRow(Base):
    """Second factor enrolled with the identity provider."""

    __tablename__ = "mfa_factors"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("auth_users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    factor_type: Mapped[str] = mapped_column(String(20), default="totp")
    status: Mapped[str] = mapped_column(String(20), default="unverified")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    user: Mapped["AuthUserRow"] = relationship("AuthUserRow", back_populates="factors")


class ProfileRow(Base):
    """End-user profile."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    full_name: Mapped[Optional[str]] = mapped_column(String(200))
    uploads_disabled: Mapped[bool] = mapped_column(Boolean, default=False)

    subscription_status: Mapped[Optional[str]] = mapped_column(String(20))
    subscription_tier: Mapped[Optional[str]] = mapped_column(String(20))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    analyses: Mapped[list["AnalysisRow"]] = relationship(
        "AnalysisRow", back_populates="profile", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Profile {self.id}>"


class AnalysisRow(Base):
    """Summary of one analysis owned by an end user."""

    __tablename__ = "analyses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    confidence_score: Mapped[Optional[float]] = mapped_column(Float)
    primary_issue: Mapped[Optional[str]] = mapped_column(String(100))
    video_count: Mapped[int] = mapped_column(Integer, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    profile: Mapped["ProfileRow"] = relationship("ProfileRow", back_populates="analyses")
