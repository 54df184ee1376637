"""Database module."""

from adminguard.api.db.session import get_session_maker, init_db, close_db
from adminguard.api.db.models import Base, AdminRoleRow, AuditLogRow, ProfileRow

__all__ = ["get_session_maker", "init_db", "close_db", "Base", "AdminRoleRow", "AuditLogRow", "ProfileRow"]
