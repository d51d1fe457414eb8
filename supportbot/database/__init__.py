"""Database package: engine helpers and ORM models."""

from supportbot.database.db import build_engine, build_session_factory, session_scope, verify_database_connection
from supportbot.database.models import Base, FAQEntry

__all__ = [
    "Base",
    "FAQEntry",
    "build_engine",
    "build_session_factory",
    "session_scope",
    "verify_database_connection",
]
