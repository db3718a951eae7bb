"""Database module for local SQLite storage."""

from .models import Base, generate_uuid, utcnow
from .sqlite import Database, get_db, reset_db

__all__ = [
    "Base",
    "generate_uuid",
    "utcnow",
    "Database",
    "get_db",
    "reset_db",
]
