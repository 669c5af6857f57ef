"""contextor database layer."""

from contextor.db.connection import Database
from contextor.db.gateway import VectorStore
from contextor.db.migrations import MIGRATIONS, run_migrations
from contextor.db.repository import Repository
from contextor.db.schema import initialize

__all__ = [
    "Database",
    "MIGRATIONS",
    "Repository",
    "VectorStore",
    "initialize",
    "run_migrations",
]
