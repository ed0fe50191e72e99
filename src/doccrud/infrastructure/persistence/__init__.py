"""Persistence layer: SQLite document store and engine management."""

from doccrud.infrastructure.persistence.database import (
    DatabaseManager,
    get_db_manager,
    init_database,
)
from doccrud.infrastructure.persistence.document_store import SQLiteDocumentStore, deep_merge

__all__ = [
    "DatabaseManager",
    "SQLiteDocumentStore",
    "deep_merge",
    "get_db_manager",
    "init_database",
]
