"""Database engine management using SQLAlchemy 2.0 async.

The document store runs on SQLite through the aiosqlite driver; this module
owns the engine and hands out document stores bound to it.
"""

from pathlib import Path

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from doccrud.core.config import Settings, get_settings
from doccrud.core.logging import get_logger
from doccrud.domain.exceptions import ConfigurationError, PersistenceError
from doccrud.infrastructure.persistence.document_store import SQLiteDocumentStore

logger = get_logger(__name__)


class DatabaseManager:
    """Database engine and document store manager."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        if not self.settings.database_url.startswith("sqlite"):
            raise ConfigurationError(
                f"The document store requires an SQLite database URL, got "
                f"{make_url(self.settings.database_url).render_as_string(hide_password=True)}"
            )
        self._engine: AsyncEngine | None = None
        self._store: SQLiteDocumentStore | None = None

    @property
    def engine(self) -> AsyncEngine:
        """Get or create the database engine."""
        if self._engine is None:
            connect_args = {
                "check_same_thread": False,
                "timeout": self.settings.db_sqlite_busy_timeout / 1000,
            }
            if self.settings.is_memory_database:
                # One shared connection, otherwise every checkout sees an empty database
                self._engine = create_async_engine(
                    self.settings.database_url,
                    echo=self.settings.db_echo,
                    connect_args=connect_args,
                    poolclass=StaticPool,
                )
            else:
                self._engine = create_async_engine(
                    self.settings.database_url,
                    echo=self.settings.db_echo,
                    connect_args=connect_args,
                )

            logger.info(
                "Database engine created",
                database_url=self._engine.url.render_as_string(hide_password=True),
            )
        return self._engine

    @property
    def document_store(self) -> SQLiteDocumentStore:
        """Get or create the document store bound to the engine."""
        if self._store is None:
            self._store = SQLiteDocumentStore(
                self.engine,
                table_prefix=self.settings.collection_table_prefix,
                index_prefix=self.settings.index_prefix,
            )
        return self._store

    async def check_connection(self) -> bool:
        """Check if database connection is working."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                logger.debug("Database connection check successful")
                return True
        except Exception as e:
            logger.error("Database connection check failed", error=str(e))
            return False

    async def disconnect(self) -> None:
        """Close the database engine and all connections."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._store = None
            logger.info("Database engine disposed")


# Global database manager instance
_db_manager: DatabaseManager | None = None


def get_db_manager() -> DatabaseManager:
    """Get the global database manager instance."""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


async def init_database(db: DatabaseManager | None = None) -> DatabaseManager:
    """Prepare the database file and verify the connection.

    Raises:
        PersistenceError: If the database cannot be reached.
    """
    db = db or get_db_manager()

    if not db.settings.is_memory_database:
        database = make_url(db.settings.database_url).database
        if database:
            db_dir = Path(database).parent
            db_dir.mkdir(parents=True, exist_ok=True)
            logger.debug("Database directory ready", path=str(db_dir))

    if not await db.check_connection():
        raise PersistenceError("Failed to connect to database")
    return db
