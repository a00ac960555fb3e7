"""
Database connection management for the SQLite job store.

One file-backed SQLite database in WAL mode, shared by every tracker in
the process through a SQLAlchemy engine and session factory.
"""

import os

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from dropwatch.db.tables import metadata

MEMORY_DB = ":memory:"


def _set_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


class DatabaseConnection:
    """
    Manages the SQLite engine and session factory.

    Usage:
        # Initialize at app startup
        DatabaseConnection.initialize(db_path="/data/tracker.db")

        # Repositories get their sessions through UnitOfWork
        with UnitOfWork() as uow:
            uow.tracking_jobs.list_all()

        # Close at app shutdown
        DatabaseConnection.close()

    ``db_path=":memory:"`` keeps a single shared in-memory connection, which
    is what the tests use.
    """

    _engine: Engine | None = None
    _session_factory: sessionmaker | None = None
    _initialized: bool = False

    @classmethod
    def initialize(cls, db_path: str | None = None):
        """
        Initialize the engine and create the schema if missing.

        Args:
            db_path: SQLite file path (defaults to the DB_PATH env variable)
        """
        if cls._initialized:
            return

        db_path = db_path or os.getenv("DB_PATH")
        if not db_path:
            raise ValueError(
                "DB_PATH environment variable is required. "
                "Use a path on a persistent volume, e.g. /data/tracker.db"
            )

        if db_path == MEMORY_DB:
            cls._engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            cls._engine = create_engine(
                f"sqlite:///{db_path}",
                connect_args={"check_same_thread": False},
            )
            event.listen(cls._engine, "connect", _set_sqlite_pragmas)

        metadata.create_all(cls._engine)

        cls._session_factory = sessionmaker(bind=cls._engine)
        cls._initialized = True

    @classmethod
    def get_engine(cls) -> Engine:
        """Get the SQLAlchemy engine."""
        if not cls._initialized or cls._engine is None:
            raise RuntimeError(
                "Database not initialized. Call DatabaseConnection.initialize() first."
            )
        return cls._engine

    @classmethod
    def close(cls):
        """Dispose of the engine."""
        if cls._engine:
            cls._engine.dispose()
            cls._engine = None

        cls._session_factory = None
        cls._initialized = False

    @classmethod
    def get_session(cls) -> Session:
        """
        Get a new database session.

        The caller commits or rolls back and closes it; UnitOfWork does this.
        """
        if not cls._initialized or cls._session_factory is None:
            raise RuntimeError(
                "Database not initialized. Call DatabaseConnection.initialize() first."
            )

        return cls._session_factory()
