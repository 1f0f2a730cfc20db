"""
Storage - Database.

============================================================
RESPONSIBILITY
============================================================
Owns the SQLAlchemy engine and session factory of the catalog.

- Creates the engine from a database URL
- Provides session and transaction context managers
- Creates the schema
- Health checks

============================================================
SQLITE
============================================================
- Foreign keys are enabled per connection (cascading deletes
  depend on them)
- LIKE is switched to case-sensitive matching
- In-memory databases share one connection across threads so every
  session sees the same data; callers must not interleave sessions
  on it (see shares_connection)

============================================================
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import get_config
from storage.models.base import Base


logger = logging.getLogger(__name__)


class DatabaseError(Exception):
    """Raised when the database cannot be reached or initialised."""
    pass


class Database:
    """
    Engine and session factory holder.

    Usage:
        db = Database("sqlite:///metric-library.db")
        db.create_schema()
        with db.transaction_scope() as session:
            session.add(record)
    """

    def __init__(self, url: Optional[str] = None, echo: bool = False) -> None:
        self.url = url or get_config().database_url
        self._engine = self._create_engine(self.url, echo)
        self._session_factory = sessionmaker(
            bind=self._engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def is_sqlite(self) -> bool:
        return self._engine.dialect.name == "sqlite"

    @property
    def shares_connection(self) -> bool:
        """True when every session runs on the same DBAPI connection (in-memory SQLite)."""
        return isinstance(self._engine.pool, StaticPool)

    @staticmethod
    def _create_engine(url: str, echo: bool) -> Engine:
        parsed = make_url(url)
        kwargs: dict[str, Any] = {"echo": echo, "future": True}

        if parsed.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if parsed.database in (None, "", ":memory:"):
                kwargs["poolclass"] = StaticPool

        engine = create_engine(url, **kwargs)

        if engine.dialect.name == "sqlite":
            @event.listens_for(engine, "connect")
            def on_connect(dbapi_conn, connection_record):
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.execute("PRAGMA case_sensitive_like=ON")
                cursor.close()

        logger.info(f"Database engine created for {parsed.render_as_string(hide_password=True)}")
        return engine

    # =========================================================
    # SESSIONS
    # =========================================================

    def get_session(self) -> Session:
        """
        Get a new session.

        Caller is responsible for closing it; prefer session_scope().
        """
        return self._session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Session for reads. Rolls back on error and always closes.
        """
        session = self.get_session()
        try:
            yield session
        except Exception as e:
            logger.error(f"Database error, rolling back: {e}")
            session.rollback()
            raise
        finally:
            session.close()

    @contextmanager
    def transaction_scope(self) -> Generator[Session, None, None]:
        """
        Explicit transaction boundary.

        Commits only if no exception occurs; rolls back on any exception.
        """
        session = self.get_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed")
        except Exception as e:
            logger.error(f"Database transaction failed, rolling back: {e}")
            session.rollback()
            raise
        finally:
            session.close()

    # =========================================================
    # LIFECYCLE
    # =========================================================

    def create_schema(self) -> None:
        """Create all catalog tables that do not exist yet."""
        # Register the catalog models with Base.metadata.
        from storage.models import metrics  # noqa: F401

        try:
            Base.metadata.create_all(bind=self._engine)
            logger.info("Database schema ready")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database schema: {e}")
            raise DatabaseError(f"Schema creation failed: {e}") from e

    def health_check(self) -> bool:
        """Return True when a trivial query succeeds."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except OperationalError as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    def close(self) -> None:
        self._engine.dispose()
        logger.debug("Database engine disposed")
