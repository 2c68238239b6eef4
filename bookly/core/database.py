"""
Database Management and Connection Handling

Engine and session management for the reassignment backend, with
SQLite savepoint support and schema setup helpers.
"""

from typing import Any, Dict, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings
from .exceptions import RepositoryError
from .logging import get_logger

logger = get_logger(__name__)


def _enable_sqlite_savepoints(engine: Engine) -> None:
    """
    Let SQLAlchemy own transaction boundaries on pysqlite.

    The pysqlite driver defers BEGIN on its own, which breaks SAVEPOINT
    handling; emitting BEGIN explicitly keeps nested transactions usable.
    """

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseManager:
    """Main database connection and session manager"""

    def __init__(
        self,
        database_url: Optional[str] = None,
        echo: Optional[bool] = None
    ):
        self.database_url = database_url or settings.database.database_url
        self.echo = settings.database.DB_ECHO if echo is None else echo
        self.engine: Optional[Engine] = None
        self.session_factory: Optional[sessionmaker] = None
        self._initialized = False

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def initialize(self) -> None:
        """Create the engine and session factory"""
        if self._initialized:
            return

        engine_kwargs: Dict[str, Any] = {
            'echo': self.echo,
            'pool_pre_ping': settings.database.DB_POOL_PRE_PING,
        }

        if self.is_sqlite:
            engine_kwargs['connect_args'] = {"check_same_thread": False}
            # In-memory databases live as long as their single connection
            if ":memory:" in self.database_url or self.database_url == "sqlite://":
                engine_kwargs['poolclass'] = StaticPool

        try:
            self.engine = create_engine(self.database_url, **engine_kwargs)
            if self.is_sqlite:
                _enable_sqlite_savepoints(self.engine)

            self.session_factory = sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False,
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database manager: {str(e)}")
            raise RepositoryError(
                f"Database initialization failed: {str(e)}",
                operation="initialize"
            )

        self._initialized = True
        logger.info(f"Created database engine: {self.engine.dialect.name}")

    def get_session(self) -> Session:
        """Create a new session bound to the managed engine"""
        if not self._initialized:
            self.initialize()
        return self.session_factory()

    def create_all(self) -> None:
        """Create every mapped table"""
        from bookly.models import Base

        if not self._initialized:
            self.initialize()
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database schema created")

    def drop_all(self) -> None:
        """Drop every mapped table"""
        from bookly.models import Base

        if not self._initialized:
            self.initialize()
        Base.metadata.drop_all(bind=self.engine)
        logger.info("Database schema dropped")

    def close(self) -> None:
        """Dispose of the engine and its pooled connections"""
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database engine disposed")
        self._initialized = False


__all__ = [
    'DatabaseManager',
]
