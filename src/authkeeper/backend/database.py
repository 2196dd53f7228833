"""Database connection bootstrap and session management"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel

from .exception import ConnectionError

# Import all models to ensure they are registered with SQLModel
from .model import User  # noqa: F401

logger = logging.getLogger(__name__)


def build_database_url(uri: str, database_name: str | None = None) -> URL:
    """Build the async database URL from a connection string

    Plain sqlite URLs are switched to the aiosqlite driver. For server
    backends `database_name` replaces any database named in the connection
    string. For SQLite the database is a file path, so `database_name`
    is only used when the URI names none.

    Args:
        uri: Connection string
        database_name: Database to connect to

    Returns:
        SQLAlchemy URL
    """
    url = make_url(uri)
    if url.drivername == "sqlite":
        url = url.set(drivername="sqlite+aiosqlite")
    if database_name and not (url.get_backend_name() == "sqlite" and url.database):
        url = url.set(database=database_name)
    return url


class Database:
    """Handle on the one database connection of the process

    Created once by `connect()` and passed explicitly to the store and the
    reaper. A handle whose bootstrap failed stays in the failed state:
    every `session()` call raises ConnectionError.
    """

    def __init__(
        self,
        url: URL | None = None,
        engine: AsyncEngine | None = None,
        error: BaseException | None = None,
    ):
        self.url = url
        self.engine = engine
        self.error = error
        self.session_factory = None
        if engine is not None and error is None:
            self.session_factory = sessionmaker(
                engine,
                class_=AsyncSession,
                expire_on_commit=False,
                autoflush=False,
                autocommit=False,
            )

    @property
    def is_connected(self) -> bool:
        return self.session_factory is not None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get an async database session

        The session is committed on success and rolled back on exception.

        Yields:
            AsyncSession: Database session

        Raises:
            ConnectionError: Handle not connected, or the driver lost the
                connection while the session was in use
        """
        if not self.is_connected:
            raise ConnectionError(
                f"Database is not connected: {self.error or 'connect() was not called'}"
            )

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except (OperationalError, InterfaceError) as e:
                await session.rollback()
                logger.error(f"Database connection error: {e}")
                raise ConnectionError(f"Database unreachable: {e}") from e
            except Exception:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        """Close all pooled connections"""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database connection closed")
        self.session_factory = None


async def connect(
    uri: str | None,
    database_name: str | None = None,
    echo: bool = False,
) -> Database:
    """Establish the database connection for this process

    Opens a connection and creates missing tables. Failures are logged
    and returned as a failed handle; there is no retry.

    Args:
        uri: Connection string (e.g. "sqlite:///./data/authkeeper.db")
        database_name: Database to connect to (SQLite: only when the URI names none)
        echo: Log emitted SQL

    Returns:
        Database handle (check `is_connected`)
    """
    if not uri:
        error = ConnectionError("No database connection string configured")
        logger.error(f"Error connecting to the database: {error.message}")
        return Database(error=error)

    url = None
    engine = None
    try:
        url = build_database_url(uri, database_name)
        engine = create_async_engine(url, echo=echo, future=True)
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
    except Exception as e:
        logger.error(f"Error connecting to the database: {e}", exc_info=True)
        if engine is not None:
            await engine.dispose()
        return Database(url=url, error=e)

    logger.info(
        f"Connected to the database: {url.render_as_string(hide_password=True)}"
    )
    return Database(url=url, engine=engine)
