"""
Database connection pool and session management for the user service
"""
from contextlib import contextmanager
from typing import Generator, Optional
import logging
import time

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

Base = declarative_base()


def driver_connect_args(url, connect_timeout: Optional[float] = None, query_timeout: Optional[float] = None) -> dict:
    """
    Driver-level timeouts for ``create_engine(connect_args=...)``.

    ``pool_timeout`` only bounds the wait for a pooled connection; these bound
    the connect handshake and each round trip, so a stalled query fails with a
    driver error (StoreUnavailable) instead of holding its connection.
    """
    backend = url.get_backend_name()
    args = {}
    if backend == "sqlite":
        args["check_same_thread"] = False
        if query_timeout:
            args["timeout"] = query_timeout
    elif backend in ("mysql", "mariadb"):
        if connect_timeout:
            args["connect_timeout"] = connect_timeout
        if query_timeout:
            args["read_timeout"] = query_timeout
            args["write_timeout"] = query_timeout
    elif backend == "postgresql":
        if connect_timeout:
            args["connect_timeout"] = int(connect_timeout)
        if query_timeout:
            args["options"] = f"-c statement_timeout={int(query_timeout * 1000)}"
    return args


class Database:
    """
    Explicitly constructed handle around a SQLAlchemy engine and its pool.

    One instance is shared read-only by every request. The composing
    application owns its lifecycle: connect, ping, dispose.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)

    @classmethod
    def from_url(
        cls,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: float = 30.0,
        connect_timeout: Optional[float] = 10,
        query_timeout: Optional[float] = 30,
        echo: bool = False,
    ) -> "Database":
        """Build a handle without touching the network."""
        try:
            parsed = make_url(url)
        except ArgumentError as exc:
            raise StoreUnavailable(f"Invalid database URL: {exc}") from exc

        connect_args = driver_connect_args(parsed, connect_timeout, query_timeout)
        if parsed.get_backend_name() == "sqlite":
            kwargs = {"connect_args": connect_args}
            # In-memory databases exist per connection, so share a single one
            if parsed.database in (None, "", ":memory:"):
                kwargs["poolclass"] = StaticPool
        else:
            kwargs = {
                "connect_args": connect_args,
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_timeout": pool_timeout,
                "pool_pre_ping": True,
            }

        try:
            engine = create_engine(parsed, echo=echo, **kwargs)
        except (SQLAlchemyError, ImportError, ValueError) as exc:
            raise StoreUnavailable(f"Could not create database engine: {exc}") from exc
        return cls(engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Yield a session bound to one pooled connection.

        Raises:
            StoreUnavailable: if a connection cannot be acquired or the work fails
        """
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as exc:
            db.rollback()
            raise StoreUnavailable(str(exc)) from exc
        finally:
            db.close()

    def ping(self) -> bool:
        """
        Check if database connection is working.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error("Database connection check failed: %s", e)
            return False

    def create_tables(self) -> None:
        """Create the users table if it does not exist yet."""
        from . import models  # noqa: F401  registers UserRecord on Base

        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Could not create tables: {exc}") from exc

    def dispose(self) -> None:
        self.engine.dispose()


def connect(
    url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_timeout: float = 30.0,
    connect_timeout: Optional[float] = 10,
    query_timeout: Optional[float] = 30,
    attempts: int = 1,
    backoff_seconds: float = 1.0,
    sleep=time.sleep,
) -> Database:
    """
    Open the database and verify it answers.

    Startup policy belongs to the caller: ``attempts`` and ``backoff_seconds``
    control retry with linear backoff, and the final failure is raised rather
    than terminating the process.

    Raises:
        StoreUnavailable: if the store is still unreachable after all attempts
    """
    database = Database.from_url(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
        connect_timeout=connect_timeout,
        query_timeout=query_timeout,
    )
    attempts = max(1, attempts)

    last_error: Optional[str] = None
    for attempt in range(1, attempts + 1):
        if database.ping():
            logger.info("Database connection established (attempt %s/%s)", attempt, attempts)
            return database
        last_error = f"ping failed on attempt {attempt}"
        if attempt < attempts:
            delay = backoff_seconds * attempt
            logger.warning("Database not reachable, retrying in %.1fs (attempt %s/%s)", delay, attempt, attempts)
            sleep(delay)

    database.dispose()
    raise StoreUnavailable(f"Database unreachable after {attempts} attempt(s): {last_error}")
