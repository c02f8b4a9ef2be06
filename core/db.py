import logging
import os
import re
import ssl
import time
import urllib.parse
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker

from config import (
    DATABASE_URL as CONFIGURED_DATABASE_URL,
    DB_RETRY_BACKOFF_SECONDS,
    DB_RETRY_MAX_ATTEMPTS,
    TESTING,
)
from core.logging import request_context

logger = logging.getLogger(__name__)

T = TypeVar("T")

DATABASE_URL = CONFIGURED_DATABASE_URL

if not DATABASE_URL:
    if TESTING:
        # In testing environment, use SQLite in-memory database as fallback
        DATABASE_URL = "sqlite:///:memory:"
        logger.warning("Using in-memory SQLite database for testing")
    else:
        raise ValueError("DATABASE_URL environment variable is not set")

ssl_mode = None

# Only apply PostgreSQL-specific modifications if we're actually using PostgreSQL
if not DATABASE_URL.startswith("sqlite"):
    # If using Heroku/Vercel, convert the postgres:// URL to postgresql://
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    parsed = urllib.parse.urlparse(DATABASE_URL)
    query_params = urllib.parse.parse_qs(parsed.query)
    ssl_mode = query_params.get("sslmode", [None])[0]

    # Use pg8000 instead of psycopg2
    if "postgresql" in DATABASE_URL and "driver=" not in DATABASE_URL:
        pattern = r"postgresql://([^:]+):([^@]+)@([^:/]+):?(\d*)/?([^?]*)"
        match = re.match(pattern, DATABASE_URL)

        if match:
            username, password, host, port, dbname = match.groups()
            if not port:
                port = "5432"
            # Reconstruct URL with pg8000 driver (without URL-level SSL params)
            DATABASE_URL = (
                f"postgresql+pg8000://{username}:{password}@{host}:{port}/{dbname}"
            )


def enable_sqlite_savepoints(_engine):
    """Let SQLAlchemy own BEGIN so SAVEPOINT/ROLLBACK TO behave on pysqlite."""

    @event.listens_for(_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


def _install_slow_query_logging(_engine):
    threshold_ms = float(os.getenv("SLOW_DB_QUERY_THRESHOLD_MS", "200"))
    if threshold_ms <= 0:
        return

    slow_logger = logging.getLogger("db.slow_query")

    @event.listens_for(_engine, "before_cursor_execute")
    def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        context._query_start_time = time.perf_counter()

    @event.listens_for(_engine, "after_cursor_execute")
    def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        start = getattr(context, "_query_start_time", None)
        if start is None:
            return
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        if elapsed_ms < threshold_ms:
            return

        stmt = " ".join(str(statement).split())
        if len(stmt) > 500:
            stmt = stmt[:500] + "…"
        params_repr = repr(parameters)
        if len(params_repr) > 500:
            params_repr = params_repr[:500] + "…"

        slow_logger.warning(
            "SLOW_DB_QUERY | ms=%.1f | stmt=%s | params=%s",
            elapsed_ms,
            stmt,
            params_repr,
        )


def build_engine(database_url: str):
    if database_url.startswith("sqlite"):
        _engine = create_engine(
            database_url, echo=False, connect_args={"check_same_thread": False}
        )
        enable_sqlite_savepoints(_engine)
    else:
        connect_args = {}
        pool_size = int(os.getenv("DB_POOL_SIZE", "10"))
        max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "20"))
        pool_timeout = int(os.getenv("DB_POOL_TIMEOUT_SECONDS", "30"))
        pool_recycle = int(os.getenv("DB_POOL_RECYCLE_SECONDS", "300"))

        if ssl_mode == "disable" or TESTING:
            pass
        elif ssl_mode == "require" or not ssl_mode:
            ssl_context = ssl.create_default_context()
            ssl_context.check_hostname = False
            ssl_context.verify_mode = ssl.CERT_NONE
            connect_args["ssl_context"] = ssl_context

        _engine = create_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
            echo=False,
            pool_recycle=pool_recycle,
            connect_args=connect_args,
        )

    _install_slow_query_logging(_engine)
    return _engine


engine = build_engine(DATABASE_URL)

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class
Base = declarative_base()


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DB_RETRY_MAX_ATTEMPTS
    backoff_seconds: float = DB_RETRY_BACKOFF_SECONDS
    backoff_multiplier: float = 2.0

    def delay_for(self, attempt: int) -> float:
        """Sleep before retry number `attempt` (1-based)."""
        return self.backoff_seconds * (self.backoff_multiplier ** (attempt - 1))


def is_connection_fault(exc: Exception) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


class PersistenceContext:
    """Session source handed to every core operation, with its retry policy."""

    def __init__(
        self,
        session_factory: Callable = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session_factory = session_factory or SessionLocal
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @contextmanager
    def session(self):
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def run(self, operation: Callable[..., T], *args, **kwargs) -> T:
        """Run `operation(db, *args, **kwargs)` in a fresh session.

        Connection-level faults retry the whole operation with backoff; every
        other exception propagates on the first occurrence. All attempts share
        one request id in the logs.
        """
        attempts = max(1, self.retry_policy.max_attempts)
        with request_context():
            for attempt in range(1, attempts + 1):
                try:
                    with self.session() as db:
                        return operation(db, *args, **kwargs)
                except DBAPIError as exc:
                    if not is_connection_fault(exc) or attempt == attempts:
                        raise
                    delay = self.retry_policy.delay_for(attempt)
                    logger.warning(
                        "Persistence fault on attempt %s/%s for %s, retrying in %.2fs: %s",
                        attempt,
                        attempts,
                        getattr(operation, "__name__", repr(operation)),
                        delay,
                        exc,
                    )
                    self._sleep(delay)
        raise AssertionError("retry loop exited without result")


def create_tables(bind=None):
    """Create all tables"""
    Base.metadata.create_all(bind=bind or engine)
