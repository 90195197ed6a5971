"""
Database engine, session factory, and metadata shared across the application.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Callable, Generator, Optional, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from slotkeeper.core.config import settings
from slotkeeper.core.exceptions import RepositoryException, ServiceException

logger = logging.getLogger(__name__)


def _build_engine_kwargs(db_url: str) -> dict[str, Any]:
    """Engine options for the configured backend."""
    if db_url.startswith("sqlite"):
        # SessionLocal is used from worker threads (asyncio.to_thread)
        return {"connect_args": {"check_same_thread": False, "timeout": 15}}
    return {
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 5,
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }


def build_engine(db_url: str) -> Engine:
    new_engine = create_engine(db_url, **_build_engine_kwargs(db_url))
    if db_url.startswith("sqlite"):
        event.listen(new_engine, "connect", _sqlite_on_connect)
    return new_engine


def _sqlite_on_connect(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    logger.debug("SQLite connection established")


engine: Engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Get database session with proper cleanup."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


T = TypeVar("T")
# Lock contention and dropped connections; anything else is a real failure.
_RETRYABLE_ERROR_SNIPPETS = (
    "deadlock detected",
    "could not serialize access",
    "database is locked",
    "lock timeout",
    "server closed the connection",
    "ssl connection has been closed unexpectedly",
)


def is_retryable_db_error(exc: OperationalError) -> bool:
    message = str(exc).lower()
    return any(snippet in message for snippet in _RETRYABLE_ERROR_SNIPPETS)


def _retry_delay(attempt: int) -> float:
    base = 0.05 * (2 ** (attempt - 1))
    return base + random.uniform(0, 0.05 * attempt)


def _operational_cause(exc: Optional[BaseException]) -> Optional[OperationalError]:
    """Find an OperationalError in the ``raise ... from`` chain of ``exc``."""
    while exc is not None:
        if isinstance(exc, OperationalError):
            return exc
        exc = exc.__cause__
    return None


def with_db_retry(op_name: str, func: Callable[[], T], *, max_attempts: int = 3) -> T:
    """
    Execute a DB operation, retrying transient contention errors.

    ``func`` must be safe to re-run from scratch: it is expected to open and
    finish its own transaction. Service and repository wrappers around an
    OperationalError are retried the same way as the raw error.
    """

    attempt = 1
    while True:
        try:
            return func()
        except (OperationalError, RepositoryException, ServiceException) as exc:
            cause = _operational_cause(exc)
            if cause is None or not is_retryable_db_error(cause):
                raise
            if attempt >= max_attempts:
                logger.error(
                    "DB operation still failing after retries",
                    extra={"event": "db_retry_exhausted", "op": op_name, "attempts": attempt},
                )
                if isinstance(exc, ServiceException):
                    raise
                raise ServiceException(
                    f"{op_name} failed after {attempt} attempts: {cause}",
                    code="STORAGE_CONTENTION",
                ) from exc

            delay = _retry_delay(attempt)
            logger.warning(
                "Transient DB failure detected, retrying",
                extra={
                    "event": "db_retry",
                    "op": op_name,
                    "attempt": attempt,
                    "delay": delay,
                    "error": str(cause),
                },
            )
            time.sleep(delay)
            attempt += 1


__all__ = [
    "Base",
    "SessionLocal",
    "build_engine",
    "engine",
    "get_db",
    "is_retryable_db_error",
    "with_db_retry",
]
