"""PostgreSQL connection pool shared by the queue and the appointment store.

Features:
- Connection pooling with automatic validation of pooled connections
- Retry decorator for transient connection failures

Author: Odiseo
Version: 1.0.0
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any, TypeVar

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from booking_notifications.config import NotificationConfig
from booking_notifications.core.exceptions import (
    NotificationQueueError,
    NotificationServiceError,
)
from booking_notifications.core.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def with_db_retry(
    max_retries: int = 2,
    error_message: str = "Database operation failed",
    error_class: type[NotificationServiceError] = NotificationQueueError,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for repository methods with automatic retry on connection errors.

    The decorated method receives a pooled connection as its first argument
    after ``self``. Pipeline errors raised inside (JobNotFound and friends)
    are re-raised untouched; other errors are wrapped in ``error_class``.

    Args:
        max_retries: Maximum attempts (default: 2).
        error_message: Base error message for failures.
        error_class: Exception type raised on failure.

    Example:
        @with_db_retry(error_message="Failed to fetch job")
        def get_job(self, conn, job_id):
            ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            last_error: Exception | None = None

            for attempt in range(max_retries):
                conn = self.db.get_connection()
                try:
                    return func(self, conn, *args, **kwargs)
                except psycopg2.OperationalError as e:
                    conn.rollback()
                    last_error = e
                    if attempt < max_retries - 1:
                        logger.warning(
                            f"Connection error in {func.__name__}, "
                            f"retrying ({attempt + 1}/{max_retries})"
                        )
                        continue
                    logger.error(f"{error_message} after {max_retries} attempts: {e}")
                except NotificationServiceError:
                    conn.rollback()
                    raise
                except Exception as e:
                    conn.rollback()
                    logger.error(f"{error_message}: {e}")
                    raise error_class(f"{error_message}: {e}") from e
                finally:
                    self.db.return_connection(conn)

            raise error_class(f"{error_message}: {last_error}") from last_error

        return wrapper

    return decorator


def _validate_connection(conn: psycopg2.extensions.connection) -> bool:
    """Validate if a database connection is alive.

    Returns:
        True if connection is valid, False if dead/unusable.
    """
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
        return True
    except (psycopg2.OperationalError, psycopg2.InterfaceError):
        return False


class Database:
    """PostgreSQL connection pool.

    Connections are handed out from the event-loop thread only; transport
    calls run in worker threads but never touch the pool.
    """

    def __init__(self, config: NotificationConfig | None = None) -> None:
        """Initialize the connection pool.

        Raises:
            NotificationQueueError: If pool initialization fails.
        """
        self.config = config or NotificationConfig()
        self.schema = self.config.SCHEMA_NAME
        self._pool: pool.SimpleConnectionPool | None = None

        try:
            logger.debug(
                f"Initializing PostgreSQL pool "
                f"(min={self.config.DB_POOL_SIZE_MIN}, max={self.config.DB_POOL_SIZE_MAX})"
            )
            self._pool = pool.SimpleConnectionPool(
                minconn=self.config.DB_POOL_SIZE_MIN,
                maxconn=self.config.DB_POOL_SIZE_MAX,
                dsn=self.config.DATABASE_URL,
                cursor_factory=RealDictCursor,
            )
            logger.info("Database pool initialized")
        except Exception as e:
            logger.error(f"Failed to initialize database pool: {e}")
            self.close()
            raise NotificationQueueError(f"Connection pool initialization failed: {e}") from e

    def get_connection(self) -> psycopg2.extensions.connection:
        """Get a validated connection from the pool.

        Raises:
            NotificationQueueError: If pool not initialized.
        """
        if not self._pool:
            raise NotificationQueueError("Connection pool not initialized")

        conn = self._pool.getconn()

        if not _validate_connection(conn):
            self._pool.putconn(conn, close=True)
            logger.warning("Dead connection detected, retrieving fresh connection")
            conn = self._pool.getconn()

        return conn

    def return_connection(self, conn: psycopg2.extensions.connection) -> None:
        if self._pool:
            self._pool.putconn(conn)

    def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            conn = self.get_connection()
            try:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                    cur.fetchone()
                return True
            finally:
                self.return_connection(conn)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return False

    def close(self) -> None:
        """Close all connections in pool."""
        if self._pool:
            try:
                self._pool.closeall()
                logger.info("Database pool closed")
            except Exception as e:
                logger.warning(f"Error closing connection pool: {e}")
            finally:
                self._pool = None
