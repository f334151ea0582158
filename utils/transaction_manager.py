import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from functools import wraps
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

import config
import db
from db import session_commit, session_rollback
from exceptions.base import ConcurrencyConflictException

logger = logging.getLogger(__name__)

# SQLSTATE codes that mean "another transaction got there first"
_CONFLICT_SQLSTATES = {
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
    "55P03",  # lock_not_available
}

_CONFLICT_MESSAGES = (
    "database is locked",
    "could not serialize",
    "deadlock detected",
    "lock timeout",
    "lock wait timeout",
)


def is_concurrency_error(error: Exception) -> bool:
    """True if the driver error was caused by a concurrent writer rather than bad data."""
    if isinstance(error, IntegrityError):
        return False
    if not isinstance(error, DBAPIError):
        return False
    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _CONFLICT_SQLSTATES:
        return True
    message = str(error).lower()
    return isinstance(error, OperationalError) and any(m in message for m in _CONFLICT_MESSAGES)


def is_unique_violation(error: Exception, column: str) -> bool:
    """
    True if ``error`` is a unique key violation on ``column`` ("table.column").

    SQLite names the column ("UNIQUE constraint failed: orders.order_number"),
    PostgreSQL the constraint ("orders_order_number_key").
    """
    if not isinstance(error, IntegrityError):
        return False
    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    message = str(orig if orig is not None else error).lower()
    if sqlstate is not None and sqlstate != "23505":
        return False
    if sqlstate is None and "unique" not in message:
        return False
    column = column.lower()
    return column in message or column.replace(".", "_") in message


class TransactionManager:
    """
    Utility class for managing database transactions with proper isolation,
    rollback mechanisms, and retry logic for race condition prevention.

    Every public operation of the inventory/order core runs inside exactly one
    ``atomic_transaction``: everything commits together or nothing does.
    """

    # Transaction timeout in seconds
    TRANSACTION_TIMEOUT = config.TRANSACTION_TIMEOUT_SECONDS

    # Retry configuration
    MAX_RETRIES = config.TRANSACTION_MAX_RETRIES
    RETRY_DELAY_BASE = config.TRANSACTION_RETRY_DELAY_BASE  # Base delay in seconds

    @staticmethod
    @asynccontextmanager
    async def atomic_transaction(timeout: Optional[int] = None) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for atomic database transactions.

        Commits when the block exits normally, rolls back on any exception.
        Lock timeouts and serialization failures are re-raised as
        ConcurrencyConflictException (retryable).

        Usage:
            async with TransactionManager.atomic_transaction() as session:
                # Database operations here
                await session.execute(...)
        """
        timeout = timeout or TransactionManager.TRANSACTION_TIMEOUT

        async with db.get_db_session() as session:
            try:
                bind = session.bind
                if bind is not None and bind.dialect.name == "postgresql":
                    # Read-then-decrement on stock is only race free at SERIALIZABLE
                    await session.execute(text("SET TRANSACTION ISOLATION LEVEL SERIALIZABLE"))
                    await session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout)}s'"))

                transaction_start = datetime.now()
                logger.debug(f"Transaction started at {transaction_start}")

                yield session

                duration = (datetime.now() - transaction_start).total_seconds()
                if duration > timeout:
                    logger.warning(f"Transaction exceeded timeout: {duration}s > {timeout}s")

                await session_commit(session)
                logger.debug(f"Transaction committed successfully in {duration:.2f}s")

            except Exception as e:
                try:
                    await session_rollback(session)
                    logger.info(f"Transaction rolled back due to error: {str(e)}")
                except Exception as rollback_error:
                    logger.critical(f"Failed to rollback transaction: {str(rollback_error)}")
                if is_concurrency_error(e):
                    raise ConcurrencyConflictException("transaction", str(e.orig if hasattr(e, "orig") else e)) from e
                raise

    @staticmethod
    @asynccontextmanager
    async def join_or_begin(session: AsyncSession | None = None) -> AsyncGenerator[AsyncSession, None]:
        """
        Reuse the caller's session when one is given (the caller owns commit and
        rollback), otherwise open a new atomic transaction.

        Lets ledger operations run standalone or as one step of a larger unit
        such as order placement.
        """
        if session is not None:
            yield session
        else:
            async with TransactionManager.atomic_transaction() as new_session:
                yield new_session

    @staticmethod
    def with_retry(max_retries: Optional[int] = None, delay_base: Optional[float] = None,
                   unique_columns: tuple[str, ...] = ()):
        """
        Decorator for automatic retry of database operations with exponential backoff.

        Only transient failures are retried: concurrency conflicts, and unique
        key collisions on ``unique_columns`` (e.g. a generated order number
        that was taken meanwhile). Any other IntegrityError is deterministic
        and propagates at once. The decorated function must open its own
        transaction so every attempt starts from a clean state.

        Args:
            max_retries: Maximum number of retry attempts
            delay_base: Base delay for exponential backoff
            unique_columns: "table.column" names whose unique violations are retried
        """
        max_retries = max_retries if max_retries is not None else TransactionManager.MAX_RETRIES
        delay_base = delay_base or TransactionManager.RETRY_DELAY_BASE

        def is_transient(error: Exception) -> bool:
            if isinstance(error, ConcurrencyConflictException):
                return True
            return any(is_unique_violation(error, column) for column in unique_columns)

        def decorator(func):
            @wraps(func)
            async def wrapper(*args, **kwargs):
                last_exception = None

                for attempt in range(max_retries + 1):
                    try:
                        return await func(*args, **kwargs)
                    except (ConcurrencyConflictException, IntegrityError) as e:
                        if not is_transient(e):
                            raise
                        last_exception = e

                        if attempt == max_retries:
                            logger.error(f"Function {func.__name__} failed after {max_retries} retries: {str(e)}")
                            break

                        # Exponential backoff with jitter
                        delay = delay_base * (2 ** attempt) + (delay_base * 0.1 * attempt)
                        logger.warning(f"Attempt {attempt + 1} failed for {func.__name__}, retrying in {delay:.2f}s: {str(e)}")
                        await asyncio.sleep(delay)

                raise last_exception

            return wrapper
        return decorator
