"""Repository utility functions for common database operations."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)

# Threshold for flagging slow queries (milliseconds)
SLOW_QUERY_THRESHOLD_MS = 500

P = ParamSpec("P")
R = TypeVar("R")


class StorageError(Exception):
    """The streak store could not be read or written.

    Aborts the current invocation; the caller's transaction is rolled back
    and the whole invocation can be retried.
    """

    def __init__(self, operation: str, message: str) -> None:
        self.operation = operation
        super().__init__(f"{operation}: {message}")


def storage_operation(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator for repository methods.

    Flags queries exceeding SLOW_QUERY_THRESHOLD_MS on the wide event and
    re-raises any SQLAlchemyError as StorageError.

    Usage:
        @storage_operation("streak.get")
        async def get(self, user_id: str) -> UserStreak | None:
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except SQLAlchemyError as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                set_wide_event_fields(
                    db_query_error=True,
                    db_operation=operation_name,
                    db_duration_ms=round(duration_ms, 2),
                    db_error_type=type(e).__name__,
                )
                logger.error(
                    "db.operation.failed",
                    operation=operation_name,
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                raise StorageError(operation_name, type(e).__name__) from e

            duration_ms = (time.perf_counter() - start_time) * 1000
            if duration_ms > SLOW_QUERY_THRESHOLD_MS:
                set_wide_event_fields(
                    db_slow_query=True,
                    db_operation=operation_name,
                    db_duration_ms=round(duration_ms, 2),
                )
            return result

        return wrapper

    return decorator


async def insert_or_ignore[T](
    db: AsyncSession,
    model: type[T],
    values: dict[str, Any],
    index_elements: list[str],
) -> bool:
    """INSERT ... ON CONFLICT DO NOTHING.

    Returns True if a row was inserted, False if the unique key already
    existed. Does NOT commit. Caller owns the transaction.
    """
    stmt = (
        pg_insert(model)
        .values(**values)
        .on_conflict_do_nothing(index_elements=index_elements)
    )
    result = await db.execute(stmt)
    return (result.rowcount or 0) > 0


async def upsert_on_conflict[T](
    db: AsyncSession,
    model: type[T],
    values: dict[str, Any],
    index_elements: list[str],
    update_fields: list[str],
    *,
    returning: bool = False,
) -> T | None:
    """
    Perform an upsert (INSERT ... ON CONFLICT DO UPDATE).

    Args:
        values: Column name -> value mapping for insert.
        index_elements: Columns forming the unique constraint to match on.
        update_fields: Columns to update when conflict occurs.
        returning: Return the upserted row (saves a SELECT round-trip).

    Note:
        Does NOT commit. Caller owns the transaction.
    """
    update_set = {field: values[field] for field in update_fields if field in values}

    if not update_set:
        raise ValueError(
            f"No valid update fields: update_fields={update_fields} "
            f"but values only contains keys {list(values.keys())}"
        )

    stmt = pg_insert(model).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=index_elements,
        set_=update_set,
    )
    if returning:
        stmt = stmt.returning(model)
        result = await db.execute(
            stmt, execution_options={"populate_existing": True}
        )
        return result.scalar_one()
    await db.execute(stmt)
    return None
