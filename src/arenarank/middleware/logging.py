# src/arenarank/middleware/logging.py

"""Operation logging for ArenaRank engine calls."""

import functools
import logging
import os
import sys
import time
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from arenarank.exceptions import ArenaRankError

logger = logging.getLogger("arenarank.operations")

T = TypeVar("T")


def log_operation(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """Decorator for logging async engine operations.

    Logs the operation name on entry.
    Logs the outcome and duration on completion.
    Domain errors (ArenaRankError) are expected outcomes and log at WARNING;
    anything else logs at ERROR with a traceback. Errors are always re-raised.
    """
    operation = func.__qualname__

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        # Generate unique operation ID for tracing
        operation_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        logger.debug(
            "[%s] %s",
            operation_id,
            operation,
            extra={"operation_id": operation_id, "operation": operation},
        )

        try:
            result = await func(*args, **kwargs)
        except ArenaRankError as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "[%s] %s -> %s (%.2fms): %s",
                operation_id,
                operation,
                type(e).__name__,
                duration_ms,
                e.message,
                extra={
                    "operation_id": operation_id,
                    "operation": operation,
                    "error_type": type(e).__name__,
                    "duration_ms": round(duration_ms, 2),
                    "details": e.details,
                },
            )
            raise
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "[%s] %s -> ERROR (%.2fms): %s",
                operation_id,
                operation,
                duration_ms,
                str(e),
                extra={
                    "operation_id": operation_id,
                    "operation": operation,
                    "error": str(e),
                    "duration_ms": round(duration_ms, 2),
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "[%s] %s -> ok (%.2fms)",
            operation_id,
            operation,
            duration_ms,
            extra={
                "operation_id": operation_id,
                "operation": operation,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return result

    return wrapper


def configure_logging(level: str | None = None) -> None:
    """Attach a console handler to the ``arenarank`` logger.

    The level comes from ``level`` or the ARENA_LOG_LEVEL environment
    variable (default INFO). Calling it again only updates the level.
    """
    level_name = (level or os.getenv("ARENA_LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger("arenarank")
    root.setLevel(level_name)

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
