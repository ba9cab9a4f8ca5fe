"""
Warden - Async Utilities
========================

Helpers for best-effort async work that must never fail silently.

Usage:
    from warden.utils.async_utils import safe_async_operation, create_safe_task

    await safe_async_operation("DM Subject", user.send(embed=embed))
    create_safe_task(self._sweep_loop(), "Temp Role Sweep")
"""

import asyncio
from typing import Any, Coroutine, Optional

from warden.core.constants import LOG_TRUNCATE_LONG, LOG_TRUNCATE_MEDIUM
from warden.core.logger import logger


async def safe_async_operation(
    name: str,
    coro: Coroutine[Any, Any, Any],
    default: Any = None,
    log_level: str = "warning",
    context: Optional[str] = None,
) -> Any:
    """
    Await one best-effort operation, logging instead of raising.

    Args:
        name: Operation name for logs.
        coro: The coroutine to run.
        default: Value returned on failure.
        log_level: "debug", "warning" or "error".
        context: Optional caller label (e.g. "Global Ban").

    Returns:
        The coroutine's result, or ``default`` if it raised.
    """
    try:
        return await coro
    except asyncio.CancelledError:
        raise
    except Exception as e:
        details = [
            ("Operation", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:LOG_TRUNCATE_MEDIUM]),
        ]
        if context:
            details.insert(0, ("Context", context))

        if log_level == "debug":
            logger.debug("Async Operation Failed", details)
        elif log_level == "error":
            logger.error("Async Operation Failed", details)
        else:
            logger.warning("Async Operation Failed", details)

        return default


def create_safe_task(
    coro: Coroutine[Any, Any, Any],
    name: str = "Background Task",
) -> asyncio.Task:
    """
    Start a background task whose crash is logged rather than lost.

    Cancellation is treated as a normal shutdown.
    """
    async def wrapped():
        try:
            await coro
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("Background Task Failed", [
                ("Task", name),
                ("Error Type", type(e).__name__),
                ("Error", str(e)[:LOG_TRUNCATE_LONG]),
            ])

    return asyncio.create_task(wrapped())


__all__ = [
    "safe_async_operation",
    "create_safe_task",
]
