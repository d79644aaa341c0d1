"""Tracking for fire-and-forget asyncio tasks."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)
_SCHEDULED_TASKS: set[asyncio.Task[Any]] = set()


def _log_exception(future: asyncio.Future[Any]) -> None:
    """Log any exception from a scheduled task."""
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.exception("Unhandled exception in background task", exc_info=exc)


def schedule[T](coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
    """Schedule an async coroutine on the running event loop.

    The task is kept alive until it finishes and its exception, if any, is logged.
    """
    task: asyncio.Task[T] = asyncio.create_task(coro)
    _SCHEDULED_TASKS.add(task)
    task.add_done_callback(_discard_task)
    task.add_done_callback(_log_exception)
    return task


def _discard_task(task: asyncio.Future[Any]) -> None:
    _SCHEDULED_TASKS.discard(task)  # type: ignore[arg-type]
