"""Fire-and-forget progress reporting for long-running operations."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int], Awaitable[None] | None]

# Strong references so scheduled progress coroutines are not garbage collected
_pending: set[asyncio.Task] = set()


def report_progress(callback: ProgressCallback | None, message: str, percent: int) -> None:
    """
    Log a progress step and hand it to ``callback`` without waiting.

    Coroutine callbacks are scheduled as tasks and never awaited. A failing
    callback is logged; it does not interrupt the operation.
    """
    logger.info(f"[{percent:3d}%] {message}")
    if callback is None:
        return

    try:
        result = callback(message, percent)
    except Exception:
        logger.warning("Progress callback failed", exc_info=True)
        return

    if inspect.isawaitable(result):
        task = asyncio.ensure_future(result)
        _pending.add(task)
        task.add_done_callback(_finish)


def _finish(task: asyncio.Task) -> None:
    _pending.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.warning("Progress callback failed", exc_info=task.exception())
