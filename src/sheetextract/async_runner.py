"""Helpers to run async operations from sync contexts and under a concurrency cap."""

from __future__ import annotations

import asyncio
import threading
from queue import Queue
from typing import TYPE_CHECKING, Any

from sheetextract.exceptions import AsyncExecutionError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Coroutine, Sequence

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 5


def _run_in_background_thread[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine in a dedicated thread with its own event loop.

    Args:
        coro: The coroutine to run.

    Raises:
        AsyncExecutionError: If the coroutine raises an exception.

    Returns:
        The result of the coroutine.
    """
    output: Queue[T | BaseException] = Queue(maxsize=1)

    def _runner() -> None:
        try:
            output.put(asyncio.run(coro))
        except BaseException as exc:
            output.put(exc)

    thread = threading.Thread(target=_runner, daemon=True)
    thread.start()
    thread.join()

    result = output.get()
    if isinstance(result, BaseException):
        raise AsyncExecutionError(result=result) from result
    return result


def run_async[T](coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine from both sync and async contexts.

    If no event loop is running the coroutine runs with `asyncio.run`. If called
    while a loop is already running, the coroutine runs in a dedicated thread with
    its own event loop.

    Args:
        coro: The coroutine to run.

    Returns:
        The result of the coroutine.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    return _run_in_background_thread(coro)


def validate_concurrency(concurrency: int) -> int:
    """Validate a concurrency limit.

    Args:
        concurrency: Requested number of in-flight tasks.

    Raises:
        ValueError: If the limit is outside `[1, 5]`.

    Returns:
        int: The validated limit.
    """
    if not MIN_CONCURRENCY <= concurrency <= MAX_CONCURRENCY:
        message = f"concurrency must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}, got {concurrency}"
        raise ValueError(message)
    return concurrency


async def run_bounded[I, R](
    items: Sequence[I],
    worker: Callable[[I], Awaitable[R]],
    *,
    concurrency: int,
    timeout: float | None = None,
) -> list[R]:
    """Run `worker` on every item with at most `concurrency` calls in flight.

    Results are positional: `result[i]` is the output for `items[i]` whatever the
    completion order. The first failure cancels every pending worker and is
    re-raised; no partial result is returned.

    Args:
        items: Work items, in output order.
        worker: Async callable applied to each item.
        concurrency: In-flight ceiling, within `[1, 5]`.
        timeout: Optional per-item time limit in seconds. Exceeding it raises `TimeoutError`.

    Returns:
        list[R]: One result per item, in input order.
    """
    limit = validate_concurrency(concurrency)
    if not items:
        return []

    semaphore = asyncio.Semaphore(limit)

    async def _run_one(item: I) -> R:
        async with semaphore:
            if timeout is None:
                return await worker(item)
            async with asyncio.timeout(timeout):
                return await worker(item)

    tasks = [asyncio.ensure_future(_run_one(item)) for item in items]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
