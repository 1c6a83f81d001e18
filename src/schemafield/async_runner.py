"""Helpers to run async operations from sync or async contexts."""

from __future__ import annotations

import asyncio
import threading
from queue import Queue
from typing import TYPE_CHECKING, Any

from schemafield.exceptions import AsyncExecutionError

if TYPE_CHECKING:
    from collections.abc import Coroutine


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
    """Run an async coroutine to completion from a sync caller.

    Without a running loop the coroutine runs on a fresh loop; inside a running
    loop it runs on a dedicated thread so the caller can block on it.

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


def schedule_async(
    coro: Coroutine[Any, Any, None],
    tasks: set[asyncio.Task[None]],
) -> asyncio.Task[None] | None:
    """Start a coroutine on the running loop, or run it now when there is none.

    Args:
        coro: The coroutine to start.
        tasks: Registry holding strong references to pending tasks.

    Returns:
        The created task when a loop is running, else None once the coroutine has completed.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        run_async(coro)
        return None

    task = loop.create_task(coro)
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return task
