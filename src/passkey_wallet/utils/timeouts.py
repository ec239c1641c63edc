"""Deadline guard for calls into external collaborators.

Passkey ceremonies, ledger RPC calls and device storage expose no abort hook,
so the guard only stops *waiting*: the underlying task keeps running and its
late result is discarded.
"""

import asyncio
import logging
from typing import Awaitable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationTimeoutError(Exception):
    """Raised when a guarded call does not settle within its budget."""

    def __init__(self, label: str, timeout: float):
        self.label = label
        self.timeout = timeout
        super().__init__(f"{label} timed out after {self.timeout_ms}ms")

    @property
    def timeout_ms(self) -> int:
        return int(round(self.timeout * 1000))


def _discard_late_result(label: str):
    def callback(task: asyncio.Future) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.debug("Late failure from %s discarded: %s", label, error)
        else:
            logger.debug("Late result from %s discarded", label)

    return callback


async def with_timeout(operation: Awaitable[T], label: str, timeout: float) -> T:
    """Await an operation, giving up after ``timeout`` seconds.

    Args:
        operation: Coroutine or future to await
        label: Name reported in the timeout error (operation or call name)
        timeout: Budget in seconds

    Returns:
        The operation's result, unchanged

    Raises:
        OperationTimeoutError: If the budget elapses first. The operation
            itself is left running.
        Exception: Whatever the operation raised, unchanged
    """
    task = asyncio.ensure_future(operation)

    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
    except asyncio.TimeoutError:
        if task.done() and not task.cancelled():
            # The operation itself failed with a timeout of its own
            return task.result()

        task.add_done_callback(_discard_late_result(label))
        logger.warning("%s timed out after %.1fs", label, timeout)
        raise OperationTimeoutError(label, timeout) from None
    except asyncio.CancelledError:
        # Caller cancelled; the operation keeps running
        if not task.done():
            task.add_done_callback(_discard_late_result(label))
        raise
