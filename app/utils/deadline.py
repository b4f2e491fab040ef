"""Race an awaitable against a deadline without abandoning it mid-flight."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Literal, TypeVar, Union

T = TypeVar("T")

logger = logging.getLogger(__name__)


class _Deadline(Enum):
    EXCEEDED = "deadline_exceeded"


DEADLINE_EXCEEDED: Literal[_Deadline.EXCEEDED] = _Deadline.EXCEEDED

# Strong references to operations that lost their race, so they can finish.
_detached: set[asyncio.Future] = set()


async def race_deadline(
    operation: Awaitable[T],
    timeout_seconds: float,
    *,
    label: str = "operation",
) -> Union[T, Literal[_Deadline.EXCEEDED]]:
    """Return the operation's result, or ``DEADLINE_EXCEEDED`` if time runs out.

    An operation that loses the race keeps running in the background and its
    outcome is logged once it settles. Exceptions raised by an operation that
    finishes in time propagate to the caller.
    """
    task = asyncio.ensure_future(operation)
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout_seconds)
    except asyncio.CancelledError:
        _detach(task, label)
        raise

    if task in done:
        return task.result()

    _detach(task, label)
    return DEADLINE_EXCEEDED


def _detach(task: asyncio.Future, label: str) -> None:
    _detached.add(task)

    def _log_outcome(finished: asyncio.Future) -> None:
        _detached.discard(finished)
        if finished.cancelled():
            logger.info("Late %s was cancelled", label)
            return
        exc = finished.exception()
        if exc is not None:
            logger.error("Late %s failed after its deadline: %r", label, exc)
        else:
            logger.info("Late %s completed after its deadline", label)

    task.add_done_callback(_log_outcome)


__all__ = ["DEADLINE_EXCEEDED", "race_deadline"]
