"""Virtual caller helpers used by ``LoadSession``."""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, TypeVar

from reviewload._internal.logging import get_logger

if TYPE_CHECKING:
    import random
    from collections.abc import Sequence

logger = get_logger("engine.caller_utils")

T = TypeVar("T")


def pick(rng: random.Random, items: Sequence[T]) -> T | None:
    """Uniform-random pick from *items*, or None when there is nothing to pick."""
    if not items:
        return None
    return rng.choice(items)


async def pause(retire: asyncio.Event, seconds: float) -> None:
    """Sleep for *seconds*, returning early once *retire* is set."""
    if seconds <= 0:
        await asyncio.sleep(0)
        return
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(retire.wait(), timeout=seconds)


async def shutdown_callers(
    callers: list[tuple[int, asyncio.Event, asyncio.Task[None]]],
    *,
    grace: float = 5.0,
) -> None:
    """Retire every caller and wait for in-flight calls to finish.

    Sets each caller's retire event, waits up to *grace* seconds for the
    tasks to return on their own, then cancels whatever is left.

    Args:
        callers: ``(caller_id, retire_event, task)`` tuples to shut down.
        grace: Seconds allowed for in-flight calls to complete.
    """
    for _cid, retire, _task in callers:
        retire.set()

    if callers:
        tasks = [task for _cid, _retire, task in callers]
        _done, pending = await asyncio.wait(tasks, timeout=grace)

        for task in pending:
            task.cancel()

        if pending:
            logger.warning("Cancelled %d callers still busy after %.1fs", len(pending), grace)
            await asyncio.wait(pending, timeout=2.0)

    callers.clear()
    logger.debug("All virtual callers shut down")
