"""Sleep primitives shared by the waiters.

``wait_seconds`` suspends for a whole number of ticks and reports progress
after every tick; ``wait_milliseconds`` is the plain variant used for fixed
inter-call delays.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

from coffeebreak.domain.events.waiting_events import WaitingTick

logger = logging.getLogger(__name__)

DEFAULT_TICK_SECONDS = 1.0


async def notify(callback: Optional[Callable[[Any], Any]], event: Any) -> None:
    """Invokes a lifecycle callback, awaiting it if it returns an awaitable."""
    if callback is None:
        return
    result = callback(event)
    if inspect.isawaitable(result):
        await result


async def wait_seconds(
    seconds: int,
    tick_callback: Optional[Callable[[WaitingTick], Any]] = None,
    tick_seconds: float = DEFAULT_TICK_SECONDS,
) -> None:
    """Suspends for ``seconds`` ticks, reporting each one.

    Ticks count from 1: after the k-th tick the callback receives
    ``WaitingTick(seconds_to_wait=seconds - k, seconds_waited=k)``, so the
    last tick reports zero seconds left. Deadlines are computed from the
    start of the wait, so slow callbacks do not stretch the total.

    Args:
        seconds: Number of ticks to wait. Zero or less returns immediately.
        tick_callback: Optional progress callback, sync or async.
        tick_seconds: Real duration of one tick.
    """
    seconds = int(seconds)
    if seconds <= 0:
        return
    loop = asyncio.get_running_loop()
    started = loop.time()
    logger.debug(f"Waiting {seconds} tick(s) of {tick_seconds}s.")
    for waited in range(1, seconds + 1):
        delay = started + waited * tick_seconds - loop.time()
        await asyncio.sleep(max(0.0, delay))
        await notify(tick_callback, WaitingTick(seconds_to_wait=seconds - waited, seconds_waited=waited))


async def wait_milliseconds(milliseconds: float) -> None:
    """Suspends for ``milliseconds`` without ticking."""
    if milliseconds <= 0:
        return
    await asyncio.sleep(milliseconds / 1000)
