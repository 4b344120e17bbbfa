"""Waiter based on API rate limits entered manually.

Counts calls per clock minute and per clock hour and suspends the caller
when a quota is used up, until the next minute or hour boundary.

    waiter = LimitWaiter(LimiterConfig(minutely_limit=5, hourly_limit=100))

    # request/response style: check right before your own call
    usage = await waiter.check_limits()
    response = await client.get(url)

    # queueing style: hand the call over, it runs in FIFO order
    response = await waiter.submit(client.get, url)
"""

import asyncio
import logging
import math
from typing import Any, Callable, Optional

from coffeebreak.domain.events.waiting_events import (
    CallDelayed,
    HourLimitReached,
    MinuteLimitReached,
    WaitingEnded,
)
from coffeebreak.domain.models.limits import CallUsage, LimiterConfig, QueueState
from coffeebreak.infrastructure.resilience.call_queue import CallQueue
from coffeebreak.infrastructure.resilience.sleep_ticks import notify, wait_milliseconds, wait_seconds

logger = logging.getLogger(__name__)


def _describe_limit(limit: float) -> str:
    return "unbounded" if math.isinf(limit) else str(limit)


class LimitWaiter:
    """Paces calls against fixed per-minute and per-hour quotas."""

    def __init__(self, config: Optional[LimiterConfig] = None):
        """Initializes the waiter.

        Args:
            config: Limits, delay and callbacks. Defaults to no limits, no
                delay and no-op callbacks.
        """
        self.config = config or LimiterConfig()
        self.minute_count = 0
        self.hour_count = 0
        self.total_count = 0
        self._lock = asyncio.Lock()
        self._queue = CallQueue(self._pace_queued_call, name="limit-waiter", release=self._release_queued_call)
        logger.info(
            f"LimitWaiter initialized: minutely={_describe_limit(self.config.minutely_limit)}, "
            f"hourly={_describe_limit(self.config.hourly_limit)}, delay={self.config.call_delay_ms}ms, "
            f"test_mode={self.config.test_mode}"
        )

    @property
    def usage(self) -> CallUsage:
        return CallUsage(
            current_calls_in_a_minute=self.minute_count,
            current_calls_in_an_hour=self.hour_count,
            total_calls=self.total_count,
        )

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    @property
    def queue_state(self) -> QueueState:
        return self._queue.state

    async def check_limits(self) -> CallUsage:
        """Waits until a call is allowed, then counts it.

        Call this immediately before performing the API call yourself.

        Returns:
            The counters including the call just admitted.
        """
        async with self._lock:
            await self._wait_for_slot(queued=False)
            return self._count_call()

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> "asyncio.Future[Any]":
        """Queues ``func(*args, **kwargs)`` behind the pacing rule.

        Queued calls run one at a time in submission order. ``func`` may be
        a plain callable or a coroutine function.

        Returns:
            A future resolving with the call's result, or its exception.
        """
        return self._queue.submit(func, *args, **kwargs)

    async def join(self) -> None:
        """Waits until every queued call has run."""
        await self._queue.join()

    async def _pace_queued_call(self) -> None:
        async with self._lock:
            await self._wait_for_slot(queued=True)
            self._count_call()

    def _release_queued_call(self) -> None:
        # Paced and counted, then cancelled before it ran
        self.minute_count = max(0, self.minute_count - 1)
        self.hour_count = max(0, self.hour_count - 1)
        self.total_count = max(0, self.total_count - 1)

    def _count_call(self) -> CallUsage:
        self.minute_count += 1
        self.hour_count += 1
        self.total_count += 1
        return self.usage

    async def _wait_for_slot(self, queued: bool) -> None:
        # The hour check comes first: when both quotas are used up the longer wait wins
        if self.hour_count >= self.config.hourly_limit:
            await self._wait_for_next_hour(queued)
        elif self.minute_count >= self.config.minutely_limit:
            await self._wait_for_next_minute(queued)
        elif self.config.call_delay_ms > 0:
            await self._wait_call_delay(queued)

    async def _wait_for_next_hour(self, queued: bool) -> None:
        now = self.config.clock()
        seconds = self.config.clamp_wait((60 - now.minute) * 60)
        logger.warning(
            f"Hourly limit of {self.config.hourly_limit} reached ({self.hour_count} calls). "
            f"Waiting {seconds}s for the next hour."
        )
        await notify(
            self.config.start_waiting_callback,
            HourLimitReached(
                current_calls_in_an_hour=self.hour_count,
                hourly_limit=self.config.hourly_limit,
                seconds_to_wait_til_next_hour=seconds,
            ),
        )
        await wait_seconds(seconds, self.config.waiting_tick_callback, self.config.tick_seconds)
        self.hour_count = 0
        self.minute_count = 0
        await self._end_waiting(seconds, queued)

    async def _wait_for_next_minute(self, queued: bool) -> None:
        now = self.config.clock()
        seconds = self.config.clamp_wait(60 - now.second)
        logger.warning(
            f"Minutely limit of {self.config.minutely_limit} reached ({self.minute_count} calls). "
            f"Waiting {seconds}s for the next minute."
        )
        await notify(
            self.config.start_waiting_callback,
            MinuteLimitReached(
                current_calls_in_a_minute=self.minute_count,
                minutely_limit=self.config.minutely_limit,
                seconds_to_wait_til_next_minute=seconds,
            ),
        )
        await wait_seconds(seconds, self.config.waiting_tick_callback, self.config.tick_seconds)
        self.minute_count = 0
        await self._end_waiting(seconds, queued)

    async def _wait_call_delay(self, queued: bool) -> None:
        delay_ms = self.config.clamp_delay_ms(self.config.call_delay_ms)
        logger.debug(f"Delaying call by {delay_ms}ms.")
        await notify(self.config.start_waiting_callback, CallDelayed(delay_ms=delay_ms))
        await wait_milliseconds(delay_ms)
        await self._end_waiting(delay_ms / 1000, queued)

    async def _end_waiting(self, seconds_waited: float, queued: bool) -> None:
        event = WaitingEnded(seconds_waited=seconds_waited)
        if queued:
            event.queue_length = len(self._queue)
            event.total_calls = self.total_count
        await notify(self.config.end_waiting_callback, event)
