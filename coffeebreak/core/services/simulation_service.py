"""Application service that drives the waiters against a simulated API.

Each scenario runs a sequence of calls through one waiter and reports what
happened through the UserInterface, so the pacing behaviour can be watched
from the CLI without touching a real API.
"""

import asyncio
import logging
import math
import time
from typing import Any, Callable, Dict, List, Optional

from coffeebreak.domain.interfaces.user_interface import UserInterface
from coffeebreak.domain.models.limits import CallUsage, HeaderSnapshot, LimiterConfig
from coffeebreak.infrastructure.resilience.header_waiter import CorruptHeadersError, HeaderLimitWaiter
from coffeebreak.infrastructure.resilience.limit_waiter import LimitWaiter

logger = logging.getLogger(__name__)


class FakeRateLimitedApi:
    """Stand-in for a remote API reporting its quota in x-ratelimit-* headers.

    Every call uses one unit of the quota. Once the quota is used up the
    next call sees a fresh window again.
    """

    def __init__(
        self,
        limit: int = 5,
        reset_after_seconds: int = 3,
        latency_seconds: float = 0.0,
        now: Callable[[], float] = time.time,
    ):
        self.limit = limit
        self.reset_after_seconds = reset_after_seconds
        self.latency_seconds = latency_seconds
        self._now = now
        self.remaining = limit
        self.calls = 0

    async def call(self) -> Dict[str, str]:
        """Performs one simulated request and returns its response headers."""
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)
        self.calls += 1
        if self.remaining <= 0:
            self.remaining = self.limit
        self.remaining -= 1
        return {
            "x-ratelimit-limit": str(self.limit),
            "x-ratelimit-remaining": str(self.remaining),
            "x-ratelimit-reset": str(math.ceil(self._now()) + self.reset_after_seconds),
        }


class SimulationService:
    """Runs demo scenarios for the manual-limit and header-driven waiters."""

    def __init__(self, ui: UserInterface):
        self.ui = ui

    async def run_manual_scenario(self, config: LimiterConfig, calls: int) -> List[CallUsage]:
        """Checks limits before each of ``calls`` sequential calls."""
        waiter = LimitWaiter(config)
        results: List[CallUsage] = []
        for number in range(1, calls + 1):
            usage = await waiter.check_limits()
            results.append(usage)
            self.ui.display_output(
                f"call {number}: {usage.current_calls_in_a_minute} this minute, "
                f"{usage.current_calls_in_an_hour} this hour, {usage.total_calls} total",
                title="checked",
            )
        self.ui.display_table(
            "Manual limits",
            ["call", "this minute", "this hour", "total"],
            [
                [number, usage.current_calls_in_a_minute, usage.current_calls_in_an_hour, usage.total_calls]
                for number, usage in enumerate(results, start=1)
            ],
        )
        return results

    async def run_queue_scenario(self, config: LimiterConfig, calls: int) -> List[int]:
        """Submits ``calls`` calls at once and reports their completion order."""
        waiter = LimitWaiter(config)
        completed: List[int] = []

        def make_call(number: int) -> int:
            completed.append(number)
            self.ui.display_output(f"call {number} executed", title="queue")
            return number

        futures = [waiter.submit(make_call, number) for number in range(1, calls + 1)]
        self.ui.display_info(f"Submitted {calls} calls; {waiter.queue_length} waiting in the queue.")
        await asyncio.gather(*futures)
        return completed

    async def run_header_scenario(
        self,
        config: LimiterConfig,
        calls: int,
        api: Optional[FakeRateLimitedApi] = None,
    ) -> List[Any]:
        """Alternates header checks and simulated API calls.

        Returns the snapshot of every successful check, or the error raised
        by a failed one.
        """
        waiter = HeaderLimitWaiter(config)
        api = api or FakeRateLimitedApi()
        outcomes: List[Any] = []
        for number in range(1, calls + 1):
            try:
                snapshot: HeaderSnapshot = await waiter.check_limits()
            except CorruptHeadersError as e:
                logger.warning(f"Check {number} failed: {e}")
                self.ui.display_error(str(e))
                outcomes.append(e)
            else:
                outcomes.append(snapshot)
                self.ui.display_output(
                    f"call {number}: limit={snapshot.limit} remaining={snapshot.remaining} reset={snapshot.reset}",
                    title="checked",
                )
            waiter.update_limits(await api.call())
        return outcomes
