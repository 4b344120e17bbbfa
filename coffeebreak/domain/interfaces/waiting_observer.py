"""Interface for observing waits.

Defines the contract for the three lifecycle hooks a waiter fires:
start-waiting, tick and end-waiting. Any implementation can be wired into
a waiter with ``LimiterConfig.from_observer``.
"""

import abc

from coffeebreak.domain.events.waiting_events import WaitingEnded, WaitingStarted, WaitingTick


class WaitingObserver(abc.ABC):
    """Abstract Base Class for wait lifecycle observers."""

    @abc.abstractmethod
    def on_waiting_started(self, event: WaitingStarted) -> None:
        """Called once before a wait begins.

        Args:
            event: Why the wait begins, current usage and the wait duration.
        """
        pass

    @abc.abstractmethod
    def on_waiting_tick(self, event: WaitingTick) -> None:
        """Called once per elapsed tick with remaining and elapsed seconds."""
        pass

    @abc.abstractmethod
    def on_waiting_ended(self, event: WaitingEnded) -> None:
        """Called once after a wait finished."""
        pass


class NullWaitingObserver(WaitingObserver):
    """Observer that ignores every event."""

    def on_waiting_started(self, event: WaitingStarted) -> None:
        pass

    def on_waiting_tick(self, event: WaitingTick) -> None:
        pass

    def on_waiting_ended(self, event: WaitingEnded) -> None:
        pass
