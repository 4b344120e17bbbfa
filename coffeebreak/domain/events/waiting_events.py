"""Domain Events emitted while a waiter paces calls.

Start-waiting events describe why a wait begins and how long it lasts,
tick events report progress once per elapsed second, and the end event
closes the wait.
"""

import abc
from dataclasses import dataclass, field
import time
from datetime import datetime
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


@dataclass
class WaitingStarted(DomainEvent, abc.ABC):
    """Base for events passed to the start-waiting callback."""

    @property
    @abc.abstractmethod
    def seconds_to_wait(self) -> float:
        """How long the wait lasts, in seconds."""
        pass


@dataclass
class MinuteLimitReached(WaitingStarted):
    """The minutely quota is used up; waiting for the next clock minute."""
    current_calls_in_a_minute: int
    minutely_limit: int
    seconds_to_wait_til_next_minute: int
    timestamp: float = field(default_factory=time.time)

    @property
    def seconds_to_wait(self) -> float:
        return self.seconds_to_wait_til_next_minute


@dataclass
class HourLimitReached(WaitingStarted):
    """The hourly quota is used up; waiting for the next clock hour."""
    current_calls_in_an_hour: int
    hourly_limit: int
    seconds_to_wait_til_next_hour: int
    timestamp: float = field(default_factory=time.time)

    @property
    def seconds_to_wait(self) -> float:
        return self.seconds_to_wait_til_next_hour


@dataclass
class CallDelayed(WaitingStarted):
    """A fixed inter-call delay is applied before the next call."""
    delay_ms: float
    timestamp: float = field(default_factory=time.time)

    @property
    def seconds_to_wait(self) -> float:
        return self.delay_ms / 1000


@dataclass
class ResetPending(WaitingStarted):
    """The remote quota is exhausted; waiting for the reported reset instant."""
    limit: int
    remaining: int
    reset: int
    seconds_to_wait_til_reset: int
    current_timestamp: Optional[datetime] = None
    reset_timestamp: Optional[datetime] = None # None for relative reset units
    timestamp: float = field(default_factory=time.time)

    @property
    def seconds_to_wait(self) -> float:
        return self.seconds_to_wait_til_reset


@dataclass
class WaitingTick(DomainEvent):
    """One elapsed tick of a wait."""
    seconds_to_wait: int
    seconds_waited: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class WaitingEnded(DomainEvent):
    """A wait finished; queue figures are set only by the queueing waiter."""
    seconds_waited: float
    queue_length: Optional[int] = None
    total_calls: Optional[int] = None
    timestamp: float = field(default_factory=time.time)
