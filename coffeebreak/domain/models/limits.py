"""Value Objects and configuration for the call-pacing context.

Holds the immutable limiter configuration, the counters snapshot returned by
the manual-limit waiter, the header snapshot used by the header-driven waiter
and the enumeration describing how a reset header value is interpreted.
"""

import enum
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping, Optional, Union

from coffeebreak.domain.interfaces.waiting_observer import NullWaitingObserver

logger = logging.getLogger(__name__)

# Any wait is capped to this many seconds when test mode is on
TEST_MODE_WAIT_SECONDS = 2

DEFAULT_LIMIT_HEADER_NAME = "x-ratelimit-limit"
DEFAULT_REMAINING_HEADER_NAME = "x-ratelimit-remaining"
DEFAULT_RESET_HEADER_NAME = "x-ratelimit-reset"

UNBOUNDED = math.inf


_NULL_OBSERVER = NullWaitingObserver()

_DEFAULT_CALLBACKS = {
    "start_waiting_callback": _NULL_OBSERVER.on_waiting_started,
    "waiting_tick_callback": _NULL_OBSERVER.on_waiting_tick,
    "end_waiting_callback": _NULL_OBSERVER.on_waiting_ended,
}


class ResetUnit(enum.Enum):
    """Number format given by the reset header.

    Epoch values are UTC seconds (e.g. 1555711620) or milliseconds
    (e.g. 1555711620000) since the UNIX epoch. The ``*_COUNT`` members are
    relative counts; their value is the multiplier that turns the header
    value into seconds.
    """

    UNIX_EPOCH_MILLISECONDS = "unix-ms"
    UNIX_EPOCH_SECONDS = "unix-s"
    MILLISECONDS_COUNT = 0.001
    SECONDS_COUNT = 1
    MINUTES_COUNT = 60
    HOURS_COUNT = 3600

    @property
    def is_epoch(self) -> bool:
        return self in (ResetUnit.UNIX_EPOCH_MILLISECONDS, ResetUnit.UNIX_EPOCH_SECONDS)

    @property
    def multiplier(self) -> Optional[float]:
        """Seconds per unit for relative counts, None for epoch timestamps."""
        if self.is_epoch:
            return None
        return float(self.value)

    @classmethod
    def parse(cls, value: Any) -> Union["ResetUnit", float, None]:
        """Maps a tag, member name or number onto a unit.

        Returns a member, a bare float multiplier for positive numbers that
        match no member, or None when the value cannot be interpreted.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            text = value.strip()
            for member in cls:
                if text.lower() == str(member.value) or text.upper() == member.name:
                    return member
            try:
                value = float(text)
            except ValueError:
                return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value) or value <= 0:
            return None
        for member in cls:
            if not member.is_epoch and math.isclose(member.value, value):
                return member
        return float(value)


class QueueState(enum.Enum):
    """Lifecycle of the single-consumer call queue."""

    IDLE = "idle"
    DRAINING = "draining"


def normalize_limit(value: Any) -> Union[int, float]:
    """Returns the limit as a positive int, or UNBOUNDED for anything else."""
    if isinstance(value, bool):
        return UNBOUNDED
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    if value is not None:
        logger.debug(f"Ignoring invalid limit {value!r}, treating as unbounded.")
    return UNBOUNDED


def normalize_delay(value: Any) -> float:
    """Returns the delay in milliseconds, 0 (disabled) for invalid input."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        if value is not None:
            logger.debug(f"Ignoring invalid call delay {value!r}.")
        return 0
    if not math.isfinite(value) or value <= 0:
        return 0
    return value


@dataclass(frozen=True)
class LimiterConfig:
    """Immutable configuration shared by both waiters.

    Invalid values never raise; they are normalized once, here, to the
    permissive defaults (unbounded limits, no delay, a NullWaitingObserver).
    """

    minutely_limit: Union[int, float] = UNBOUNDED
    hourly_limit: Union[int, float] = UNBOUNDED
    call_delay_ms: float = 0
    start_waiting_callback: Callable[[Any], Any] = _NULL_OBSERVER.on_waiting_started
    waiting_tick_callback: Callable[[Any], Any] = _NULL_OBSERVER.on_waiting_tick
    end_waiting_callback: Callable[[Any], Any] = _NULL_OBSERVER.on_waiting_ended
    test_mode: bool = False
    limit_header_name: str = DEFAULT_LIMIT_HEADER_NAME
    remaining_header_name: str = DEFAULT_REMAINING_HEADER_NAME
    reset_header_name: str = DEFAULT_RESET_HEADER_NAME
    reset_unit: Union[ResetUnit, float] = ResetUnit.UNIX_EPOCH_SECONDS
    tick_seconds: float = 1.0
    clock: Callable[[], datetime] = field(default=datetime.now, compare=False)

    def __post_init__(self) -> None:
        # frozen dataclass: normalized values go through object.__setattr__
        object.__setattr__(self, "minutely_limit", normalize_limit(self.minutely_limit))
        object.__setattr__(self, "hourly_limit", normalize_limit(self.hourly_limit))
        object.__setattr__(self, "call_delay_ms", normalize_delay(self.call_delay_ms))
        for name, default in _DEFAULT_CALLBACKS.items():
            if not callable(getattr(self, name)):
                object.__setattr__(self, name, default)
        object.__setattr__(self, "test_mode", bool(self.test_mode))
        object.__setattr__(self, "limit_header_name", self.limit_header_name or DEFAULT_LIMIT_HEADER_NAME)
        object.__setattr__(self, "remaining_header_name", self.remaining_header_name or DEFAULT_REMAINING_HEADER_NAME)
        object.__setattr__(self, "reset_header_name", self.reset_header_name or DEFAULT_RESET_HEADER_NAME)
        reset_unit = ResetUnit.parse(self.reset_unit)
        if reset_unit is None:
            logger.debug(f"Unknown reset unit {self.reset_unit!r}, using unix seconds.")
            reset_unit = ResetUnit.UNIX_EPOCH_SECONDS
        object.__setattr__(self, "reset_unit", reset_unit)
        tick = self.tick_seconds
        if isinstance(tick, bool) or not isinstance(tick, (int, float)) or not math.isfinite(tick) or tick <= 0:
            tick = 1.0
        object.__setattr__(self, "tick_seconds", float(tick))
        if not callable(self.clock):
            object.__setattr__(self, "clock", datetime.now)

    @classmethod
    def from_observer(cls, observer: Any, **options: Any) -> "LimiterConfig":
        """Builds a config whose three callbacks forward to a WaitingObserver."""
        return cls(
            start_waiting_callback=observer.on_waiting_started,
            waiting_tick_callback=observer.on_waiting_tick,
            end_waiting_callback=observer.on_waiting_ended,
            **options,
        )

    def clamp_wait(self, seconds: int) -> int:
        """Caps a wait in test mode."""
        if self.test_mode:
            return min(seconds, TEST_MODE_WAIT_SECONDS)
        return seconds

    def clamp_delay_ms(self, milliseconds: float) -> float:
        if self.test_mode:
            return min(milliseconds, TEST_MODE_WAIT_SECONDS * 1000)
        return milliseconds


@dataclass(frozen=True)
class CallUsage:
    """Counters reported by the manual-limit waiter after a call is admitted."""

    current_calls_in_a_minute: int
    current_calls_in_an_hour: int
    total_calls: int


@dataclass(frozen=True)
class HeaderSnapshot:
    """Rate limit values extracted from the latest response headers.

    ``None`` marks a value that was missing or not a safe integer.
    """

    limit: Optional[int] = 0
    remaining: Optional[int] = 0
    reset: Optional[int] = 0
    raw_headers: Optional[Mapping[str, Any]] = field(default=None, compare=False)

    @property
    def is_valid(self) -> bool:
        return None not in (self.limit, self.remaining, self.reset)
