"""Waiter based on API response headers like ``x-ratelimit-*``.

The caller feeds the headers of every response into ``update_limits`` and
awaits ``check_limits`` before the next call. When the reported remaining
quota is zero the check suspends until the reported reset instant.

    waiter = HeaderLimitWaiter(LimiterConfig(reset_unit=ResetUnit.UNIX_EPOCH_SECONDS))

    async def call_api():
        try:
            await waiter.check_limits()
        except CorruptHeadersError as e:
            ...  # headers missing or unparsable, e.headers has the raw map
        response = await client.get(url)
        waiter.update_limits(response.headers)
"""

import logging
import math
import re
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

from coffeebreak.domain.events.waiting_events import ResetPending, WaitingEnded
from coffeebreak.domain.models.limits import HeaderSnapshot, LimiterConfig, ResetUnit
from coffeebreak.infrastructure.resilience.sleep_ticks import notify, wait_seconds

logger = logging.getLogger(__name__)

MAX_SAFE_INTEGER = 2 ** 53 - 1

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


# --- Custom Exceptions ---
class CorruptHeadersError(Exception):
    """Raised by a check when limit, remaining or reset could not be parsed."""
    def __init__(
        self,
        headers: Optional[Mapping[str, Any]],
        limit_header_name: str,
        remaining_header_name: str,
        reset_header_name: str,
        reset_unit: Union[ResetUnit, float],
    ):
        self.headers = headers
        self.limit_header_name = limit_header_name
        self.remaining_header_name = remaining_header_name
        self.reset_header_name = reset_header_name
        self.reset_unit = reset_unit
        super().__init__(
            f"No valid headers or header values (expected '{limit_header_name}', "
            f"'{remaining_header_name}', '{reset_header_name}'; got {dict(headers) if headers else headers})"
        )


def parse_header_int(value: Any) -> Optional[int]:
    """Parses a header value the way JavaScript's ``parseInt`` reads it.

    Returns None unless the result is a safe integer.
    """
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if isinstance(value, bytes):
        value = value.decode("latin-1")
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return None
        parsed = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return None
        parsed = int(match.group(1))
    if abs(parsed) > MAX_SAFE_INTEGER:
        return None
    return parsed


def _lookup(headers: Mapping[str, Any], name: str) -> Any:
    if name in headers:
        return headers[name]
    lowered = name.lower()
    for key, value in headers.items():
        if isinstance(key, str) and key.lower() == lowered:
            return value
    return None


class HeaderLimitWaiter:
    """Paces calls using limit, remaining and reset values from response headers."""

    def __init__(self, config: Optional[LimiterConfig] = None):
        """Initializes the waiter.

        Args:
            config: Header names, reset unit and callbacks. Defaults to the
                ``x-ratelimit-*`` names with reset in unix epoch seconds.
        """
        self.config = config or LimiterConfig()
        self.snapshot = HeaderSnapshot()
        self._initialized = False
        logger.info(
            f"HeaderLimitWaiter initialized: limit='{self.config.limit_header_name}', "
            f"remaining='{self.config.remaining_header_name}', reset='{self.config.reset_header_name}', "
            f"reset_unit={self.config.reset_unit}"
        )

    def update_limits(self, headers: Mapping[str, Any]) -> HeaderSnapshot:
        """Replaces the stored snapshot with values parsed from ``headers``.

        Never raises; unparsable values surface on the next check.
        """
        headers = headers if headers is not None else {}
        self.snapshot = HeaderSnapshot(
            limit=parse_header_int(_lookup(headers, self.config.limit_header_name)),
            remaining=parse_header_int(_lookup(headers, self.config.remaining_header_name)),
            reset=parse_header_int(_lookup(headers, self.config.reset_header_name)),
            raw_headers=headers,
        )
        logger.debug(f"Header limits updated: {self.snapshot}")
        return self.snapshot

    async def check_limits(self) -> HeaderSnapshot:
        """Waits for the reset instant if the remote quota is used up.

        The first check always passes: no response has been seen yet.

        Returns:
            The snapshot the decision was based on.

        Raises:
            CorruptHeadersError: If limit, remaining or reset is missing or
                not a safe integer.
        """
        snapshot = self.snapshot
        if not self._initialized:
            self._initialized = True
            return snapshot

        if not snapshot.is_valid:
            logger.warning(f"Corrupt or missing rate limit headers: {snapshot.raw_headers}")
            raise CorruptHeadersError(
                headers=snapshot.raw_headers,
                limit_header_name=self.config.limit_header_name,
                remaining_header_name=self.config.remaining_header_name,
                reset_header_name=self.config.reset_header_name,
                reset_unit=self.config.reset_unit,
            )

        if snapshot.remaining != 0:
            return snapshot

        now = self.config.clock()
        seconds, reset_at = self._seconds_until_reset(snapshot.reset, now)
        seconds = self.config.clamp_wait(max(0, seconds))
        logger.warning(f"Remote quota of {snapshot.limit} exhausted. Waiting {seconds}s for reset.")
        await notify(
            self.config.start_waiting_callback,
            ResetPending(
                limit=snapshot.limit,
                remaining=snapshot.remaining,
                reset=snapshot.reset,
                seconds_to_wait_til_reset=seconds,
                current_timestamp=now,
                reset_timestamp=reset_at,
            ),
        )
        await wait_seconds(seconds, self.config.waiting_tick_callback, self.config.tick_seconds)
        await notify(self.config.end_waiting_callback, WaitingEnded(seconds_waited=seconds))
        return snapshot

    def _seconds_until_reset(self, reset: int, now: datetime):
        unit = self.config.reset_unit
        now_ms = now.timestamp() * 1000
        if unit is ResetUnit.UNIX_EPOCH_MILLISECONDS:
            reset_ms = reset
        elif unit is ResetUnit.UNIX_EPOCH_SECONDS:
            reset_ms = reset * 1000
        else:
            multiplier = unit.multiplier if isinstance(unit, ResetUnit) else unit
            return math.ceil(multiplier * reset), None
        try:
            reset_at = datetime.fromtimestamp(reset_ms / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            reset_at = None # outside the platform's datetime range
        return math.ceil((reset_ms - now_ms) / 1000), reset_at
