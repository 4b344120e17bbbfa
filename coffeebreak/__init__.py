"""coffeebreak: client-side pacing for rate limited API calls.

Delays or queues outbound calls so a caller stays inside per-minute and
per-hour quotas, or inside limits reported through ``x-ratelimit-*``
response headers.
"""

from coffeebreak.domain.models.limits import (
    CallUsage,
    HeaderSnapshot,
    LimiterConfig,
    ResetUnit,
)
from coffeebreak.infrastructure.resilience.header_waiter import (
    CorruptHeadersError,
    HeaderLimitWaiter,
)
from coffeebreak.infrastructure.resilience.limit_waiter import LimitWaiter

__all__ = [
    "CallUsage",
    "CorruptHeadersError",
    "HeaderLimitWaiter",
    "HeaderSnapshot",
    "LimitWaiter",
    "LimiterConfig",
    "ResetUnit",
]
