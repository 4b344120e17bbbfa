import pytest
from datetime import datetime, timezone
from typing import List

from coffeebreak.domain.events.waiting_events import WaitingEnded, WaitingStarted, WaitingTick
from coffeebreak.domain.interfaces.waiting_observer import WaitingObserver
from coffeebreak.infrastructure.config.settings import clear_test_config


class RecordingObserver(WaitingObserver):
    """Collects every lifecycle event a waiter fires."""

    def __init__(self):
        self.started: List[WaitingStarted] = []
        self.ticks: List[WaitingTick] = []
        self.ended: List[WaitingEnded] = []

    def on_waiting_started(self, event: WaitingStarted) -> None:
        self.started.append(event)

    def on_waiting_tick(self, event: WaitingTick) -> None:
        self.ticks.append(event)

    def on_waiting_ended(self, event: WaitingEnded) -> None:
        self.ended.append(event)


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def fixed_now():
    """12:59:45 local wall time: 15s to the next minute, 60s to the next hour."""
    return datetime(2024, 5, 17, 12, 59, 45)


@pytest.fixture
def utc_now():
    return datetime(2024, 5, 17, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_test_config():
    """Ensure overrides set by one test never leak into the next."""
    clear_test_config()
    yield
    clear_test_config()
