import pytest

from coffeebreak.domain.events.waiting_events import (
    CallDelayed,
    HourLimitReached,
    MinuteLimitReached,
    ResetPending,
    WaitingStarted,
)

def test_waiting_started_cannot_be_instantiated():
    with pytest.raises(TypeError):
        WaitingStarted()

@pytest.mark.parametrize(
    "event, expected",
    [
        (MinuteLimitReached(5, 5, 15), 15),
        (HourLimitReached(100, 100, 600), 600),
        (CallDelayed(delay_ms=250), 0.25),
        (ResetPending(limit=5, remaining=0, reset=30, seconds_to_wait_til_reset=30), 30),
    ],
)
def test_every_start_event_reports_its_wait(event, expected):
    assert event.seconds_to_wait == expected
