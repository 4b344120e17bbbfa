import io
import pytest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from rich.console import Console
from rich.panel import Panel

from coffeebreak.domain.events.waiting_events import (
    CallDelayed,
    HourLimitReached,
    MinuteLimitReached,
    ResetPending,
    WaitingEnded,
    WaitingTick,
)
from coffeebreak.infrastructure.cli.display import ConsoleDisplay

@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()

@pytest.fixture
def console_display(mock_console: MagicMock):
    """Fixture to create a ConsoleDisplay instance with a mocked console."""
    return ConsoleDisplay(console=mock_console)

@pytest.fixture
def recorded_display():
    """ConsoleDisplay printing into a buffer."""
    buffer = io.StringIO()
    display = ConsoleDisplay(console=Console(file=buffer, width=120, color_system=None))
    return display, buffer

def test_display_error_prints_panel(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_error("Something went wrong")
    mock_console.print.assert_called_once()
    args, _ = mock_console.print.call_args
    assert isinstance(args[0], Panel)

def test_display_output_with_title(recorded_display):
    display, buffer = recorded_display
    display.display_output("call 1: 1 this minute", title="checked")
    assert "checked call 1: 1 this minute" in buffer.getvalue()

def test_display_info_and_warning(recorded_display):
    display, buffer = recorded_display
    display.display_info("Submitted 3 calls")
    display.display_warning("Careful")
    output = buffer.getvalue()
    assert "Submitted 3 calls" in output
    assert "Careful" in output

def test_display_table(recorded_display):
    display, buffer = recorded_display
    display.display_table("Usage", ["minute", "hour"], [[1, 2]])
    output = buffer.getvalue()
    assert "minute" in output and "hour" in output

@pytest.mark.parametrize(
    "event, expected",
    [
        (MinuteLimitReached(5, 5, 42), "limit 5). Waiting 42s for the next minute."),
        (HourLimitReached(10, 10, 600), "limit 10). Waiting 600s for the next hour."),
        (CallDelayed(delay_ms=250), "Delaying the next call by 250ms."),
        (
            ResetPending(limit=5, remaining=0, reset=1715940003, seconds_to_wait_til_reset=3,
                         reset_timestamp=datetime(2024, 5, 17, 10, 0, 3, tzinfo=timezone.utc)),
            "Waiting 3s until reset (10:00:03).",
        ),
    ],
)
def test_waiting_started_panels(recorded_display, event, expected):
    display, buffer = recorded_display
    display.on_waiting_started(event)
    assert expected in buffer.getvalue()
    assert display.waits_started == 1

def test_tick_and_end_lines(recorded_display):
    display, buffer = recorded_display
    display.on_waiting_tick(WaitingTick(seconds_to_wait=2, seconds_waited=1))
    display.on_waiting_ended(WaitingEnded(seconds_waited=3))
    display.on_waiting_ended(WaitingEnded(seconds_waited=3, queue_length=4, total_calls=10))
    output = buffer.getvalue()
    assert "tick: 1s waited, 2s left" in output
    assert "Back to work after 3s." in output
    assert "Back to work after 3s (4 queued, 10 calls so far)." in output
