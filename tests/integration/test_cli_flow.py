import io
import pytest
from typer.testing import CliRunner
from unittest.mock import AsyncMock, MagicMock

from rich.console import Console

from coffeebreak import main
from coffeebreak.core.services.simulation_service import SimulationService
from coffeebreak.infrastructure.cli.display import ConsoleDisplay
from coffeebreak.infrastructure.config import settings
from coffeebreak.infrastructure.config.settings import get_config, set_config_for_testing
from coffeebreak.main import app

@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()

@pytest.fixture
def console_buffer(monkeypatch) -> io.StringIO:
    """Wires the CLI to a ConsoleDisplay printing into a buffer."""
    buffer = io.StringIO()
    ui = ConsoleDisplay(console=Console(file=buffer, width=120, color_system=None))
    monkeypatch.setattr(main, "_dependencies", {
        "ui": ui,
        "simulation_service": SimulationService(ui=ui),
    })
    set_config_for_testing({
        "limiter.minutely_limit": 0,
        "limiter.hourly_limit": 0,
        "limiter.call_delay_ms": 0,
        "limiter.test_mode": True,
        "limiter.tick_seconds": 0.001,
    })
    return buffer

def test_manual_command_takes_a_coffee_break(runner: CliRunner, console_buffer: io.StringIO):
    result = runner.invoke(app, ["manual", "-n", "6", "-m", "5", "-H", "10"])

    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    output = console_buffer.getvalue()
    assert "Coffee break" in output
    assert "(limit 5)" in output
    assert "call 6: 1 this minute, 6 this hour, 6 total" in output

def test_manual_command_without_limits_never_waits(runner: CliRunner, console_buffer: io.StringIO):
    result = runner.invoke(app, ["manual", "-n", "3"])

    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    output = console_buffer.getvalue()
    assert "Coffee break" not in output
    assert "call 3: 3 this minute, 3 this hour, 3 total" in output

def test_queue_command_runs_calls_in_order(runner: CliRunner, console_buffer: io.StringIO):
    result = runner.invoke(app, ["queue", "-n", "4", "-m", "2"])

    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    output = console_buffer.getvalue()
    assert "Submitted 4 calls; 4 waiting in the queue." in output
    positions = [output.index(f"call {n} executed") for n in range(1, 5)]
    assert positions == sorted(positions)
    assert "queued" in output

def test_headers_command_waits_for_reset(runner: CliRunner, console_buffer: io.StringIO):
    result = runner.invoke(app, ["headers", "-n", "7", "--api-delay", "0"])

    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    output = console_buffer.getvalue()
    assert "limit=5 remaining=4" in output
    assert "call 6: limit=5 remaining=0" in output
    # Check 6 sees the used-up quota, waits for the reset, then reports
    wait_panel = output.index("Remote quota of 5 used up.")
    assert wait_panel < output.index("call 6: limit=5 remaining=0")
    assert wait_panel < output.index("call 7: limit=5 remaining=4")

def test_command_failure_exits_with_error(runner: CliRunner, console_buffer: io.StringIO, monkeypatch):
    service = MagicMock(spec=SimulationService)
    service.run_manual_scenario = AsyncMock(side_effect=RuntimeError("boom"))
    monkeypatch.setitem(main._dependencies, "simulation_service", service)

    result = runner.invoke(app, ["manual"])

    assert result.exit_code == 1
    assert "Command execution failed: boom" in console_buffer.getvalue()

def test_global_options_update_logging_settings(runner: CliRunner, console_buffer: io.StringIO, monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "_config", dict(settings._config))
    monkeypatch.setenv("COFFEEBREAK_LOGGING_LEVEL", "WARNING")
    monkeypatch.setenv("COFFEEBREAK_LOGGING_FILE", "")
    log_file = tmp_path / "coffeebreak.log"

    result = runner.invoke(app, ["--verbose", "--log-file", str(log_file), "manual", "-n", "1"])

    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    assert get_config("logging.level") == "DEBUG"
    assert get_config("logging.file") == str(log_file)
    assert "Test mode: every wait is capped to 2s." in console_buffer.getvalue()
