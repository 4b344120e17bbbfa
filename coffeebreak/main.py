"""Main entry point for the coffeebreak CLI.

Sets up the Typer application, wires dependencies (Composition Root) and
defines the demo commands, which delegate to the SimulationService.
"""

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional

import typer
from typing_extensions import Annotated

# Basic config until setup_logging runs with the configured settings
logging.basicConfig(level=logging.WARNING, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

from coffeebreak.core.services.simulation_service import FakeRateLimitedApi, SimulationService
from coffeebreak.domain.models.limits import TEST_MODE_WAIT_SECONDS
from coffeebreak.infrastructure.cli.display import ConsoleDisplay
from coffeebreak.infrastructure.config.settings import get_config, get_limiter_config, load_configuration, set_config
from coffeebreak.infrastructure.monitoring.logger_setup import setup_logging

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up the CLI's dependencies.

    This acts as the Composition Root.
    """
    load_configuration()
    setup_logging(
        log_level=get_config('logging.level', 'WARNING'),
        log_file=get_config('logging.file'),
        log_format=get_config('logging.format'),
    )
    dependencies: Dict[str, Any] = {}
    dependencies['ui'] = ConsoleDisplay()
    dependencies['simulation_service'] = SimulationService(ui=dependencies['ui'])
    logger.info("All dependencies initialized successfully.")
    return dependencies

_dependencies: Dict[str, Any] = {}

def get_dependencies() -> Dict[str, Any]:
    if not _dependencies:
        _dependencies.update(create_dependencies())
    return _dependencies

# --- Typer App Definition ---
app = typer.Typer(
    name="coffeebreak",
    help="coffeebreak: pace API calls against minutely/hourly quotas or x-ratelimit headers.",
    add_completion=False,
)

@app.callback()
def main_options(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output to stderr.")] = False,
    log_file: Annotated[Optional[str], typer.Option("--log-file", help="Also write logs to this file.")] = None,
):
    """Global options, applied before the dependencies are created."""
    if verbose:
        set_config('logging.level', 'DEBUG')
    if log_file:
        set_config('logging.file', log_file)

def run_async(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs a command coroutine, reporting failures through the UI."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        get_dependencies()['ui'].display_error(f"Command execution failed: {e}")
        raise typer.Exit(code=1)

def build_config(**overrides: Any):
    """LimiterConfig from settings plus CLI overrides, wired to the console display."""
    ui: ConsoleDisplay = get_dependencies()['ui']
    config = get_limiter_config(
        start_waiting_callback=ui.on_waiting_started,
        waiting_tick_callback=ui.on_waiting_tick,
        end_waiting_callback=ui.on_waiting_ended,
        **overrides,
    )
    if config.test_mode:
        ui.display_warning(f"Test mode: every wait is capped to {TEST_MODE_WAIT_SECONDS}s.")
    return config

# --- Shared options ---
CallsOption = Annotated[int, typer.Option("--calls", "-n", min=1, help="Number of calls to simulate.")]
MinutelyOption = Annotated[Optional[int], typer.Option("--minutely-limit", "-m", help="Calls allowed per clock minute.")]
HourlyOption = Annotated[Optional[int], typer.Option("--hourly-limit", "-H", help="Calls allowed per clock hour.")]
DelayOption = Annotated[Optional[float], typer.Option("--delay-ms", "-d", help="Fixed delay before every call, in milliseconds.")]
TestModeOption = Annotated[Optional[bool], typer.Option("--test-mode/--no-test-mode", help="Cap every wait to a couple of seconds.")]

@app.command()
def manual(
    calls: CallsOption = 6,
    minutely_limit: MinutelyOption = None,
    hourly_limit: HourlyOption = None,
    delay_ms: DelayOption = None,
    test_mode: TestModeOption = None,
):
    """Check manual limits before each of N sequential calls."""
    config = build_config(minutely_limit=minutely_limit, hourly_limit=hourly_limit, call_delay_ms=delay_ms, test_mode=test_mode)
    service: SimulationService = get_dependencies()['simulation_service']
    run_async(service.run_manual_scenario(config, calls))

@app.command()
def queue(
    calls: CallsOption = 6,
    minutely_limit: MinutelyOption = None,
    hourly_limit: HourlyOption = None,
    delay_ms: DelayOption = None,
    test_mode: TestModeOption = None,
):
    """Submit N calls at once and let the waiter run them in order."""
    config = build_config(minutely_limit=minutely_limit, hourly_limit=hourly_limit, call_delay_ms=delay_ms, test_mode=test_mode)
    service: SimulationService = get_dependencies()['simulation_service']
    run_async(service.run_queue_scenario(config, calls))

@app.command()
def headers(
    calls: CallsOption = 6,
    api_delay: Annotated[float, typer.Option("--api-delay", help="Simulated API latency in seconds.")] = 2.0,
    quota: Annotated[int, typer.Option("--quota", help="Quota reported by the simulated API.")] = 5,
    reset_unit: Annotated[Optional[str], typer.Option("--reset-unit", help="unix-ms, unix-s or a seconds multiplier.")] = None,
    test_mode: TestModeOption = None,
):
    """Alternate header checks with simulated API calls reporting x-ratelimit headers."""
    config = build_config(reset_unit=reset_unit, test_mode=test_mode)
    service: SimulationService = get_dependencies()['simulation_service']
    api = FakeRateLimitedApi(limit=quota, latency_seconds=api_delay)
    run_async(service.run_header_scenario(config, calls, api=api))

# --- Main Execution Guard ---

def cli_entry_point():
    """Function called by the console script entry point."""
    app()

if __name__ == "__main__":
    cli_entry_point()
