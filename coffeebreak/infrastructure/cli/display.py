import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from coffeebreak.domain.events.waiting_events import (
    CallDelayed,
    HourLimitReached,
    MinuteLimitReached,
    ResetPending,
    WaitingEnded,
    WaitingStarted,
    WaitingTick,
)
from coffeebreak.domain.interfaces.user_interface import UserInterface
from coffeebreak.domain.interfaces.waiting_observer import WaitingObserver

logger = logging.getLogger(__name__)

class ConsoleDisplay(UserInterface, WaitingObserver):
    """Console output and wait progress rendered with the rich library."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console.

        Args:
            console: Console to print to; a new one on stdout if omitted.
        """
        self.console = console or Console()
        self.waits_started = 0

    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays a result line.

        Args:
            output: The text to display.
            **kwargs: ``title`` prefixes the line (default: no prefix).
        """
        title = kwargs.get("title")
        timestamp = datetime.now().strftime("%H:%M:%S")
        prefix = f"[bold white]{title}[/bold white] " if title else ""
        self.console.print(f"[dim]{timestamp}[/dim] {prefix}{output}")

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style."""
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message."""
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message."""
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_table(self, title: str, columns: Iterable[str], rows: Iterable[Iterable[Any]]) -> None:
        """Displays rows as a rounded table."""
        table = Table(title=title, box=ROUNDED, header_style="bold cyan")
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*(str(cell) for cell in row))
        self.console.print(table)

    # --- WaitingObserver ---

    def on_waiting_started(self, event: WaitingStarted) -> None:
        self.waits_started += 1
        if isinstance(event, MinuteLimitReached):
            message = (
                f"{event.current_calls_in_a_minute} calls this minute (limit {event.minutely_limit}). "
                f"Waiting {event.seconds_to_wait_til_next_minute}s for the next minute."
            )
        elif isinstance(event, HourLimitReached):
            message = (
                f"{event.current_calls_in_an_hour} calls this hour (limit {event.hourly_limit}). "
                f"Waiting {event.seconds_to_wait_til_next_hour}s for the next hour."
            )
        elif isinstance(event, ResetPending):
            reset_at = event.reset_timestamp.strftime("%H:%M:%S") if event.reset_timestamp else str(event.reset)
            message = (
                f"Remote quota of {event.limit} used up. "
                f"Waiting {event.seconds_to_wait_til_reset}s until reset ({reset_at})."
            )
        elif isinstance(event, CallDelayed):
            message = f"Delaying the next call by {event.delay_ms}ms."
        else:
            message = f"Waiting {event.seconds_to_wait}s."
        panel = Panel(
            Text(message, style="white"),
            title="[bold yellow]Coffee break[/bold yellow]",
            border_style="yellow",
            box=ROUNDED,
            padding=(0, 1)
        )
        self.console.print(panel)

    def on_waiting_tick(self, event: WaitingTick) -> None:
        self.console.print(f"[dim]  tick: {event.seconds_waited}s waited, {event.seconds_to_wait}s left[/dim]")

    def on_waiting_ended(self, event: WaitingEnded) -> None:
        details = ""
        if event.queue_length is not None:
            details = f" ({event.queue_length} queued, {event.total_calls} calls so far)"
        self.console.print(f"[green]Back to work after {event.seconds_waited}s{details}.[/green]")
