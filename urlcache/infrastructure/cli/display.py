import logging
from typing import Any, Optional

from rich.box import HEAVY, ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from urlcache.domain.interfaces.user_interface import UserInterface
from urlcache.domain.models.common import Tier

logger = logging.getLogger(__name__)

TIER_STYLES = {
    Tier.MEMORY: "bold green",
    Tier.DISK: "bold cyan",
    Tier.NETWORK: "bold yellow",
}


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: str, **kwargs: Any) -> None:
        self.console.print(output, highlight=False)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_load_result(self, url: str, size: int, source: Optional[Tier], **kwargs: Any) -> None:
        """Shows a summary table for a completed load.

        Args:
            url: The requested URL.
            size: Number of bytes loaded.
            source: The tier that served the bytes.
            **kwargs: Extra rows (key, destination, ...), shown in order.
        """
        table = Table(show_header=False, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Field", style="dim")
        table.add_column("Value")

        table.add_row("URL", url)
        table.add_row("Bytes", str(size))
        if source is not None:
            style = TIER_STYLES.get(source, "bold")
            table.add_row("Served from", f"[{style}]{source.value}[/{style}]")
        for name, value in kwargs.items():
            if value is not None:
                table.add_row(name.replace("_", " ").capitalize(), str(value))

        self.console.print(table)
