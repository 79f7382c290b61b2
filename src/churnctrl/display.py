"""
Display manager for Rich-based REPL output and live updates.

Handles all console output including formatted tables, the recipe list,
the event log, and the toggle-able live process display.
"""

import logging
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .core import Color, ResultCode
from .eventlog import Event
from .recipes import Recipe

logger = logging.getLogger(__name__)

COLOR_STYLES = {
    Color.YELLOW: "yellow",
    Color.BROWN: "dark_orange3",
    Color.PINK: "pink1",
    Color.PURPLE: "purple",
    Color.BLUE: "blue",
    Color.GREEN: "green",
    Color.RED: "red",
    Color.ORANGE: "orange1",
}


class DisplayManager:
    """Manages console output with Rich library."""

    def __init__(self, console: Optional[Console] = None):
        """Initialize display manager.

        Args:
            console: Rich Console instance (creates one if None)
        """
        self.console = console or Console()
        self.live_enabled = False
        self._live: Optional[Live] = None
        self._live_data: dict[str, Any] = {}

    def print_banner(self) -> None:
        """Print startup banner."""
        panel = Panel(
            "[bold cyan]ChurnCtrl - Ice Cream Churner Console[/bold cyan]\n"
            "[dim]Type 'help' for commands, 'quit' to exit[/dim]",
            expand=False,
        )
        self.console.print(panel)

    def print_status(self, data: dict) -> None:
        """Display one-time status table.

        Args:
            data: Dictionary from ChurnController.status()
        """
        self.console.print(self.format_status_table(data))

    def print_result(self, cmd: str, result: ResultCode) -> None:
        """Display command result."""
        if result == ResultCode.SUCCESS:
            self.console.print(f"[green]✓[/green] {cmd} succeeded", highlight=False)
        elif result == ResultCode.NOT_CONNECTED:
            self.console.print(
                f"[red]✗[/red] {cmd} failed: not connected. Use 'connect' first.",
                highlight=False,
            )
        elif result == ResultCode.ALREADY_IN_PROGRESS:
            self.console.print(
                f"[yellow]⚠[/yellow] {cmd} already in progress", highlight=False
            )
        elif result == ResultCode.CANCELLED:
            self.console.print(f"[yellow]⚠[/yellow] {cmd} cancelled", highlight=False)
        elif result == ResultCode.LINK_UNAVAILABLE:
            self.console.print(
                f"[red]✗[/red] {cmd} failed: device unavailable", highlight=False
            )
        else:
            self.console.print(f"[red]✗[/red] {cmd} failed", highlight=False)

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]Error:[/red] {message}", highlight=False)

    def print_info(self, message: str) -> None:
        self.console.print(f"[cyan]Info:[/cyan] {message}", highlight=False)

    def print_event(self, event: Event) -> None:
        """Echo a freshly recorded event."""
        self.console.print(f"[dim]{escape(str(event))}[/dim]", highlight=False)

    def print_events(self, events: Iterable[Event]) -> None:
        """Display the event log panel."""
        lines = [escape(str(event)) for event in events]
        body = "\n".join(lines) if lines else "[dim]No events yet[/dim]"
        self.console.print(Panel(body, title="Event Log", expand=False))

    def print_help(self, commands: list) -> None:
        """Display command reference.

        Args:
            commands: List of Command objects
        """
        table = Table(title="Available Commands", show_header=True)
        table.add_column("Command", style="cyan")
        table.add_column("Aliases", style="magenta")
        table.add_column("Description", style="white")
        table.add_column("Usage", style="yellow")

        for cmd in commands:
            aliases = ", ".join(cmd.aliases) if cmd.aliases else "-"
            table.add_row(cmd.name, aliases, cmd.description, cmd.usage)

        self.console.print(table)
        self.console.print(
            "[dim]Keyboard shortcuts: Ctrl+C to interrupt, Ctrl+D to exit[/dim]"
        )

    def print_recipes(self, recipes: Iterable[Recipe], active_id: Optional[int] = None) -> None:
        """Display the recipe list, marking the active recipe."""
        self.console.print(self.format_recipe_table(recipes, active_id))

    def format_recipe_table(
        self, recipes: Iterable[Recipe], active_id: Optional[int] = None
    ) -> Table:
        table = Table(title="Recipes", show_header=True, header_style="bold cyan")
        table.add_column("ID", justify="right")
        table.add_column("Name")
        table.add_column("Temp", justify="right")
        table.add_column("RPM", justify="right")
        table.add_column("Time", justify="right")
        table.add_column("")

        for recipe in recipes:
            style = COLOR_STYLES.get(recipe.color, "white")
            table.add_row(
                str(recipe.id),
                f"[{style}]{escape(recipe.name)}[/{style}]",
                self.format_temperature(recipe.temp),
                f"{recipe.rpm}",
                f"{recipe.time} min",
                "[bold blue]● active[/bold blue]" if recipe.id == active_id else "",
            )
        return table

    def start_live(self, data: Optional[dict] = None) -> None:
        """Start live display refresh mode."""
        if self.live_enabled:
            return

        self.live_enabled = True
        self._live_data = dict(data or {})
        renderable = self.format_status_table(self._live_data)
        self._live = Live(renderable, console=self.console, refresh_per_second=2)
        self._live.start()
        self.console.print("[dim]Live display enabled ['live' to disable][/dim]")

    def stop_live(self) -> None:
        """Stop live display refresh mode."""
        if not self.live_enabled:
            return

        self.live_enabled = False
        if self._live is not None:
            self._live.stop()
            self._live = None

    def update_live(self, data: dict) -> None:
        """Update live display with new process data."""
        if not self.live_enabled or self._live is None:
            return

        self._live_data.update(data)
        try:
            self._live.update(self.format_status_table(self._live_data))
        except Exception as e:
            logger.error(f"Live update error: {e}")

    def toggle_live(self, data: Optional[dict] = None) -> bool:
        """Toggle live display on/off.

        Returns:
            New live display state (True = on, False = off)
        """
        if self.live_enabled:
            self.stop_live()
        else:
            self.start_live(data)
        return self.live_enabled

    def format_status_table(self, data: dict) -> Table:
        """Create Rich Table for process display.

        Args:
            data: Dictionary from ChurnController.status()

        Returns:
            Rich Table object
        """
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="yellow")
        table.add_column("Target", style="green")

        connection = data.get("connection", "DISCONNECTED")
        if data.get("device"):
            connection = f"{connection} ({data['device']})"

        table.add_row("Connection", connection, "")
        table.add_row("Motor", data.get("motor", "IDLE"), "")
        table.add_row(
            "Temperature",
            self.format_temperature(data.get("temperature", 0.0)),
            self.format_temperature(data.get("target_temp", 0)),
        )
        table.add_row(
            "Speed",
            self.format_rpm(data.get("rpm", 0)),
            self.format_rpm(data.get("target_rpm", 0)),
        )
        table.add_row("Current", self.format_amperage(data.get("amperage", 0.0)), "")
        table.add_row("Mixing time", "", f"{data.get('target_time', 0)} min")
        table.add_row("Recipe", data.get("recipe") or "-", "")

        return table

    @staticmethod
    def format_temperature(celsius: float) -> str:
        return f"{celsius:.1f}°C"

    @staticmethod
    def format_rpm(rpm: int) -> str:
        return f"{rpm} RPM"

    @staticmethod
    def format_amperage(amps: float) -> str:
        """Format current draw to one decimal place."""
        return f"{amps:.1f}A"
