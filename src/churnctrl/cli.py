"""
Main REPL application for the churner console.

Interactive command loop with async support, auto-completion,
live process display and one-shot command-line actions.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import InMemoryHistory

from .commands import COMMANDS, CommandCompleter, get_command
from .control import ProcessSnapshot
from .controller import ChurnController
from .core import TICK_PERIOD_S, ResultCode
from .display import DisplayManager
from .errors import ChurnError
from .eventlog import Event
from .link import (
    BleakLinkProvider,
    LinkProvider,
    SimulatedLinkProvider,
    clear_address_cache,
)
from .recipes import RecipeDraft

logger = logging.getLogger(__name__)


class UsageError(ChurnError):
    """Malformed REPL command arguments."""


def parse_int(value: str, label: str) -> int:
    """Parse an integer argument.

    Raises:
        UsageError: If value is not an integer
    """
    try:
        return int(value)
    except ValueError:
        raise UsageError(f"Invalid {label}: {value}") from None


def parse_draft(args: List[str]) -> RecipeDraft:
    """Build a RecipeDraft from '<temp> <rpm> <minutes> <color> <name...>'."""
    if len(args) < 5:
        raise UsageError("Usage: <temp> <rpm> <minutes> <color> <name...>")
    return RecipeDraft(
        name=" ".join(args[4:]),
        temp=parse_int(args[0], "temperature"),
        rpm=parse_int(args[1], "rpm"),
        time=parse_int(args[2], "minutes"),
        color=args[3].lower(),  # type: ignore[arg-type]
    )


class ChurnCtrlREPL:
    """Interactive REPL for the churner console."""

    def __init__(self, controller: ChurnController, display: Optional[DisplayManager] = None) -> None:
        """Initialize REPL with controller and display manager."""
        self.controller = controller
        self.display = display or DisplayManager()
        self.running = False

        # Set up callbacks
        self.controller.events.subscribe(self._on_event)
        self.controller.loop.set_on_tick(self._on_tick)
        self.controller.session.set_on_disconnect(self._on_device_disconnect)

        self.session: PromptSession = PromptSession(
            completer=CommandCompleter(
                lambda: [r.id for r in self.controller.list_recipes()]
            ),
            history=InMemoryHistory(),
            enable_history_search=True,
        )

    async def run(self, auto_connect: bool = True) -> None:
        """Run the main REPL loop."""
        self.running = True
        self.display.print_banner()

        if auto_connect:
            result = await self.controller.connect()
            if result != ResultCode.SUCCESS:
                self.display.print_info("Use 'connect' command to retry.")

        try:
            while self.running:
                try:
                    text = await self.session.prompt_async(self._get_prompt())
                    if text.strip():
                        await self._handle_input(text.strip())
                except KeyboardInterrupt:
                    # Just show new prompt on Ctrl+C
                    self.display.console.print()
                    continue
        except EOFError:
            # End of input (Ctrl+D)
            await self.cmd_quit([])
        finally:
            self.running = False
            self.display.stop_live()
            self.controller.events.unsubscribe(self._on_event)

    def _get_prompt(self) -> FormattedText:
        """Get dynamic prompt based on connection and motor state."""
        session = self.controller.session
        if session.is_connected:
            marker = " ▶" if session.is_running else ""
            return FormattedText([("class:prompt", f"[{session.device_name}{marker}] > ")])
        return FormattedText([("class:prompt", "[disconnected] > ")])

    async def _handle_input(self, text: str) -> None:
        """Parse and dispatch command."""
        parts = text.split(maxsplit=1)
        if not parts:
            return

        cmd_name = parts[0].lower()
        args = parts[1].split() if len(parts) > 1 else []

        cmd = get_command(cmd_name)
        if not cmd:
            self.display.print_error(
                f"Unknown command: {cmd_name}. Type 'help' for available commands."
            )
            return

        handler = getattr(self, cmd.handler, None)
        if handler is None:
            self.display.print_error(f"Handler not found: {cmd.handler}")
            return

        try:
            await handler(args)
        except UsageError as e:
            self.display.print_error(str(e))
        except ChurnError:
            # Already recorded in the event log and echoed
            pass
        except Exception as e:
            self.display.print_error(f"Command failed: {e}")
            logger.exception("Command exception")

    def _on_event(self, event: Event) -> None:
        if not self.display.live_enabled:
            self.display.print_event(event)

    def _on_tick(self, snapshot: ProcessSnapshot) -> None:
        if self.display.live_enabled:
            self.display.update_live(self.controller.status())

    def _on_device_disconnect(self) -> None:
        self.display.stop_live()

    def _recipe_id(self, args: list, usage: str) -> int:
        if not args:
            raise UsageError(f"Usage: {usage}")
        return parse_int(args[0], "recipe id")

    # ========== Command Handlers ==========

    async def cmd_connect(self, args: list) -> None:
        """Scan and connect to the churner."""
        result = await self.controller.connect()
        if result == ResultCode.SUCCESS:
            await self.cmd_status([])

    async def cmd_disconnect(self, args: list) -> None:
        """Disconnect from device."""
        self.display.stop_live()
        await self.controller.disconnect()

    async def cmd_start(self, args: list) -> None:
        self.controller.start()

    async def cmd_stop(self, args: list) -> None:
        self.controller.stop()

    async def cmd_target(self, args: list) -> None:
        """Set all three targets at once."""
        if len(args) != 3:
            raise UsageError("Usage: target <temp °C> <rpm> <minutes>")
        targets = self.controller.set_target(
            temp=parse_int(args[0], "temperature"),
            rpm=parse_int(args[1], "rpm"),
            time=parse_int(args[2], "minutes"),
        )
        self.display.print_info(
            f"Targets: {targets.temp}°C, {targets.rpm} RPM, {targets.time} min"
        )

    async def cmd_temp(self, args: list) -> None:
        if not args:
            raise UsageError("Usage: temp <°C>")
        targets = self.controller.set_target(temp=parse_int(args[0], "temperature"))
        self.display.print_info(f"Target temperature {targets.temp}°C")

    async def cmd_rpm(self, args: list) -> None:
        if not args:
            raise UsageError("Usage: rpm <rpm>")
        targets = self.controller.set_target(rpm=parse_int(args[0], "rpm"))
        self.display.print_info(f"Target speed {targets.rpm} RPM")

    async def cmd_time(self, args: list) -> None:
        if not args:
            raise UsageError("Usage: time <minutes>")
        targets = self.controller.set_target(time=parse_int(args[0], "minutes"))
        self.display.print_info(f"Mixing time {targets.time} min")

    async def cmd_apply(self, args: list) -> None:
        """Send targets to the churner."""
        await self.controller.apply()

    async def cmd_status(self, args: list) -> None:
        self.display.print_status(self.controller.status())

    async def cmd_live(self, args: list) -> None:
        """Toggle live display mode."""
        if not self.display.toggle_live(self.controller.status()):
            self.display.print_info("Live display disabled")

    async def cmd_recipes(self, args: list) -> None:
        self.display.print_recipes(
            self.controller.list_recipes(), self.controller.active_recipe_id
        )

    async def cmd_load(self, args: list) -> None:
        self.controller.load_recipe(self._recipe_id(args, "load <id>"))

    async def cmd_new(self, args: list) -> None:
        """Create a recipe."""
        self.controller.create_recipe(parse_draft(args))

    async def cmd_edit(self, args: list) -> None:
        """Replace every field of a recipe."""
        recipe_id = self._recipe_id(
            args, "edit <id> <temp> <rpm> <minutes> <color> <name...>"
        )
        self.controller.update_recipe(recipe_id, parse_draft(args[1:]))

    async def cmd_delete(self, args: list) -> None:
        """Delete a recipe after confirmation."""
        recipe_id = self._recipe_id(args, "delete <id>")
        recipe = self.controller.get_recipe(recipe_id)

        answer = await self.session.prompt_async(f'Delete recipe "{recipe.name}"? [y/N] ')
        if answer.strip().lower() not in ("y", "yes"):
            self.display.print_info("Delete cancelled")
            return
        self.controller.delete_recipe(recipe_id)

    async def cmd_log(self, args: list) -> None:
        self.display.print_events(self.controller.events.entries())

    async def cmd_help(self, args: list) -> None:
        """Show all available commands."""
        self.display.print_help(COMMANDS)

    async def cmd_quit(self, args: list) -> None:
        """Exit the REPL."""
        self.display.stop_live()

        if self.controller.session.is_connected:
            self.controller.stop()
            await self.controller.disconnect()

        self.display.console.print("[cyan]Goodbye![/cyan]")
        self.running = False


def make_provider(args: argparse.Namespace) -> LinkProvider:
    if args.simulate:
        return SimulatedLinkProvider(delay=0.5)
    return BleakLinkProvider(scan_timeout=args.scan_timeout)


async def run_cli_command(command: str, args: argparse.Namespace) -> int:
    """Run a single CLI command and return the exit code."""
    display = DisplayManager()

    if command == "clear-cache":
        if clear_address_cache():
            display.print_info("Cleared cached device address")
        else:
            display.print_info("No cached device address")
        return 0

    if command == "recipes":
        controller = ChurnController(make_provider(args))
        display.print_recipes(controller.list_recipes())
        return 0

    if command == "scan":
        provider = BleakLinkProvider(scan_timeout=args.scan_timeout, use_cache=False)
        display.print_info(f"Scanning for {args.scan_timeout:.0f}s...")
        matches = await provider.scan()
        if not matches:
            display.print_error("No churner found")
            return 1
        for device, rssi in matches:
            display.console.print(f"  {device.name or 'Unknown'}  {device.address}  {rssi} dBm")
        return 0

    # send: auto-connect, load the recipe, push its parameters, disconnect
    controller = ChurnController(make_provider(args))
    controller.events.subscribe(display.print_event)
    try:
        controller.load_recipe(args.send)
    except ChurnError:
        return 1

    try:
        if await controller.connect() != ResultCode.SUCCESS:
            return 1
        result = await controller.apply()
        display.print_result("send", result)
        return 0 if result == ResultCode.SUCCESS else 1
    finally:
        await controller.disconnect()


def main() -> None:
    """Entry point for the REPL application."""
    parser = argparse.ArgumentParser(
        description="Ice Cream Churner Console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  churnctrl                    # Start interactive REPL (auto-connects)
  churnctrl --simulate         # REPL against a simulated churner
  churnctrl --recipes          # List built-in recipes
  churnctrl --scan             # List churners in range
  churnctrl --send 3           # Send recipe 3's parameters (auto-connects)
  churnctrl --clear-cache      # Clear cached device address
        """,
    )

    parser.add_argument(
        "--simulate", action="store_true", help="Use a simulated churner instead of BLE"
    )
    parser.add_argument(
        "--no-connect", action="store_true", help="Do not connect when the REPL starts"
    )
    parser.add_argument(
        "--scan-timeout", type=float, default=10.0, help="BLE scan timeout in seconds"
    )
    parser.add_argument(
        "--tick",
        type=float,
        default=TICK_PERIOD_S,
        help="Control loop period in seconds",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")

    parser.add_argument("--recipes", action="store_true", help="List recipes")
    parser.add_argument("--scan", action="store_true", help="Scan for churners")
    parser.add_argument(
        "--send", type=int, metavar="RECIPE_ID", help="Send a recipe's parameters"
    )
    parser.add_argument(
        "--clear-cache", action="store_true", help="Clear cached device address"
    )

    args = parser.parse_args()
    if args.tick <= 0:
        parser.error("--tick must be greater than 0")

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
    )

    commands = []
    if args.recipes:
        commands.append("recipes")
    if args.scan:
        commands.append("scan")
    if args.send is not None:
        commands.append("send")
    if args.clear_cache:
        commands.append("clear-cache")

    if not commands:
        try:
            controller = ChurnController(make_provider(args), tick_period=args.tick)
            repl = ChurnCtrlREPL(controller)
            asyncio.run(repl.run(auto_connect=not args.no_connect))
        except KeyboardInterrupt:
            print("\nInterrupted")
            sys.exit(0)
        except Exception as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    if len(commands) > 1:
        print("Error: Only one command can be specified at a time", file=sys.stderr)
        sys.exit(1)

    try:
        sys.exit(asyncio.run(run_cli_command(commands[0], args)))
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
