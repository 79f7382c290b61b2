"""
Command definitions and auto-completion for the REPL.

Defines all available commands with metadata and provides a completer
for prompt_toolkit auto-completion.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .core import Color


@dataclass
class Command:
    """Command definition with metadata."""

    name: str
    aliases: List[str]
    description: str
    usage: str
    handler: str


COMMANDS = [
    Command("connect", ["c"], "Scan and connect to the churner", "connect", "cmd_connect"),
    Command("disconnect", ["dc"], "Disconnect from device", "disconnect", "cmd_disconnect"),
    Command("start", ["s"], "Start the motor", "start", "cmd_start"),
    Command("stop", ["x"], "Stop the motor", "stop", "cmd_stop"),
    Command(
        "target",
        ["t"],
        "Set all target parameters",
        "target <temp °C> <rpm> <minutes>",
        "cmd_target",
    ),
    Command("temp", [], "Set target temperature (-20 to 10 °C)", "temp <°C>", "cmd_temp"),
    Command("rpm", [], "Set target speed (0 to 200 RPM)", "rpm <rpm>", "cmd_rpm"),
    Command("time", [], "Set mixing time (5 to 60 min)", "time <minutes>", "cmd_time"),
    Command("apply", ["a", "send"], "Send targets to the churner", "apply", "cmd_apply"),
    Command("status", ["st"], "Show process values and targets", "status", "cmd_status"),
    Command("live", ["l"], "Toggle live display mode", "live", "cmd_live"),
    Command("recipes", ["ls"], "List recipes", "recipes", "cmd_recipes"),
    Command("load", ["ld"], "Load a recipe into the targets", "load <id>", "cmd_load"),
    Command(
        "new",
        ["n"],
        "Create a recipe",
        "new <temp> <rpm> <minutes> <color> <name...>",
        "cmd_new",
    ),
    Command(
        "edit",
        ["e"],
        "Replace a recipe",
        "edit <id> <temp> <rpm> <minutes> <color> <name...>",
        "cmd_edit",
    ),
    Command("delete", ["del", "rm"], "Delete a recipe", "delete <id>", "cmd_delete"),
    Command("log", ["lg"], "Show recent events", "log", "cmd_log"),
    Command("help", ["h", "?"], "Show all available commands", "help", "cmd_help"),
    Command("quit", ["q", "exit"], "Exit the REPL", "quit", "cmd_quit"),
]

RECIPE_ID_COMMANDS = {"load", "ld", "edit", "e", "delete", "del", "rm"}


def get_command(name: str) -> Optional[Command]:
    """Get command by name or alias."""
    for cmd in COMMANDS:
        if cmd.name == name or name in cmd.aliases:
            return cmd
    return None


class CommandCompleter(Completer):
    """Auto-completion for commands, recipe ids and colors."""

    def __init__(self, recipe_ids: Optional[Callable[[], Iterable[int]]] = None) -> None:
        """Initialize completer.

        Args:
            recipe_ids: Supplier of the current recipe ids
        """
        self._recipe_ids = recipe_ids or (lambda: [])
        self._command_names = set()
        self._command_aliases = set()

        for cmd in COMMANDS:
            self._command_names.add(cmd.name)
            self._command_aliases.update(cmd.aliases)

    def _suggest(self, partial: str, options: Iterable[str]) -> Any:
        for option in options:
            if option.startswith(partial):
                yield Completion(
                    option[len(partial) :],
                    start_position=0,
                    display=option,
                )

    def get_completions(self, document: Document, complete_event) -> Any:  # type: ignore[no-untyped-def]
        """Get completion suggestions for current input.

        Yields:
            Completion objects for matching commands/arguments
        """
        text = document.text_before_cursor.lstrip()
        if not text:
            return

        parts = text.split()
        # A trailing space means the user is starting a new argument
        if text.endswith(" "):
            parts.append("")

        if len(parts) <= 1:
            partial_cmd = parts[0].lower()
            all_names = self._command_names | self._command_aliases
            yield from self._suggest(partial_cmd, sorted(all_names))
            return

        first_cmd = parts[0].lower()
        partial = parts[-1].lower()
        position = len(parts) - 1

        if first_cmd in RECIPE_ID_COMMANDS and position == 1:
            yield from self._suggest(partial, [str(i) for i in self._recipe_ids()])
        elif first_cmd in ("new", "n") and position == 4:
            yield from self._suggest(partial, [c.value for c in Color])
        elif first_cmd in ("edit", "e") and position == 5:
            yield from self._suggest(partial, [c.value for c in Color])
