#!/usr/bin/env python
"""Basic functionality test for REPL components without device."""

import sys

import pytest
from prompt_toolkit.document import Document
from rich.console import Console

from churnctrl.cli import UsageError, main, parse_draft, parse_int
from churnctrl.commands import COMMANDS, CommandCompleter, get_command
from churnctrl.controller import ChurnController
from churnctrl.core import Color, ResultCode
from churnctrl.display import DisplayManager
from churnctrl.eventlog import EventLog
from churnctrl.link import SimulatedLinkProvider, encode_parameters
from churnctrl.recipes import RecipeRepository


def make_display():
    console = Console(record=True, width=120, force_terminal=False)
    return DisplayManager(console), console


def completions(completer, text):
    return [c.display_text for c in completer.get_completions(Document(text), None)]


def test_display():
    """Test display functionality."""
    display, console = make_display()
    controller = ChurnController(SimulatedLinkProvider())
    controller.load_recipe(3)

    display.print_banner()
    display.print_status(controller.status())
    display.print_recipes(controller.list_recipes(), controller.active_recipe_id)
    display.print_result("start", ResultCode.SUCCESS)
    display.print_result("start", ResultCode.NOT_CONNECTED)
    display.print_result("connect", ResultCode.ALREADY_IN_PROGRESS)
    display.print_info("This is an info message")
    display.print_error("This is an error message")
    display.print_events(controller.events.entries())
    display.print_help(COMMANDS)

    output = console.export_text()
    assert "ChurnCtrl" in output
    assert "DISCONNECTED" in output
    assert "-8.0°C" in output
    assert "● active" in output
    assert "not connected" in output
    assert 'Recipe "Gelato" loaded' in output
    assert "Available Commands" in output


def test_format_functions():
    assert DisplayManager.format_temperature(-4.5) == "-4.5°C"
    assert DisplayManager.format_rpm(120) == "120 RPM"
    assert DisplayManager.format_amperage(7.999) == "8.0A"


def test_empty_event_log():
    display, console = make_display()
    display.print_events(EventLog().entries())
    assert "No events yet" in console.export_text()


def test_live_toggle():
    display, _ = make_display()
    controller = ChurnController(SimulatedLinkProvider())

    assert display.toggle_live(controller.status()) is True
    display.update_live({"rpm": 40})
    assert display._live_data["rpm"] == 40
    assert display.toggle_live() is False


def test_commands():
    """Test command definitions."""
    for name in ("connect", "c", "load", "ld", "rm", "?", "exit"):
        assert get_command(name) is not None
    assert get_command("resume") is None

    names = [cmd.name for cmd in COMMANDS]
    assert len(names) == len(set(names))
    for required in ("connect", "disconnect", "start", "stop", "target", "apply",
                     "new", "edit", "delete", "recipes", "load"):
        assert required in names


def test_completer():
    repo = RecipeRepository()
    completer = CommandCompleter(lambda: [r.id for r in repo.list()])

    assert completions(completer, "") == []
    assert "disconnect" in completions(completer, "dis")
    assert completions(completer, "load ") == ["1", "2", "3", "4"]
    assert completions(completer, "new -5 80 15 p") == ["pink", "purple"]
    assert completions(completer, "edit 2 -5 80 15 bl") == ["blue"]


def test_parse_helpers():
    draft = parse_draft(["-7", "100", "14", "GREEN", "Pistachio", "Dream"])
    assert draft.name == "Pistachio Dream"
    assert (draft.temp, draft.rpm, draft.time) == (-7, 100, 14)
    assert Color(draft.color) is Color.GREEN

    with pytest.raises(UsageError):
        parse_draft(["-7", "100"])
    with pytest.raises(UsageError):
        parse_int("fast", "rpm")


def test_payload_encoding():
    assert encode_parameters(-5, 80, 15) == bytes([0xFB, 80, 15])


@pytest.mark.parametrize("tick", ["0", "-1"])
def test_tick_must_be_positive(monkeypatch, capsys, tick):
    monkeypatch.setattr(sys, "argv", ["churnctrl", "--simulate", f"--tick={tick}"])

    with pytest.raises(SystemExit) as exc:
        main()

    assert exc.value.code == 2
    assert "--tick must be greater than 0" in capsys.readouterr().err
