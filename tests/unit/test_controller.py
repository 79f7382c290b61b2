"""Controller wiring: recipes feed targets, session drives the loop."""

import asyncio

import pytest

from churnctrl.control import ProcessSnapshot, TargetParameters
from churnctrl.controller import ChurnController
from churnctrl.core import Color, ResultCode
from churnctrl.errors import NotFound, ValidationError
from churnctrl.link import SimulatedLinkProvider, decode_parameters
from churnctrl.recipes import RecipeDraft
from churnctrl.session import MotorState


def make_controller(**provider_kwargs):
    provider = SimulatedLinkProvider(**provider_kwargs)
    return ChurnController(provider, tick_period=0.01), provider


def test_defaults():
    controller, _ = make_controller()
    assert controller.targets == TargetParameters(temp=-5, rpm=80, time=15)
    assert controller.active_recipe is None
    assert len(controller.list_recipes()) == 4


def test_load_recipe_copies_parameters():
    controller, _ = make_controller()
    recipe = controller.load_recipe(3)

    assert recipe.name == "Gelato"
    assert controller.targets == TargetParameters(temp=-8, rpm=120, time=12)
    assert controller.active_recipe_id == 3
    assert controller.status()["recipe"] == "Gelato"


def test_update_after_load_does_not_touch_targets():
    controller, _ = make_controller()
    controller.load_recipe(3)

    controller.update_recipe(3, RecipeDraft("Gelato Forte", -12, 150, 30, Color.RED))

    assert controller.targets == TargetParameters(temp=-8, rpm=120, time=12)
    assert controller.active_recipe_id == 3


def test_delete_active_recipe_clears_marker_only():
    controller, _ = make_controller()
    controller.load_recipe(2)
    before = controller.targets

    controller.delete_recipe(2)

    assert controller.active_recipe_id is None
    assert controller.targets == before


def test_delete_other_recipe_keeps_marker():
    controller, _ = make_controller()
    controller.load_recipe(2)
    controller.delete_recipe(1)
    assert controller.active_recipe_id == 2


def test_set_target_keeps_active_recipe():
    controller, _ = make_controller()
    controller.load_recipe(1)

    controller.set_target(rpm=100)

    assert controller.targets == TargetParameters(temp=-5, rpm=100, time=15)
    assert controller.active_recipe_id == 1


def test_set_target_validates():
    controller, _ = make_controller()
    with pytest.raises(ValidationError):
        controller.set_target(temp=15)
    with pytest.raises(ValidationError):
        controller.set_target(time=0)
    assert controller.targets == TargetParameters()
    assert controller.events.last.message.startswith("Error: Time")


def test_recipe_errors_are_logged():
    controller, _ = make_controller()
    with pytest.raises(NotFound):
        controller.load_recipe(42)
    assert controller.events.last.message == "Error: Recipe 42 not found"

    with pytest.raises(ValidationError):
        controller.create_recipe(RecipeDraft("  "))
    assert controller.events.last.message == "Error: Recipe name is required"


def test_crud_events():
    controller, _ = make_controller()
    recipe = controller.create_recipe(RecipeDraft("Pistachio", -7, 100, 14, Color.GREEN))
    assert controller.events.last.message == 'Recipe "Pistachio" created'

    controller.delete_recipe(recipe.id)
    assert controller.events.last.message == 'Recipe "Pistachio" deleted'


def test_event_log_bounded():
    controller, _ = make_controller()
    for recipe_id in (1, 2, 3, 4, 1, 2):
        controller.load_recipe(recipe_id)

    entries = controller.events.entries()
    assert len(entries) == 5
    assert entries[0].message == 'Recipe "Chocolate" loaded'
    assert entries[-1].message == 'Recipe "Chocolate" loaded'


@pytest.mark.asyncio
async def test_start_before_connect_never_arms_loop():
    controller, _ = make_controller()

    assert controller.start() == ResultCode.NOT_CONNECTED
    assert not controller.loop.armed
    await asyncio.sleep(0.03)
    assert controller.snapshot == ProcessSnapshot()


@pytest.mark.asyncio
async def test_motor_run_and_stop():
    controller, _ = make_controller()
    await controller.connect()

    assert controller.start() == ResultCode.SUCCESS
    assert controller.loop.armed
    await asyncio.sleep(0.1)
    running = controller.snapshot
    assert running.rpm > 0
    assert running.amperage > 0
    assert running.temperature < 20

    assert controller.stop() == ResultCode.SUCCESS
    stopped = controller.snapshot
    assert not controller.loop.armed
    assert stopped.rpm == 0
    assert stopped.amperage == 0
    assert stopped.temperature == running.temperature

    await asyncio.sleep(0.05)
    assert controller.snapshot == stopped


@pytest.mark.asyncio
async def test_link_drop_disarms_loop():
    controller, provider = make_controller()
    await controller.connect()
    controller.start()
    await asyncio.sleep(0.05)

    provider.links[0].drop()

    assert not controller.loop.armed
    assert controller.snapshot.rpm == 0
    assert controller.snapshot.amperage == 0
    assert controller.status()["connection"] == "DISCONNECTED"


@pytest.mark.asyncio
async def test_apply_sends_edited_targets():
    controller, provider = make_controller()
    await controller.connect()
    controller.load_recipe(4)
    controller.set_target(temp=-6)

    assert await controller.apply() == ResultCode.SUCCESS
    assert decode_parameters(provider.links[0].sent[-1]) == (-6, 70, 10)


@pytest.mark.asyncio
async def test_status_connected():
    controller, _ = make_controller()
    await controller.connect()
    controller.start()

    status = controller.status()
    assert status["connection"] == "CONNECTED"
    assert status["device"] == "Churner-SIM"
    assert status["motor"] == "RUNNING"
    assert status["target_rpm"] == 80

    await controller.disconnect()


def test_start_outside_event_loop_leaves_motor_idle():
    controller, _ = make_controller()
    asyncio.run(controller.connect())

    assert controller.start() == ResultCode.FAILED
    assert controller.session.motor is MotorState.IDLE
    assert not controller.loop.armed
    assert controller.snapshot.rpm == 0
