"""
Operator-facing facade over the churner session, process loop and recipes.

Wires the pieces together: the session's motor transitions arm and disarm the
control loop, the loop reads the current targets every tick, and loading a
recipe copies its parameters into those targets.
"""

import logging
from dataclasses import replace
from typing import Any, List, Optional

from .control import ControlLoop, ProcessSnapshot, TargetParameters
from .core import (
    RPM_MAX,
    RPM_MIN,
    TEMP_MAX,
    TEMP_MIN,
    TICK_PERIOD_S,
    TIME_MAX,
    TIME_MIN,
    ResultCode,
)
from .errors import ChurnError
from .eventlog import EventLog
from .link import LinkProvider
from .recipes import Recipe, RecipeDraft, RecipeRepository, check_range
from .session import DeviceSession

logger = logging.getLogger(__name__)


class ChurnController:
    """Single-operator console state for one churner."""

    def __init__(
        self,
        provider: LinkProvider,
        repository: Optional[RecipeRepository] = None,
        events: Optional[EventLog] = None,
        tick_period: float = TICK_PERIOD_S,
    ) -> None:
        """Initialize controller in the Disconnected state.

        Args:
            provider: Source of device links
            repository: Recipe store (seeded with defaults if None)
            events: Event log shared by all components
            tick_period: Seconds between control loop ticks
        """
        self.events = events or EventLog()
        self.recipes = repository if repository is not None else RecipeRepository()
        self.targets = TargetParameters()
        self.active_recipe_id: Optional[int] = None

        self.session = DeviceSession(provider, self.events)
        self.loop = ControlLoop(lambda: self.targets, period=tick_period)
        self.session.set_on_motor_change(self._on_motor_change)

    def _on_motor_change(self, running: bool) -> None:
        if running:
            self.loop.start()
        else:
            self.loop.stop()

    @property
    def snapshot(self) -> ProcessSnapshot:
        return self.loop.snapshot

    @property
    def active_recipe(self) -> Optional[Recipe]:
        if self.active_recipe_id is None or self.active_recipe_id not in self.recipes:
            return None
        return self.recipes.get(self.active_recipe_id)

    # ========== Session ==========

    async def connect(self) -> ResultCode:
        return await self.session.connect()

    async def disconnect(self) -> None:
        await self.session.disconnect()

    def start(self) -> ResultCode:
        return self.session.start_motor(self.targets)

    def stop(self) -> ResultCode:
        return self.session.stop_motor()

    async def apply(self) -> ResultCode:
        """Send the current targets to the appliance."""
        return await self.session.send_parameters(self.targets)

    def set_target(
        self,
        temp: Optional[int] = None,
        rpm: Optional[int] = None,
        time: Optional[int] = None,
    ) -> TargetParameters:
        """Change one or more targets. Omitted values are left as they are.

        Raises:
            ValidationError: If a value is out of range
        """
        if temp is not None:
            self._record_failure(check_range, "Temperature", temp, TEMP_MIN, TEMP_MAX)
        if rpm is not None:
            self._record_failure(check_range, "RPM", rpm, RPM_MIN, RPM_MAX)
        if time is not None:
            self._record_failure(check_range, "Time", time, TIME_MIN, TIME_MAX)

        self.targets = replace(
            self.targets,
            temp=self.targets.temp if temp is None else temp,
            rpm=self.targets.rpm if rpm is None else rpm,
            time=self.targets.time if time is None else time,
        )
        logger.debug(f"Targets now {self.targets}")
        return self.targets

    # ========== Recipes ==========

    def list_recipes(self) -> List[Recipe]:
        return self.recipes.list()

    def create_recipe(self, draft: RecipeDraft) -> Recipe:
        recipe = self._record_failure(self.recipes.create, draft)
        self.events.record(f'Recipe "{recipe.name}" created')
        return recipe

    def update_recipe(self, recipe_id: int, draft: RecipeDraft) -> Recipe:
        recipe = self._record_failure(self.recipes.update, recipe_id, draft)
        self.events.record(f'Recipe "{recipe.name}" updated')
        return recipe

    def delete_recipe(self, recipe_id: int) -> Recipe:
        """Delete a recipe, clearing the active marker if it pointed there.

        The current targets are left untouched.
        """
        recipe = self._record_failure(self.recipes.delete, recipe_id)
        if self.active_recipe_id == recipe_id:
            self.active_recipe_id = None
        self.events.record(f'Recipe "{recipe.name}" deleted')
        return recipe

    def get_recipe(self, recipe_id: int) -> Recipe:
        return self._record_failure(self.recipes.get, recipe_id)

    def load_recipe(self, recipe_id: int) -> Recipe:
        """Copy a recipe's parameters into the targets and mark it active."""
        recipe = self._record_failure(self.recipes.get, recipe_id)
        self.targets = TargetParameters(recipe.temp, recipe.rpm, recipe.time)
        self.active_recipe_id = recipe.id
        self.events.record(f'Recipe "{recipe.name}" loaded')
        return recipe

    def _record_failure(self, func, *args) -> Any:  # type: ignore[no-untyped-def]
        try:
            return func(*args)
        except ChurnError as e:
            self.events.record(f"Error: {e}", logging.ERROR)
            raise

    def status(self) -> dict:
        """Get current state for display.

        Returns:
            Dictionary with connection, motor, process variables and targets
        """
        snapshot = self.snapshot
        active = self.active_recipe
        return {
            "connection": self.session.state.name,
            "device": self.session.device_name,
            "motor": self.session.motor.name,
            "temperature": snapshot.temperature,
            "rpm": snapshot.rpm,
            "amperage": snapshot.amperage,
            "target_temp": self.targets.temp,
            "target_rpm": self.targets.rpm,
            "target_time": self.targets.time,
            "recipe": active.name if active else None,
        }
