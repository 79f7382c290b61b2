"""
Process model for the churner.

The control loop advances temperature, rotation speed and current draw toward
the operator targets once per tick. A tick timer is armed on the running
asyncio loop when the motor starts and cancelled in the same call that stops
it, so no tick can land after the motor has stopped or the link has dropped.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

from .core import (
    AMBIENT_TEMP,
    AMPERAGE_MAX,
    AMPERAGE_STEP,
    DEFAULT_RPM,
    DEFAULT_TEMP,
    DEFAULT_TIME,
    RPM_STEP,
    TEMP_STEP,
    TICK_PERIOD_S,
)

logger = logging.getLogger(__name__)


@dataclass
class TargetParameters:
    """Operator-intended set points."""

    temp: int = DEFAULT_TEMP
    rpm: int = DEFAULT_RPM
    time: int = DEFAULT_TIME


@dataclass(frozen=True)
class ProcessSnapshot:
    """Instantaneous process variables."""

    temperature: float = AMBIENT_TEMP
    rpm: int = 0
    amperage: float = 0.0


def advance(snapshot: ProcessSnapshot, targets: TargetParameters) -> ProcessSnapshot:
    """Compute the next snapshot for one tick of a running motor.

    Each variable ramps independently: temperature falls 0.5 C toward the
    target, rpm rises 5 toward the target, amperage rises 0.2 A up to the
    fixed ceiling.
    """
    return ProcessSnapshot(
        temperature=max(float(targets.temp), snapshot.temperature - TEMP_STEP),
        rpm=min(targets.rpm, snapshot.rpm + RPM_STEP),
        amperage=min(AMPERAGE_MAX, round(snapshot.amperage + AMPERAGE_STEP, 2)),
    )


class ControlLoop:
    """Owns the process variables and the fixed-interval tick timer."""

    def __init__(
        self,
        targets: Callable[[], TargetParameters],
        period: float = TICK_PERIOD_S,
    ) -> None:
        """Initialize an idle loop.

        Args:
            targets: Supplier of the current targets, read fresh every tick
            period: Seconds between ticks
        """
        self._targets = targets
        self.period = period
        self._snapshot = ProcessSnapshot()
        self._handle: Optional[asyncio.TimerHandle] = None
        self._ticks = 0

        self._on_tick: Optional[Callable[[ProcessSnapshot], None]] = None

    @property
    def snapshot(self) -> ProcessSnapshot:
        return self._snapshot

    @property
    def armed(self) -> bool:
        """True while the tick timer is scheduled."""
        return self._handle is not None

    @property
    def ticks(self) -> int:
        """Ticks processed since the last start."""
        return self._ticks

    def set_on_tick(self, callback: Optional[Callable[[ProcessSnapshot], None]]) -> None:
        """Set callback receiving the snapshot after every tick."""
        self._on_tick = callback

    def tick(self) -> ProcessSnapshot:
        """Advance the process variables by one tick."""
        self._snapshot = advance(self._snapshot, self._targets())
        self._ticks += 1
        return self._snapshot

    def start(self) -> None:
        """Arm the tick timer. Must be called from within a running event loop."""
        if self._handle is not None:
            return
        self._ticks = 0
        self._schedule(asyncio.get_running_loop())
        logger.debug(f"Control loop armed ({self.period}s period)")

    def stop(self) -> None:
        """Disarm the timer and drop rpm and amperage to zero at once."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            logger.debug(f"Control loop disarmed after {self._ticks} ticks")
        self._snapshot = replace(self._snapshot, rpm=0, amperage=0.0)

    def _schedule(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = loop.call_later(self.period, self._fire, loop)

    def _fire(self, loop: asyncio.AbstractEventLoop) -> None:
        if self._handle is None:
            return

        snapshot = self.tick()
        # Re-arm before notifying so a listener that stops the loop wins
        self._schedule(loop)

        if self._on_tick:
            try:
                self._on_tick(snapshot)
            except Exception as e:
                logger.error(f"Tick callback error: {e}")
