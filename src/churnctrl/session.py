"""
Connection and motor state machine for a single churner.

States run Disconnected -> Connecting -> Connected -> Disconnected, with the
motor Idle or Running while Connected. Commands never raise for operational
failures; they record an event and return a ResultCode.
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from .control import TargetParameters
from .core import ResultCode
from .errors import LinkUnavailable
from .eventlog import EventLog
from .link import DeviceLink, LinkProvider, encode_parameters

logger = logging.getLogger(__name__)


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class MotorState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class DeviceSession:
    """Manages the link to one churner and its motor state."""

    def __init__(self, provider: LinkProvider, events: EventLog) -> None:
        self._provider = provider
        self._events = events
        self._state = SessionState.DISCONNECTED
        self._motor = MotorState.IDLE
        self._link: Optional[DeviceLink] = None
        # Bumped whenever a pending connect attempt is superseded
        self._attempt = 0

        # Callbacks
        self._on_motor_change: Optional[Callable[[bool], None]] = None
        self._on_disconnect: Optional[Callable[[], None]] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def motor(self) -> MotorState:
        return self._motor

    @property
    def is_connected(self) -> bool:
        return self._state is SessionState.CONNECTED

    @property
    def is_running(self) -> bool:
        return self._motor is MotorState.RUNNING

    @property
    def device_name(self) -> Optional[str]:
        return self._link.name if self._link is not None else None

    def set_on_motor_change(self, callback: Optional[Callable[[bool], None]]) -> None:
        """Set callback for motor transitions.

        Args:
            callback: Called synchronously with True on start, False on stop
        """
        self._on_motor_change = callback

    def set_on_disconnect(self, callback: Optional[Callable[[], None]]) -> None:
        """Set callback for unexpected link drops."""
        self._on_disconnect = callback

    async def connect(self) -> ResultCode:
        """Scan, pair and open a link to the churner.

        Returns:
            SUCCESS, ALREADY_IN_PROGRESS, LINK_UNAVAILABLE, or CANCELLED if
            disconnect() was called while the attempt was pending
        """
        if self._state is SessionState.CONNECTING:
            self._events.record("Already connecting", logging.WARNING)
            return ResultCode.ALREADY_IN_PROGRESS
        if self._state is SessionState.CONNECTED:
            self._events.record(f"Already connected to {self.device_name}")
            return ResultCode.SUCCESS

        self._state = SessionState.CONNECTING
        attempt = self._attempt
        self._events.record("Searching for device...")

        try:
            link = await self._provider.scan_and_pair()
        except asyncio.CancelledError:
            if attempt == self._attempt:
                self._attempt += 1
                self._state = SessionState.DISCONNECTED
                self._events.record("Connection attempt cancelled")
            raise
        except LinkUnavailable as e:
            return self._connect_failed(attempt, str(e))
        except Exception as e:
            logger.exception("Unexpected error while pairing")
            return self._connect_failed(attempt, str(e) or type(e).__name__)

        if attempt != self._attempt:
            logger.info(f"Discarding late link to {link.name}")
            await self._close_quietly(link)
            return ResultCode.CANCELLED

        self._link = link
        self._motor = MotorState.IDLE
        self._state = SessionState.CONNECTED
        link.on_disconnect(lambda: self._handle_link_lost(link))
        self._events.record(f"Connected to {link.name}")
        return ResultCode.SUCCESS

    def _connect_failed(self, attempt: int, reason: str) -> ResultCode:
        if attempt != self._attempt:
            return ResultCode.CANCELLED
        self._state = SessionState.DISCONNECTED
        self._events.record(f"Error: {reason}", logging.ERROR)
        return ResultCode.LINK_UNAVAILABLE

    async def disconnect(self) -> None:
        """Close the link. A no-op when already disconnected."""
        if self._state is SessionState.DISCONNECTED:
            return

        if self._state is SessionState.CONNECTING:
            self._attempt += 1
            self._state = SessionState.DISCONNECTED
            self._events.record("Connection attempt cancelled")
            return

        link = self._detach()
        self._events.record("Disconnected manually")
        if link is not None:
            await self._close_quietly(link)

    def _detach(self) -> Optional[DeviceLink]:
        """Enter Disconnected/Idle and hand back the link that was open."""
        link, self._link = self._link, None
        self._set_motor(MotorState.IDLE)
        self._state = SessionState.DISCONNECTED
        return link

    def _handle_link_lost(self, link: DeviceLink) -> None:
        # Drops reported by a link we already let go of are expected
        if link is not self._link:
            return

        self._detach()
        self._events.record("Device disconnected unexpectedly", logging.WARNING)
        if self._on_disconnect:
            try:
                self._on_disconnect()
            except Exception as e:
                logger.error(f"Disconnect callback error: {e}")

    async def _close_quietly(self, link: DeviceLink) -> None:
        try:
            await link.close()
        except Exception as e:
            logger.warning(f"Closing link to {link.name} failed: {e}")

    def start_motor(self, targets: Optional[TargetParameters] = None) -> ResultCode:
        """Start the motor and arm the control loop."""
        if not self.is_connected:
            self._events.record("Cannot start motor: not connected", logging.ERROR)
            return ResultCode.NOT_CONNECTED

        if self.is_running:
            self._events.record("Motor already running")
            return ResultCode.SUCCESS

        try:
            self._set_motor(MotorState.RUNNING)
        except Exception as e:
            # Timer could not be armed; stay Idle
            self._motor = MotorState.IDLE
            self._events.record(f"Motor start failed: {e}", logging.ERROR)
            return ResultCode.FAILED

        if targets is not None:
            self._events.record(
                f"Motor started - {targets.rpm} RPM, {targets.time} min"
            )
        else:
            self._events.record("Motor started")
        return ResultCode.SUCCESS

    def stop_motor(self) -> ResultCode:
        """Stop the motor and disarm the control loop."""
        if not self.is_connected:
            self._events.record("Cannot stop motor: not connected", logging.ERROR)
            return ResultCode.NOT_CONNECTED

        if not self.is_running:
            self._events.record("Motor already stopped")
            return ResultCode.SUCCESS

        self._set_motor(MotorState.IDLE)
        self._events.record("Motor stopped")
        return ResultCode.SUCCESS

    async def send_parameters(self, targets: TargetParameters) -> ResultCode:
        """Dispatch target parameters to the appliance."""
        if not self.is_connected or self._link is None:
            self._events.record("Cannot send parameters: not connected", logging.ERROR)
            return ResultCode.NOT_CONNECTED

        payload = encode_parameters(targets.temp, targets.rpm, targets.time)
        try:
            await self._link.send(payload)
        except Exception as e:
            self._events.record(f"Send failed: {e}", logging.ERROR)
            return ResultCode.FAILED

        self._events.record(
            f"Sent: Temp={targets.temp}°C, RPM={targets.rpm}, Time={targets.time}min"
        )
        return ResultCode.SUCCESS

    def _set_motor(self, motor: MotorState) -> None:
        if motor is self._motor:
            return
        self._motor = motor
        if self._on_motor_change:
            self._on_motor_change(motor is MotorState.RUNNING)
