"""
Transport layer between the console and the churner.

A LinkProvider performs scan + pair + open and hands back a DeviceLink; the
session only ever talks to those two interfaces. The Bleak provider drives a
real BLE appliance; the simulated provider stands in for one when no hardware
is around.
"""

import asyncio
import json
import logging
import os
import platform
import struct
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Tuple

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from .core import CHURNER_SERVICE_UUID, CONTROL_CHAR_UUID, DEVICE_NAME_HINTS
from .errors import LinkUnavailable

logger = logging.getLogger(__name__)

PAYLOAD_FORMAT = "<bBB"


def encode_parameters(temp: int, rpm: int, time: int) -> bytes:
    """Pack target parameters into the control characteristic payload."""
    return struct.pack(PAYLOAD_FORMAT, temp, rpm, time)


def decode_parameters(payload: bytes) -> Tuple[int, int, int]:
    return struct.unpack(PAYLOAD_FORMAT, payload)


class DeviceLink(Protocol):
    """Open connection to one appliance."""

    name: str

    async def close(self) -> None: ...

    def on_disconnect(self, callback: Callable[[], None]) -> None: ...

    async def send(self, payload: bytes) -> None: ...


class LinkProvider(Protocol):
    """Finds, pairs and opens a DeviceLink."""

    async def scan_and_pair(self) -> DeviceLink: ...


def get_cache_file() -> Path:
    """Get the standard cache file location for the last paired address."""
    # Check XDG_CACHE_HOME first (Linux/Unix standard)
    cache_dir = os.environ.get("XDG_CACHE_HOME")
    if cache_dir:
        cache_path = Path(cache_dir) / "churnctrl"
    else:
        system = platform.system()
        if system == "Darwin":
            cache_path = Path.home() / "Library" / "Caches" / "churnctrl"
        elif system == "Windows":
            local_appdata = os.environ.get("LOCALAPPDATA")
            if local_appdata:
                cache_path = Path(local_appdata) / "churnctrl"
            else:
                appdata = os.environ.get(
                    "APPDATA", str(Path.home() / "AppData" / "Roaming")
                )
                cache_path = Path(appdata) / "churnctrl"
        else:
            cache_path = Path.home() / ".cache" / "churnctrl"

    cache_path.mkdir(parents=True, exist_ok=True)
    return cache_path / "device_address.json"


def load_cached_address() -> Optional[str]:
    """Load cached device address, or None if there is none."""
    try:
        cache_file = get_cache_file()
        if cache_file.exists():
            with open(cache_file, "r") as f:
                data = json.load(f)
                return data.get("address")
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load cached address: {e}")
    return None


def save_cached_address(address: str) -> None:
    try:
        cache_file = get_cache_file()
        with open(cache_file, "w") as f:
            json.dump({"address": address}, f, indent=2)
        logger.info(f"Cached device address: {address}")
    except OSError as e:
        logger.warning(f"Failed to save cached address: {e}")


def clear_address_cache() -> bool:
    """Clear the cached device address.

    Returns:
        True if a cache file was removed
    """
    try:
        cache_file = get_cache_file()
        if cache_file.exists():
            cache_file.unlink()
            logger.info("Cleared cached device address")
            return True
    except OSError as e:
        logger.warning(f"Failed to clear cached address: {e}")
    return False


def is_churner(name: Optional[str], service_uuids: List[str]) -> bool:
    """Match an advertisement against the appliance name hints or service."""
    if name and any(hint in name.upper() for hint in DEVICE_NAME_HINTS):
        return True
    return CHURNER_SERVICE_UUID in [u.lower() for u in service_uuids]


class BleakDeviceLink:
    """DeviceLink backed by a BleakClient."""

    def __init__(self, device: BLEDevice, timeout: float = 10.0) -> None:
        self.name = device.name or device.address
        self.address = device.address
        self._callback: Optional[Callable[[], None]] = None
        self._client = BleakClient(
            device,
            disconnected_callback=self._handle_disconnect,
            timeout=timeout,
        )

    async def open(self) -> None:
        await self._client.connect()

    async def close(self) -> None:
        if self._client.is_connected:
            await self._client.disconnect()

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._callback = callback

    async def send(self, payload: bytes) -> None:
        await self._client.write_gatt_char(CONTROL_CHAR_UUID, payload, response=False)

    def _handle_disconnect(self, client: BleakClient) -> None:
        logger.debug(f"BLE link to {self.name} dropped")
        if self._callback:
            self._callback()


class BleakLinkProvider:
    """Scans for and pairs with a churner over BLE."""

    def __init__(self, scan_timeout: float = 10.0, use_cache: bool = True) -> None:
        self.scan_timeout = scan_timeout
        self.use_cache = use_cache

    async def scan(self) -> List[Tuple[BLEDevice, int]]:
        """Scan for nearby churners.

        Returns:
            List of (device, rssi) tuples, strongest signal first
        """
        found = await BleakScanner.discover(timeout=self.scan_timeout, return_adv=True)
        matches = [
            (device, adv.rssi)
            for device, adv in found.values()
            if is_churner(device.name or adv.local_name, adv.service_uuids)
        ]
        return sorted(matches, key=lambda item: item[1], reverse=True)

    async def _find_device(self) -> BLEDevice:
        if self.use_cache:
            cached_address = load_cached_address()
            if cached_address:
                logger.info(f"Trying cached address: {cached_address}")
                device = await BleakScanner.find_device_by_address(
                    cached_address, timeout=5.0
                )
                if device is not None:
                    return device
                logger.warning("Cached device not in range, scanning")

        logger.info("Scanning for churner devices...")
        matches = await self.scan()
        if not matches:
            raise LinkUnavailable("No churner found. Is it powered on and in range?")

        device, rssi = matches[0]
        logger.info(f"Found churner: {device.name} ({device.address}, {rssi} dBm)")
        return device

    async def scan_and_pair(self) -> BleakDeviceLink:
        """Locate the appliance, connect to it and remember its address.

        Raises:
            LinkUnavailable: If no device is found or the connection fails
        """
        try:
            device = await self._find_device()
            link = BleakDeviceLink(device)
            await link.open()
        except BleakError as e:
            raise LinkUnavailable(str(e)) from e
        except asyncio.TimeoutError:
            raise LinkUnavailable("Timed out pairing with device") from None

        save_cached_address(link.address)
        return link


class SimulatedDeviceLink:
    """In-process appliance: records payloads and can drop on demand."""

    def __init__(self, name: str = "Churner-SIM") -> None:
        self.name = name
        self.sent: List[bytes] = []
        self.closed = False
        self._callback: Optional[Callable[[], None]] = None

    async def close(self) -> None:
        self.closed = True

    def on_disconnect(self, callback: Callable[[], None]) -> None:
        self._callback = callback

    async def send(self, payload: bytes) -> None:
        if self.closed:
            raise ConnectionError("link closed")
        self.sent.append(payload)
        logger.debug(f"{self.name} <- {decode_parameters(payload)}")

    def drop(self) -> None:
        """Emulate the appliance going out of range."""
        self.closed = True
        if self._callback:
            self._callback()


class SimulatedLinkProvider:
    """LinkProvider that pairs with a SimulatedDeviceLink."""

    def __init__(self, delay: float = 0.0, fail_with: Optional[str] = None) -> None:
        """Initialize provider.

        Args:
            delay: Seconds the pairing handshake takes
            fail_with: If set, every attempt fails with this reason
        """
        self.delay = delay
        self.fail_with = fail_with
        self.attempts = 0
        self.links: List[SimulatedDeviceLink] = []

    async def scan_and_pair(self) -> SimulatedDeviceLink:
        self.attempts += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with:
            raise LinkUnavailable(self.fail_with)

        link = SimulatedDeviceLink()
        self.links.append(link)
        return link
