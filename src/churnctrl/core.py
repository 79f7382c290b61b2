"""
Core constants and result codes for churner control.
"""

from enum import Enum

# Appliance discovery. The controller board advertises the standard battery
# service; the control characteristic is a vendor UART-style RX endpoint.
CHURNER_SERVICE_UUID = "0000180f-0000-1000-8000-00805f9b34fb"
CONTROL_CHAR_UUID = "6e400002-b5a3-f393-e0a9-e50e24dcca9e"
DEVICE_NAME_HINTS = ("CHURN", "GELATO", "HELADERA", "ICECREAM")

# Parameter ranges (inclusive)
TEMP_MIN = -20
TEMP_MAX = 10
RPM_MIN = 0
RPM_MAX = 200
TIME_MIN = 5
TIME_MAX = 60

# Process model
AMBIENT_TEMP = 20.0
TEMP_STEP = 0.5
RPM_STEP = 5
AMPERAGE_STEP = 0.2
AMPERAGE_MAX = 8.0
TICK_PERIOD_S = 1.0

# Default targets (also the blank-recipe form values)
DEFAULT_TEMP = -5
DEFAULT_RPM = 80
DEFAULT_TIME = 15

EVENT_LOG_CAPACITY = 5


class Color(str, Enum):
    """Recipe card palette."""

    YELLOW = "yellow"
    BROWN = "brown"
    PINK = "pink"
    PURPLE = "purple"
    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    ORANGE = "orange"


class ResultCode(Enum):
    """Outcome of a session command."""

    SUCCESS = "success"
    NOT_CONNECTED = "not_connected"
    LINK_UNAVAILABLE = "link_unavailable"
    ALREADY_IN_PROGRESS = "already_in_progress"
    CANCELLED = "cancelled"
    FAILED = "failed"


# Application metadata
__version__ = "0.1.0"
__description__ = "CLI and REPL console for Bluetooth ice-cream churners"
