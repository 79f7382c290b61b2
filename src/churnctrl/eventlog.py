"""
Bounded log of operator-visible events.

Every component records its transitions here; the REPL renders the most
recent entries and listeners can mirror new entries as they arrive.
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from .core import EVENT_LOG_CAPACITY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Single log entry."""

    timestamp: datetime
    message: str

    def __str__(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] {self.message}"


class EventLog:
    """Append-only ring of the most recent events (oldest evicted first)."""

    def __init__(self, capacity: int = EVENT_LOG_CAPACITY) -> None:
        self._entries: deque[Event] = deque(maxlen=capacity)
        self._listeners: List[Callable[[Event], None]] = []

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def record(self, message: str, level: int = logging.INFO) -> Event:
        """Append an event and notify listeners.

        Args:
            message: Human-readable event text
            level: Level used when mirroring the event to the module logger

        Returns:
            The stored Event
        """
        event = Event(datetime.now(), message)
        self._entries.append(event)
        logger.log(level, message)

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Event listener error: {e}")
        return event

    def subscribe(self, callback: Callable[[Event], None]) -> None:
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[Event], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def entries(self) -> List[Event]:
        """Return entries oldest first."""
        return list(self._entries)

    @property
    def last(self) -> Optional[Event]:
        return self._entries[-1] if self._entries else None

    def __len__(self) -> int:
        return len(self._entries)
