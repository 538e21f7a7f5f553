"""Event dataclasses and publisher contracts emitted by the wake-word detector."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol, Union


@dataclass(frozen=True)
class WakeWordDetectedEvent:
    """Event emitted when a configured wake phrase is matched."""
    phrase: str
    score: float
    occurred_at: datetime


@dataclass(frozen=True)
class WakeWordErrorEvent:
    """Event emitted when wake-word detection fails unexpectedly."""
    occurred_at: datetime
    message: str
    exception: Optional[Exception] = None


WakeWordEvent = Union[WakeWordDetectedEvent, WakeWordErrorEvent]


class EventPublisher(Protocol):
    """Protocol for publishing wake word events."""

    def publish(self, event: WakeWordEvent) -> None: ...


class QueueEventPublisher:
    """Event publisher that pushes events to an asyncio queue."""

    def __init__(self, queue: "asyncio.Queue[WakeWordEvent]"):
        self._queue = queue

    def publish(self, event: WakeWordEvent) -> None:
        self._queue.put_nowait(event)
