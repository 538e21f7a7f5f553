"""Wake-phrase detection on top of an offline streaming recognizer."""

from .auto_reset import AutoResetScheduler
from .config import AutoResetConfig, WakeWordConfig, WakeWordConfigurationError
from .contracts import Recognizer
from .detector import WakeWordDetector
from .events import (
    EventPublisher,
    QueueEventPublisher,
    WakeWordDetectedEvent,
    WakeWordErrorEvent,
    WakeWordEvent,
)

__all__ = [
    "AutoResetConfig",
    "AutoResetScheduler",
    "EventPublisher",
    "QueueEventPublisher",
    "Recognizer",
    "WakeWordConfig",
    "WakeWordConfigurationError",
    "WakeWordDetectedEvent",
    "WakeWordDetector",
    "WakeWordErrorEvent",
    "WakeWordEvent",
]
