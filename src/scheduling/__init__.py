"""Timer abstraction shared by the matcher and session state machines."""

from .timers import AsyncioScheduler, ManualScheduler, Scheduler, TimerHandle

__all__ = [
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "TimerHandle",
]
