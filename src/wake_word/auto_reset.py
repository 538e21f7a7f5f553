"""One-shot re-arm timer started after every wake decision."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from scheduling import Scheduler, TimerHandle

from .config import AutoResetConfig


class AutoResetScheduler:
    """Calls `reset_callback` once, `reset_delay_ms` after `arm()`.

    Re-arming replaces the pending timer. Config updates apply to the next
    arm only; a pending timer keeps its original fire time.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        reset_callback: Callable[[], None],
        config: Optional[AutoResetConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._scheduler = scheduler
        self._reset_callback = reset_callback
        self._config = config or AutoResetConfig()
        self._logger = logger or logging.getLogger("wake_word.auto_reset")
        self._timer: Optional[TimerHandle] = None

    @property
    def config(self) -> AutoResetConfig:
        return self._config

    @property
    def pending(self) -> bool:
        return self._timer is not None and self._timer.active

    def arm(self) -> bool:
        self.cancel()
        if not self._config.enabled:
            return False
        self._timer = self._scheduler.schedule(self._config.reset_delay_ms, self._fire)
        self._logger.debug("Auto-reset armed for %.0fms", self._config.reset_delay_ms)
        return True

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def update_config(
        self,
        *,
        enabled: Optional[bool] = None,
        reset_delay_ms: Optional[float] = None,
    ) -> AutoResetConfig:
        self._config = self._config.merged(enabled=enabled, reset_delay_ms=reset_delay_ms)
        self._logger.debug(
            "Auto-reset config updated: enabled=%s reset_delay_ms=%.0f",
            self._config.enabled,
            self._config.reset_delay_ms,
        )
        return self._config

    def _fire(self) -> None:
        self._timer = None
        self._logger.info("Auto-resetting wake-word detector")
        self._reset_callback()
