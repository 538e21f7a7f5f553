"""Transcription session lifecycle with silence, no-speech and max-duration deadlines."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Literal, Optional

from scheduling import AsyncioScheduler, Scheduler, TimerHandle

from .config import AutoStopConfig
from .constants import (
    REASON_MAX_DURATION,
    REASON_NO_SPEECH,
    REASON_SILENCE,
    RUNNING_STATUSES,
    STATUS_ACTIVE,
    STATUS_IDLE,
    STATUS_PROCESSING,
    STATUS_STARTING,
    STATUS_STOPPING,
)
from .contracts import Transcriber
from .events import (
    AutoStopCallback,
    AutoStopReason,
    ErrorCallback,
    ResultCallback,
    StatusCallback,
    TranscriberStatus,
    TranscriptionResult,
)

TimerKind = Literal["silence", "no_speech", "max_duration"]

_REASONS: dict[str, AutoStopReason] = {
    "silence": REASON_SILENCE,
    "no_speech": REASON_NO_SPEECH,
    "max_duration": REASON_MAX_DURATION,
}


@dataclass(frozen=True)
class ArmedTimer:
    """Pending deadline owned by the session."""
    handle: TimerHandle
    expires_at_ms: float


class TranscriptionSession:
    """Drives one transcriber through `idle -> starting -> active ->
    processing -> stopping -> idle`.

    With auto-stop enabled the first deadline to expire ends the session:
    `no-speech` only while nothing was heard, `silence` only after speech,
    and `max-duration` regardless of activity.
    """

    def __init__(
        self,
        transcriber: Transcriber,
        *,
        scheduler: Optional[Scheduler] = None,
        auto_stop_config: Optional[AutoStopConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._transcriber = transcriber
        self._logger = logger or logging.getLogger("transcription.session")
        self._scheduler = scheduler or AsyncioScheduler(logger=self._logger.getChild("timers"))
        self._config = auto_stop_config or AutoStopConfig()

        self._status: TranscriberStatus = STATUS_IDLE
        self._session_id = 0
        self._has_speech_activity = False
        self._timers: dict[str, ArmedTimer] = {}
        self._stop_task: Optional[asyncio.Task[None]] = None

        self._result_callback: Optional[ResultCallback] = None
        self._error_callback: Optional[ErrorCallback] = None
        self._status_callback: Optional[StatusCallback] = None
        self._auto_stop_callback: Optional[AutoStopCallback] = None

        transcriber.on_result(self._on_transcriber_result)
        transcriber.on_error(self._on_transcriber_error)

    @property
    def status(self) -> TranscriberStatus:
        return self._status

    @property
    def is_active(self) -> bool:
        return self._status in RUNNING_STATUSES

    @property
    def has_speech_activity(self) -> bool:
        return self._has_speech_activity

    @property
    def auto_stop_config(self) -> AutoStopConfig:
        return self._config

    def armed_timers(self) -> dict[str, float]:
        """Expiry timestamps of the currently armed deadlines."""
        return {kind: timer.expires_at_ms for kind, timer in self._timers.items()}

    def on_result(self, callback: ResultCallback) -> None:
        self._result_callback = callback

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callback = callback

    def on_status_change(self, callback: StatusCallback) -> None:
        self._status_callback = callback

    def on_auto_stop(self, callback: AutoStopCallback) -> None:
        self._auto_stop_callback = callback

    async def start(self) -> None:
        if self._status != STATUS_IDLE:
            self._logger.warning("Transcription already running (status=%s)", self._status)
            return

        self._session_id += 1
        session_id = self._session_id
        self._clear_timers()
        self._has_speech_activity = False
        self._set_status(STATUS_STARTING)

        try:
            await self._transcriber.start()
        except Exception as error:
            self._logger.error("Failed to start transcription: %s", error)
            self._clear_timers()
            self._set_status(STATUS_IDLE)
            self._emit_error(error)
            raise

        if session_id != self._session_id or self._status != STATUS_STARTING:
            return
        self._set_status(STATUS_ACTIVE)
        if self._config.enabled:
            self._arm_session_timers()
        self._logger.info("Transcription session %d started", session_id)

    async def stop(self) -> None:
        if self._stop_task is not None:
            await asyncio.shield(self._stop_task)
            return
        if self._status == STATUS_IDLE:
            self._logger.debug("stop() ignored; session is idle")
            return
        task = self._begin_stop()
        await asyncio.shield(task)

    def update_auto_stop_config(
        self,
        *,
        enabled: Optional[bool] = None,
        silence_timeout_ms: Optional[float] = None,
        no_speech_timeout_ms: Optional[float] = None,
        max_duration_ms: Optional[float] = None,
    ) -> AutoStopConfig:
        self._config = self._config.merged(
            enabled=enabled,
            silence_timeout_ms=silence_timeout_ms,
            no_speech_timeout_ms=no_speech_timeout_ms,
            max_duration_ms=max_duration_ms,
        )
        self._logger.debug("Auto-stop config updated: %s", self._config)
        if self.is_active:
            self._clear_timers()
            if self._config.enabled:
                self._arm_session_timers()
        return self._config

    def _on_transcriber_result(self, result: TranscriptionResult) -> None:
        if self._status == STATUS_STARTING:
            # Deadlines are armed once the transcriber is up.
            if result.has_content:
                self._has_speech_activity = True
        elif self.is_active:
            if result.has_content:
                self._has_speech_activity = True
                self._set_status(STATUS_PROCESSING)
                self._disarm("no_speech")
                if self._config.enabled:
                    self._arm("silence", self._config.silence_timeout_ms)
            if result.is_final and self._config.enabled and self._has_speech_activity:
                self._arm("silence", self._config.silence_timeout_ms)

        if self._result_callback is not None:
            try:
                self._result_callback(result)
            except Exception:
                self._logger.error("Result callback failed", exc_info=True)

    def _on_transcriber_error(self, error: Exception) -> None:
        self._logger.error("Transcriber error: %s", error)
        self._clear_timers()
        if self._stop_task is None:
            self._set_status(STATUS_IDLE)
        self._emit_error(error)

    def _arm_session_timers(self) -> None:
        config = self._config
        if not self._has_speech_activity:
            self._arm("no_speech", config.no_speech_timeout_ms)
        else:
            self._arm("silence", config.silence_timeout_ms)
        self._arm("max_duration", config.max_duration_ms)

    def _arm(self, kind: TimerKind, delay_ms: float) -> None:
        self._disarm(kind)
        if delay_ms <= 0:
            return
        session_id = self._session_id
        handle = self._scheduler.schedule(
            delay_ms,
            lambda: self._on_deadline(kind, session_id),
        )
        self._timers[kind] = ArmedTimer(
            handle=handle,
            expires_at_ms=self._scheduler.now_ms() + delay_ms,
        )

    def _disarm(self, kind: TimerKind) -> None:
        timer = self._timers.pop(kind, None)
        if timer is not None:
            timer.handle.cancel()

    def _clear_timers(self) -> None:
        for timer in self._timers.values():
            timer.handle.cancel()
        self._timers.clear()

    def _on_deadline(self, kind: TimerKind, session_id: int) -> None:
        if session_id != self._session_id or not self.is_active:
            return
        self._timers.pop(kind, None)
        if kind == "no_speech" and self._has_speech_activity:
            return

        reason = _REASONS[kind]
        self._logger.info("Auto-stopping transcription: %s", reason)
        self._clear_timers()
        if self._auto_stop_callback is not None:
            try:
                self._auto_stop_callback(reason)
            except Exception:
                self._logger.error("Auto-stop callback failed", exc_info=True)
        if self._stop_task is None and self._status != STATUS_IDLE:
            self._begin_stop()

    def _begin_stop(self) -> asyncio.Task[None]:
        self._clear_timers()
        self._set_status(STATUS_STOPPING)
        self._stop_task = asyncio.create_task(self._teardown())
        return self._stop_task

    async def _teardown(self) -> None:
        try:
            await self._transcriber.stop()
        except Exception as error:
            self._logger.error("Error stopping transcriber: %s", error, exc_info=True)
            self._emit_error(error)
        finally:
            self._stop_task = None
            self._set_status(STATUS_IDLE)
            self._logger.info("Transcription session %d stopped", self._session_id)

    def _emit_error(self, error: Exception) -> None:
        if self._error_callback is None:
            return
        try:
            self._error_callback(error)
        except Exception:
            self._logger.error("Error callback failed", exc_info=True)

    def _set_status(self, status: TranscriberStatus) -> None:
        if self._status == status:
            return
        self._logger.debug("Transcription status: %s -> %s", self._status, status)
        self._status = status
        if self._status_callback is not None:
            try:
                self._status_callback(status)
            except Exception:
                self._logger.error("Status callback failed", exc_info=True)
