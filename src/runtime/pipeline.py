"""Wake-word detection wired to a transcription session."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Literal, Optional

from audio import AudioResourceError, MicrophoneHub
from transcription import (
    AutoStopReason,
    TranscriberStatus,
    TranscriptionResult,
    TranscriptionSession,
)
from transcription.constants import STATUS_IDLE
from wake_word import WakeWordDetector

WakeStatus = Literal["idle", "listening", "woke"]

WAKE_STATUS_IDLE = "idle"
WAKE_STATUS_LISTENING = "listening"
WAKE_STATUS_WOKE = "woke"

TranscriptCallback = Callable[[str, bool, TranscriptionResult], None]


class VoicePipeline:
    """Listens for the wake phrase, then runs a transcription session.

    When the session returns to idle (or auto-stops) the detector is re-armed
    and the pipeline goes back to listening.
    """

    def __init__(
        self,
        detector: WakeWordDetector,
        session: TranscriptionSession,
        *,
        auto_start_transcriber_on_wake: bool = True,
        microphone: Optional[MicrophoneHub] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._detector = detector
        self._session = session
        self._auto_start_transcriber_on_wake = auto_start_transcriber_on_wake
        self._logger = logger or logging.getLogger("runtime.pipeline")
        self._wake_status: WakeStatus = WAKE_STATUS_IDLE
        self._pending_tasks: set[asyncio.Task[None]] = set()

        self._wake_callback: Optional[Callable[[str], None]] = None
        self._transcript_callback: Optional[TranscriptCallback] = None
        self._error_callback: Optional[Callable[[Exception], None]] = None
        self._wake_status_callback: Optional[Callable[[WakeStatus], None]] = None
        self._transcription_status_callback: Optional[
            Callable[[TranscriberStatus], None]
        ] = None
        self._auto_stop_callback: Optional[Callable[[AutoStopReason], None]] = None

        detector.on_wake(self._handle_wake)
        detector.on_error(self._emit_error)
        session.on_result(self._handle_result)
        session.on_error(self._emit_error)
        session.on_status_change(self._handle_transcription_status)
        session.on_auto_stop(self._handle_auto_stop)
        if microphone is not None:
            microphone.on_error(self._handle_audio_error)

    @property
    def wake_status(self) -> WakeStatus:
        return self._wake_status

    @property
    def transcriber_status(self) -> TranscriberStatus:
        return self._session.status

    @property
    def detector(self) -> WakeWordDetector:
        return self._detector

    @property
    def session(self) -> TranscriptionSession:
        return self._session

    def on_wake(self, callback: Callable[[str], None]) -> None:
        self._wake_callback = callback

    def on_transcript(self, callback: TranscriptCallback) -> None:
        self._transcript_callback = callback

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        self._error_callback = callback

    def on_wake_status_change(self, callback: Callable[[WakeStatus], None]) -> None:
        self._wake_status_callback = callback

    def on_transcription_status_change(
        self,
        callback: Callable[[TranscriberStatus], None],
    ) -> None:
        self._transcription_status_callback = callback

    def on_auto_stop(self, callback: Callable[[AutoStopReason], None]) -> None:
        self._auto_stop_callback = callback

    async def start(self) -> None:
        await self.start_wake_detector()

    async def stop(self) -> None:
        await self.stop_transcriber()
        await self.stop_wake_detector()
        pending = list(self._pending_tasks)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def start_wake_detector(self) -> None:
        await self._detector.start()
        self._set_wake_status(WAKE_STATUS_LISTENING)

    async def stop_wake_detector(self) -> None:
        await self._detector.stop()
        self._set_wake_status(WAKE_STATUS_IDLE)

    async def start_transcriber(self) -> None:
        await self._session.start()

    async def stop_transcriber(self) -> None:
        await self._session.stop()

    def _handle_wake(self, phrase: str) -> None:
        self._set_wake_status(WAKE_STATUS_WOKE)
        if self._wake_callback is not None:
            try:
                self._wake_callback(phrase)
            except Exception:
                self._logger.error("Wake callback failed", exc_info=True)

        if self._auto_start_transcriber_on_wake and self._session.status == STATUS_IDLE:
            self._track(asyncio.create_task(self._start_transcriber_after_wake()))

    async def _start_transcriber_after_wake(self) -> None:
        try:
            await self._session.start()
        except Exception as error:
            # The session already reported the failure; fall back to listening.
            self._logger.warning("Transcriber failed to start after wake: %s", error)
            self._rearm_detector()

    def _handle_result(self, result: TranscriptionResult) -> None:
        if self._transcript_callback is None:
            return
        try:
            self._transcript_callback(result.transcript, result.is_final, result)
        except Exception:
            self._logger.error("Transcript callback failed", exc_info=True)

    def _handle_transcription_status(self, status: TranscriberStatus) -> None:
        if self._transcription_status_callback is not None:
            try:
                self._transcription_status_callback(status)
            except Exception:
                self._logger.error("Transcription status callback failed", exc_info=True)
        if status == STATUS_IDLE and self._wake_status == WAKE_STATUS_WOKE:
            self._rearm_detector()

    def _handle_auto_stop(self, reason: AutoStopReason) -> None:
        self._logger.info("Transcription auto-stopped: %s", reason)
        if self._auto_stop_callback is not None:
            try:
                self._auto_stop_callback(reason)
            except Exception:
                self._logger.error("Auto-stop callback failed", exc_info=True)
        self._rearm_detector()

    def _handle_audio_error(self, error: Exception) -> None:
        kind = error.kind if isinstance(error, AudioResourceError) else "unknown"
        self._logger.warning("Microphone error (%s): %s", kind, error)
        self._emit_error(error)
        if self._session.status == STATUS_IDLE:
            return
        # The session has no audio until the device is reopened.
        self._logger.info("Aborting transcription after microphone loss")
        self._track(asyncio.create_task(self._session.stop()))

    def _track(self, task: asyncio.Task[None]) -> None:
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    def _rearm_detector(self) -> None:
        self._detector.reset()
        if self._detector.is_active:
            self._set_wake_status(WAKE_STATUS_LISTENING)

    def _set_wake_status(self, status: WakeStatus) -> None:
        if self._wake_status == status:
            return
        self._logger.debug("Wake status: %s -> %s", self._wake_status, status)
        self._wake_status = status
        if self._wake_status_callback is not None:
            try:
                self._wake_status_callback(status)
            except Exception:
                self._logger.error("Wake status callback failed", exc_info=True)

    def _emit_error(self, error: Exception) -> None:
        if self._error_callback is None:
            return
        try:
            self._error_callback(error)
        except Exception:
            self._logger.error("Error callback failed", exc_info=True)
