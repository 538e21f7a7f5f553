"""Result payloads and callback signatures for transcription sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Optional

TranscriberStatus = Literal["idle", "starting", "active", "processing", "stopping"]
AutoStopReason = Literal["silence", "no-speech", "max-duration"]


@dataclass(frozen=True)
class TranscriptionResult:
    """Transcript hypothesis; final results close the current segment."""
    transcript: str
    is_final: bool
    confidence: Optional[float] = None

    @property
    def has_content(self) -> bool:
        return bool(self.transcript.strip())


ResultCallback = Callable[[TranscriptionResult], None]
ErrorCallback = Callable[[Exception], None]
StatusCallback = Callable[[TranscriberStatus], None]
AutoStopCallback = Callable[[AutoStopReason], None]
