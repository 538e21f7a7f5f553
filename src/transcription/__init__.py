"""Streaming transcription sessions with automatic stop deadlines."""

from .config import AutoStopConfig, TranscriberConfig, TranscriberConfigurationError
from .contracts import Transcriber, Transport
from .errors import MessageParseError, TranscriptionError, TransportError
from .events import AutoStopReason, TranscriberStatus, TranscriptionResult
from .session import TranscriptionSession
from .transcriber import StreamingTranscriber
from .transport import RealtimeASRTransport, ResultAssembler, build_signed_url

__all__ = [
    "AutoStopConfig",
    "AutoStopReason",
    "MessageParseError",
    "RealtimeASRTransport",
    "ResultAssembler",
    "StreamingTranscriber",
    "Transcriber",
    "TranscriberConfig",
    "TranscriberConfigurationError",
    "TranscriberStatus",
    "TranscriptionError",
    "TranscriptionResult",
    "TranscriptionSession",
    "Transport",
    "TransportError",
    "build_signed_url",
]
