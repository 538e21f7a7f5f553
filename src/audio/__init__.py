"""Microphone capture, framing and pacing for the wake and transcription paths."""

from .config import AudioConfig
from .contracts import AudioChunk, AudioSource, CaptureStream, StreamFactory
from .errors import AudioConfigurationError, AudioResourceError
from .framing import AudioFrame, FrameAccumulator
from .loudness import VoiceActivityGate, float_rms, pcm16_rms
from .pacer import END_OF_STREAM_MARKER, AudioFramePacer
from .resource import MicrophoneHub

__all__ = [
    "AudioChunk",
    "AudioConfig",
    "AudioConfigurationError",
    "AudioFrame",
    "AudioFramePacer",
    "AudioResourceError",
    "AudioSource",
    "CaptureStream",
    "END_OF_STREAM_MARKER",
    "FrameAccumulator",
    "MicrophoneHub",
    "StreamFactory",
    "VoiceActivityGate",
    "float_rms",
    "pcm16_rms",
]
