"""Dataclass schema objects used by runtime configuration loading."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_CONFIG_FILE = "config.toml"


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class WakeWordSettings:
    """Wake phrases and recognizer model loaded from `[wake_word]`."""
    phrases: tuple[str, ...]
    model_path: str
    sample_rate: int = 16000
    use_partial: bool = True
    validate_paths: bool = True


@dataclass(frozen=True)
class MatchingSettings:
    """Matcher thresholds and similarity weights from `[matching]`."""
    partial_threshold: float = 0.72
    final_threshold: float = 0.80
    near_miss_slack: float = 0.08
    required_consecutive_hits: int = 2
    required_near_miss_hits: int = 3
    refractory_ms: float = 1500.0
    partial_buffer_max_chars: int = 32
    max_loudness_relaxation: float = 0.05
    loudness_floor: float = 0.02
    confident_loudness: float = 0.1
    loudness_window_ms: float = 1000.0
    levenshtein_weight: float = 0.5
    lcs_weight: float = 0.3
    bigram_weight: float = 0.2
    phonetic_strong_threshold: float = 0.9
    phonetic_strong_text_weight: float = 0.2
    phonetic_blend_threshold: float = 0.75
    phonetic_blend_text_weight: float = 0.55


@dataclass(frozen=True)
class AutoResetSettings:
    """Post-wake re-arm timing from `[auto_reset]`."""
    enabled: bool = True
    reset_delay_ms: float = 2000.0


@dataclass(frozen=True)
class AudioSettings:
    """Microphone capture settings from `[audio]`."""
    device_index: Optional[int] = None
    capture_sample_rate: int = 16000
    block_size: int = 1024
    channels: int = 1
    health_check_interval_ms: float = 5000.0


@dataclass(frozen=True)
class TranscriberSettings:
    """Streaming ASR endpoint and framing settings from `[transcriber]`."""
    url: str = "wss://rtasr.xfyun.cn/v1/ws"
    sample_rate: int = 16000
    frame_size: int = 1280
    vad_threshold: float = 0.005
    send_interval_ms: float = 40.0
    close_timeout_ms: float = 1500.0
    connect_timeout_ms: float = 10000.0


@dataclass(frozen=True)
class AutoStopSettings:
    """Transcription session deadlines from `[auto_stop]`."""
    enabled: bool = False
    silence_timeout_ms: float = 3000.0
    no_speech_timeout_ms: float = 5000.0
    max_duration_ms: float = 60000.0


@dataclass(frozen=True)
class PipelineSettings:
    """Wake-to-transcription wiring from `[pipeline]`."""
    auto_start_transcriber_on_wake: bool = True


@dataclass(frozen=True)
class AppConfig:
    """Complete typed runtime configuration loaded from `config.toml`."""
    wake_word: WakeWordSettings
    matching: MatchingSettings
    auto_reset: AutoResetSettings
    audio: AudioSettings
    transcriber: TranscriberSettings
    auto_stop: AutoStopSettings
    pipeline: PipelineSettings
    source_file: str


@dataclass(frozen=True)
class SecretConfig:
    """Environment-provided secrets kept out of `config.toml`."""
    asr_app_id: str
    asr_api_key: str

    def __repr__(self) -> str:
        return f"SecretConfig(asr_app_id={self.asr_app_id!r}, asr_api_key='***')"
