"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional

from app_config_schema import (
    AppConfig,
    AppConfigurationError,
    AudioSettings,
    AutoResetSettings,
    AutoStopSettings,
    MatchingSettings,
    PipelineSettings,
    TranscriberSettings,
    WakeWordSettings,
)

_MATCHING_FLOAT_FIELDS = (
    "partial_threshold",
    "final_threshold",
    "near_miss_slack",
    "refractory_ms",
    "max_loudness_relaxation",
    "loudness_floor",
    "confident_loudness",
    "loudness_window_ms",
    "levenshtein_weight",
    "lcs_weight",
    "bigram_weight",
    "phonetic_strong_threshold",
    "phonetic_strong_text_weight",
    "phonetic_blend_threshold",
    "phonetic_blend_text_weight",
)
_MATCHING_INT_FIELDS = (
    "required_consecutive_hits",
    "required_near_miss_hits",
    "partial_buffer_max_chars",
)


def parse_app_config(
    raw: Mapping[str, Any],
    *,
    base_dir: Path,
    source_file: str,
) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    return AppConfig(
        wake_word=_parse_wake_word_settings(_section(raw, "wake_word"), base_dir=base_dir),
        matching=_parse_matching_settings(_section(raw, "matching")),
        auto_reset=_parse_auto_reset_settings(_section(raw, "auto_reset")),
        audio=_parse_audio_settings(_section(raw, "audio")),
        transcriber=_parse_transcriber_settings(_section(raw, "transcriber")),
        auto_stop=_parse_auto_stop_settings(_section(raw, "auto_stop")),
        pipeline=_parse_pipeline_settings(_section(raw, "pipeline")),
        source_file=source_file,
    )


def _parse_wake_word_settings(
    section: Mapping[str, Any],
    *,
    base_dir: Path,
) -> WakeWordSettings:
    phrases = _as_str_list(section.get("phrases"), "wake_word.phrases")
    if not phrases:
        raise AppConfigurationError("wake_word.phrases is required.")
    model_path = _required_str(section, "model_path", "wake_word")
    return WakeWordSettings(
        phrases=phrases,
        model_path=_resolve_path(base_dir, model_path),
        sample_rate=_as_int(section.get("sample_rate", 16000), "wake_word.sample_rate"),
        use_partial=_as_bool(section.get("use_partial", True), "wake_word.use_partial"),
        validate_paths=_as_bool(
            section.get("validate_paths", True),
            "wake_word.validate_paths",
        ),
    )


def _parse_matching_settings(section: Mapping[str, Any]) -> MatchingSettings:
    defaults = MatchingSettings()
    values: dict[str, Any] = {}
    for name in _MATCHING_FLOAT_FIELDS:
        values[name] = _as_float(section.get(name, getattr(defaults, name)), f"matching.{name}")
    for name in _MATCHING_INT_FIELDS:
        values[name] = _as_int(section.get(name, getattr(defaults, name)), f"matching.{name}")
    return MatchingSettings(**values)


def _parse_auto_reset_settings(section: Mapping[str, Any]) -> AutoResetSettings:
    return AutoResetSettings(
        enabled=_as_bool(section.get("enabled", True), "auto_reset.enabled"),
        reset_delay_ms=_as_float(
            section.get("reset_delay_ms", 2000.0),
            "auto_reset.reset_delay_ms",
        ),
    )


def _parse_audio_settings(section: Mapping[str, Any]) -> AudioSettings:
    return AudioSettings(
        device_index=_as_optional_int(section.get("device_index"), "audio.device_index"),
        capture_sample_rate=_as_int(
            section.get("capture_sample_rate", 16000),
            "audio.capture_sample_rate",
        ),
        block_size=_as_int(section.get("block_size", 1024), "audio.block_size"),
        channels=_as_int(section.get("channels", 1), "audio.channels"),
        health_check_interval_ms=_as_float(
            section.get("health_check_interval_ms", 5000.0),
            "audio.health_check_interval_ms",
        ),
    )


def _parse_transcriber_settings(section: Mapping[str, Any]) -> TranscriberSettings:
    _forbid_secret_fields(section, "transcriber", ("app_id", "api_key"))
    return TranscriberSettings(
        url=_as_str(section.get("url", "wss://rtasr.xfyun.cn/v1/ws"), "transcriber.url"),
        sample_rate=_as_int(section.get("sample_rate", 16000), "transcriber.sample_rate"),
        frame_size=_as_int(section.get("frame_size", 1280), "transcriber.frame_size"),
        vad_threshold=_as_float(
            section.get("vad_threshold", 0.005),
            "transcriber.vad_threshold",
        ),
        send_interval_ms=_as_float(
            section.get("send_interval_ms", 40.0),
            "transcriber.send_interval_ms",
        ),
        close_timeout_ms=_as_float(
            section.get("close_timeout_ms", 1500.0),
            "transcriber.close_timeout_ms",
        ),
        connect_timeout_ms=_as_float(
            section.get("connect_timeout_ms", 10000.0),
            "transcriber.connect_timeout_ms",
        ),
    )


def _parse_auto_stop_settings(section: Mapping[str, Any]) -> AutoStopSettings:
    return AutoStopSettings(
        enabled=_as_bool(section.get("enabled", False), "auto_stop.enabled"),
        silence_timeout_ms=_as_float(
            section.get("silence_timeout_ms", 3000.0),
            "auto_stop.silence_timeout_ms",
        ),
        no_speech_timeout_ms=_as_float(
            section.get("no_speech_timeout_ms", 5000.0),
            "auto_stop.no_speech_timeout_ms",
        ),
        max_duration_ms=_as_float(
            section.get("max_duration_ms", 60000.0),
            "auto_stop.max_duration_ms",
        ),
    )


def _parse_pipeline_settings(section: Mapping[str, Any]) -> PipelineSettings:
    return PipelineSettings(
        auto_start_transcriber_on_wake=_as_bool(
            section.get("auto_start_transcriber_on_wake", True),
            "pipeline.auto_start_transcriber_on_wake",
        ),
    )


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _required_str(section: Mapping[str, Any], field: str, section_name: str) -> str:
    value = section.get(field)
    text = _as_str(value, f"{section_name}.{field}")
    if not text:
        raise AppConfigurationError(f"{section_name}.{field} is required.")
    return text


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_str_list(value: Any, field: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        items = [value]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise AppConfigurationError(f"{field} must be a string or a list of strings.")
    texts = [_as_str(item, field) for item in items]
    return tuple(text for text in texts if text)


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        base = 16 if text.startswith("0x") else 10
        try:
            return int(text, base)
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_optional_int(value: Any, field: str) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return _as_int(value, field)


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")


def _resolve_path(base_dir: Path, raw: str) -> str:
    if not raw:
        return ""
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def _forbid_secret_fields(
    section: Mapping[str, Any],
    section_name: str,
    fields: tuple[str, ...],
) -> None:
    present = [field for field in fields if field in section]
    if present:
        joined = ", ".join(f"{section_name}.{field}" for field in present)
        raise AppConfigurationError(
            f"Secret values must not be stored in config.toml: {joined}. "
            "Move them to environment variables."
        )
