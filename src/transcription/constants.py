"""Status, reason and default constants for transcription sessions."""

from __future__ import annotations

STATUS_IDLE = "idle"
STATUS_STARTING = "starting"
STATUS_ACTIVE = "active"
STATUS_PROCESSING = "processing"
STATUS_STOPPING = "stopping"

RUNNING_STATUSES: frozenset[str] = frozenset({STATUS_ACTIVE, STATUS_PROCESSING})

REASON_SILENCE = "silence"
REASON_NO_SPEECH = "no-speech"
REASON_MAX_DURATION = "max-duration"

DEFAULT_AUTO_STOP_ENABLED = False
DEFAULT_SILENCE_TIMEOUT_MS = 3000.0
DEFAULT_NO_SPEECH_TIMEOUT_MS = 5000.0
DEFAULT_MAX_DURATION_MS = 60000.0

DEFAULT_ASR_URL = "wss://rtasr.xfyun.cn/v1/ws"
DEFAULT_SAMPLE_RATE = 16000
DEFAULT_FRAME_SIZE_BYTES = 1280
DEFAULT_VAD_THRESHOLD = 0.005
DEFAULT_SEND_INTERVAL_MS = 40.0
DEFAULT_CLOSE_TIMEOUT_MS = 1500.0
DEFAULT_CONNECT_TIMEOUT_MS = 10000.0
