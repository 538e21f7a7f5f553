"""Fixed-size PCM16 framing of variable-size capture chunks."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_FRAME_SIZE_BYTES = 1280


@dataclass(frozen=True)
class AudioFrame:
    """PCM16 payload sent to the transport; the last frame may be short."""
    data: bytes
    is_last_frame: bool = False

    @property
    def sample_count(self) -> int:
        return len(self.data) // 2


class FrameAccumulator:
    """Buffers capture chunks and cuts them into `frame_size`-byte frames."""

    def __init__(self, frame_size: int = DEFAULT_FRAME_SIZE_BYTES):
        if frame_size <= 0 or frame_size % 2:
            raise ValueError("frame_size must be a positive, even number of bytes")
        self._frame_size = frame_size
        self._buffer = bytearray()

    @property
    def frame_size(self) -> int:
        return self._frame_size

    @property
    def pending_bytes(self) -> int:
        return len(self._buffer)

    def push(self, chunk: bytes) -> list[AudioFrame]:
        self._buffer.extend(chunk)
        frames: list[AudioFrame] = []
        while len(self._buffer) >= self._frame_size:
            frames.append(AudioFrame(bytes(self._buffer[: self._frame_size])))
            del self._buffer[: self._frame_size]
        return frames

    def flush(self) -> AudioFrame:
        """Emit whatever remains (possibly nothing) as the final frame."""
        frame = AudioFrame(bytes(self._buffer), is_last_frame=True)
        self._buffer.clear()
        return frame

    def clear(self) -> None:
        self._buffer.clear()
