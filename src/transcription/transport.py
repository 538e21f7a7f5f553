"""Realtime ASR websocket transport and server message decoding."""

from __future__ import annotations

import asyncio
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Any, Callable, Optional
from urllib.parse import urlencode

import websockets
from websockets.asyncio.client import ClientConnection, connect

from .config import TranscriberConfig
from .contracts import Payload
from .errors import MessageParseError, TransportError
from .events import TranscriptionResult

_CLOSE = object()

MessageCallback = Callable[[str], None]
ErrorCallback = Callable[[Exception], None]
CloseCallback = Callable[[], None]


def build_signed_url(base_url: str, app_id: str, api_key: str, timestamp: int) -> str:
    """Append `appid`, `ts` and `signa` query parameters.

    `signa` is base64(HMAC-SHA1(api_key, md5_hex(app_id + ts))).
    """
    base_string = hashlib.md5(f"{app_id}{timestamp}".encode("utf-8")).hexdigest()
    digest = hmac.new(
        api_key.encode("utf-8"),
        base_string.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    signa = base64.b64encode(digest).decode("ascii")
    query = urlencode({"appid": app_id, "ts": timestamp, "signa": signa})
    return f"{base_url}?{query}"


def decode_message(raw: str) -> dict[str, Any]:
    try:
        message = json.loads(raw)
    except (TypeError, ValueError) as error:
        raise MessageParseError(f"Server message is not JSON: {raw!r}") from error
    if not isinstance(message, dict):
        raise MessageParseError(f"Server message is not an object: {raw!r}")
    return message


def _is_error_code(code: Any) -> bool:
    return code not in (None, "", 0, "0")


class ResultAssembler:
    """Turns `action=result` messages into partial and final transcripts.

    Committed segments (`type == 0`) accumulate across the session; every
    result yields a partial of committed text plus the current hypothesis,
    and a final when the segment is committed or `segment_end` is set.
    """

    def __init__(self) -> None:
        self._committed = ""

    @property
    def committed(self) -> str:
        return self._committed

    def reset(self) -> None:
        self._committed = ""

    def feed(self, raw: str) -> list[TranscriptionResult]:
        """Decode one server message.

        Raises:
            MessageParseError: If the message or its result payload is malformed.
            TransportError: If the server reports an error.
        """
        message = decode_message(raw)
        action = message.get("action")

        if action == "error" or _is_error_code(message.get("code")):
            description = message.get("desc") or message.get("message") or raw
            raise TransportError(f"ASR server error: {description}", code=message.get("code"))
        if action != "result":
            return []

        text, segment_type = self._extract(message.get("data"))
        committed = segment_type == 0
        if committed:
            self._committed += text

        hypothesis = self._committed if committed else self._committed + text
        results = [TranscriptionResult(transcript=hypothesis, is_final=False)]
        if committed or message.get("segment_end"):
            results.append(TranscriptionResult(transcript=self._committed, is_final=True))
        return results

    @staticmethod
    def _extract(data: Any) -> tuple[str, Optional[int]]:
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError as error:
                raise MessageParseError("Result payload is not JSON") from error
        try:
            sentence = data["cn"]["st"]
            words = [
                candidate["w"]
                for rt in sentence["rt"]
                for ws in rt["ws"]
                for candidate in ws["cw"]
            ]
        except (KeyError, TypeError) as error:
            raise MessageParseError(f"Unexpected result payload: {error}") from error

        raw_type = sentence.get("type")
        try:
            segment_type = int(raw_type) if raw_type is not None else None
        except (TypeError, ValueError):
            segment_type = None
        return "".join(str(word) for word in words), segment_type


class RealtimeASRTransport:
    """Websocket client with independent reader and writer tasks.

    `send()` never blocks: payloads are queued and written in order by the
    writer task. Callbacks run on the event loop.
    """

    def __init__(
        self,
        config: TranscriberConfig,
        *,
        connect_fn: Callable[..., Any] = connect,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._connect = connect_fn
        self._clock = clock
        self._logger = logger or logging.getLogger("transcription.transport")

        self._connection: Optional[ClientConnection] = None
        self._outbound: Optional[asyncio.Queue[Any]] = None
        self._reader_task: Optional[asyncio.Task[None]] = None
        self._writer_task: Optional[asyncio.Task[None]] = None
        self._closing = False

        self._message_callback: Optional[MessageCallback] = None
        self._error_callback: Optional[ErrorCallback] = None
        self._close_callback: Optional[CloseCallback] = None

    @property
    def is_open(self) -> bool:
        return self._connection is not None and not self._closing

    def on_message(self, callback: MessageCallback) -> None:
        self._message_callback = callback

    def on_error(self, callback: ErrorCallback) -> None:
        self._error_callback = callback

    def on_close(self, callback: CloseCallback) -> None:
        self._close_callback = callback

    async def start(self) -> None:
        if self._connection is not None:
            return
        url = build_signed_url(
            self._config.url,
            self._config.app_id,
            self._config.api_key,
            int(self._clock()),
        )
        self._closing = False
        try:
            self._connection = await asyncio.wait_for(
                self._connect(url),
                timeout=self._config.connect_timeout_ms / 1000.0,
            )
        except asyncio.TimeoutError as error:
            raise TransportError("Timed out connecting to ASR service") from error
        except (OSError, websockets.exceptions.WebSocketException) as error:
            raise TransportError(f"Failed to connect to ASR service: {error}") from error

        self._outbound = asyncio.Queue()
        self._reader_task = asyncio.create_task(self._read_loop(self._connection))
        self._writer_task = asyncio.create_task(
            self._write_loop(self._connection, self._outbound)
        )
        self._logger.info("Connected to ASR service at %s", self._config.url)

    def send(self, payload: Payload) -> None:
        if not self.is_open or self._outbound is None:
            self._logger.debug("Dropping payload; ASR connection is not open")
            return
        self._outbound.put_nowait(payload)

    async def stop(self) -> None:
        connection = self._connection
        if connection is None:
            return
        self._closing = True

        if self._outbound is not None:
            self._outbound.put_nowait(_CLOSE)
        writer = self._writer_task
        if writer is not None:
            try:
                await asyncio.wait_for(writer, timeout=self._config.close_timeout_ms / 1000.0)
            except asyncio.TimeoutError:
                self._logger.warning("ASR writer did not flush before close")
            except Exception:
                self._logger.debug("ASR writer ended with an error", exc_info=True)

        try:
            await connection.close()
        except Exception as error:
            self._logger.warning("Error closing ASR connection: %s", error)

        tasks = [task for task in (self._reader_task, self._writer_task) if task is not None]
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self._connection = None
        self._outbound = None
        self._reader_task = None
        self._writer_task = None
        self._logger.info("ASR connection closed")

    async def _read_loop(self, connection: ClientConnection) -> None:
        try:
            async for message in connection:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                if self._message_callback is not None:
                    try:
                        self._message_callback(message)
                    except Exception:
                        self._logger.error("ASR message handler failed", exc_info=True)
        except websockets.exceptions.ConnectionClosedOK:
            pass
        except websockets.exceptions.ConnectionClosed as error:
            if not self._closing:
                self._emit_error(TransportError(f"ASR connection lost: {error}"))
        finally:
            if not self._closing:
                self._closing = True
                if self._close_callback is not None:
                    try:
                        self._close_callback()
                    except Exception:
                        self._logger.error("ASR close handler failed", exc_info=True)

    async def _write_loop(
        self,
        connection: ClientConnection,
        outbound: "asyncio.Queue[Any]",
    ) -> None:
        while True:
            payload = await outbound.get()
            if payload is _CLOSE:
                return
            try:
                await connection.send(payload)
            except websockets.exceptions.ConnectionClosed as error:
                if not self._closing:
                    self._emit_error(TransportError(f"ASR send failed: {error}"))
                return

    def _emit_error(self, error: Exception) -> None:
        self._logger.error("ASR transport error: %s", error)
        if self._error_callback is not None:
            try:
                self._error_callback(error)
            except Exception:
                self._logger.error("ASR error handler failed", exc_info=True)
