import asyncio
import json
import unittest

from audio import END_OF_STREAM_MARKER, AudioChunk
from scheduling import ManualScheduler
from transcription import StreamingTranscriber, TranscriberConfig, TransportError


class _FakeTransport:
    def __init__(self) -> None:
        self.sent: list[object] = []
        self.start_error = None
        self.started = False
        self.start_gate: asyncio.Event | None = None
        self.stop_gate: asyncio.Event | None = None
        self.stop_calls = 0
        self.message_callback = None
        self.error_callback = None
        self.close_callback = None

    def on_message(self, callback) -> None:
        self.message_callback = callback

    def on_error(self, callback) -> None:
        self.error_callback = callback

    def on_close(self, callback) -> None:
        self.close_callback = callback

    async def start(self) -> None:
        if self.start_gate is not None:
            await self.start_gate.wait()
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def stop(self) -> None:
        self.stop_calls += 1
        if self.stop_gate is not None:
            await self.stop_gate.wait()
        self.started = False

    def send(self, payload) -> None:
        self.sent.append(payload)


class _FakeAudioSource:
    def __init__(self) -> None:
        self.subscribers: dict[str, object] = {}

    def attach(self, name: str, callback) -> None:
        self.subscribers[name] = callback

    def detach(self, name: str) -> None:
        self.subscribers.pop(name, None)

    def emit(self, pcm: bytes, rms: float) -> None:
        for callback in list(self.subscribers.values()):
            callback(AudioChunk(pcm=pcm, rms=rms, timestamp_ms=0.0))


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def _result(text: str, segment_type: int) -> str:
    data = {"cn": {"st": {"type": str(segment_type), "rt": [{"ws": [{"cw": [{"w": text}]}]}]}}}
    return json.dumps({"action": "result", "code": "0", "data": json.dumps(data)})


class StreamingTranscriberTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.scheduler = ManualScheduler()
        self.audio = _FakeAudioSource()
        self.transports: list[_FakeTransport] = []
        self.next_start_error = None
        self.next_start_gate = None
        self.config = TranscriberConfig(app_id="app", api_key="key", frame_size=4)
        self.transcriber = StreamingTranscriber(
            self.config,
            self.audio,
            transport_factory=self._make_transport,
            scheduler=self.scheduler,
        )
        self.results = []
        self.errors: list[Exception] = []
        self.transcriber.on_result(self.results.append)
        self.transcriber.on_error(self.errors.append)

    def _make_transport(self, config) -> _FakeTransport:
        transport = _FakeTransport()
        transport.start_error = self.next_start_error
        transport.start_gate = self.next_start_gate
        self.transports.append(transport)
        return transport

    async def _stop(self) -> None:
        task = asyncio.create_task(self.transcriber.stop())
        await _settle()
        self.scheduler.advance(1000)
        await task

    async def test_start_connects_then_subscribes_to_microphone(self) -> None:
        await self.transcriber.start()

        self.assertTrue(self.transports[0].started)
        self.assertIn("transcriber", self.audio.subscribers)
        self.assertTrue(self.transcriber.is_streaming)

    async def test_only_voiced_frames_are_streamed(self) -> None:
        await self.transcriber.start()

        self.audio.emit(b"\x01\x00\x02\x00", rms=0.2)
        self.audio.emit(b"\x00\x00\x00\x00", rms=0.0)

        self.assertEqual([b"\x01\x00\x02\x00"], self.transports[0].sent)

    async def test_stop_sends_last_frame_then_end_marker(self) -> None:
        await self.transcriber.start()
        self.audio.emit(b"\x01\x00\x02\x00\x03\x00", rms=0.2)

        await self._stop()

        transport = self.transports[0]
        self.assertEqual([b"\x01\x00\x02\x00", b"\x03\x00", END_OF_STREAM_MARKER], transport.sent)
        self.assertEqual(1, transport.stop_calls)
        self.assertEqual({}, self.audio.subscribers)
        self.assertFalse(self.transcriber.is_streaming)

    async def test_stop_without_remainder_sends_only_end_marker(self) -> None:
        await self.transcriber.start()

        await self._stop()

        self.assertEqual([END_OF_STREAM_MARKER], self.transports[0].sent)

    async def test_server_results_are_forwarded(self) -> None:
        await self.transcriber.start()

        self.transports[0].message_callback(_result("你好", 1))
        self.transports[0].message_callback(_result("你好", 0))

        self.assertEqual(
            [("你好", False), ("你好", False), ("你好", True)],
            [(result.transcript, result.is_final) for result in self.results],
        )

    async def test_malformed_message_is_dropped(self) -> None:
        await self.transcriber.start()

        with self.assertLogs("transcription.transcriber", level="WARNING"):
            self.transports[0].message_callback("garbage")

        self.assertEqual([], self.errors)
        self.assertTrue(self.transcriber.is_streaming)

    async def test_server_error_aborts_stream(self) -> None:
        await self.transcriber.start()

        self.transports[0].message_callback('{"action": "error", "code": "10105", "desc": "bad key"}')
        await _settle()

        self.assertEqual(1, len(self.errors))
        self.assertIsInstance(self.errors[0], TransportError)
        self.assertEqual({}, self.audio.subscribers)
        self.assertEqual(1, self.transports[0].stop_calls)
        self.assertFalse(self.transcriber.is_streaming)

    async def test_unexpected_close_is_reported_once(self) -> None:
        await self.transcriber.start()

        self.transports[0].error_callback(TransportError("lost"))
        self.transports[0].close_callback()
        await _settle()

        self.assertEqual(1, len(self.errors))

    async def test_start_failure_cleans_up(self) -> None:
        self.next_start_error = TransportError("refused")

        with self.assertRaises(TransportError):
            await self.transcriber.start()

        self.assertEqual({}, self.audio.subscribers)
        self.assertFalse(self.transcriber.is_streaming)

    async def test_stop_while_connecting_closes_late_connection(self) -> None:
        self.next_start_gate = asyncio.Event()
        start = asyncio.create_task(self.transcriber.start())
        await _settle()

        await self._stop()
        self.next_start_gate.set()
        await start

        transport = self.transports[0]
        self.assertFalse(transport.started)
        self.assertEqual(2, transport.stop_calls)
        self.assertEqual({}, self.audio.subscribers)
        self.assertFalse(self.transcriber.is_streaming)

    async def test_restart_while_aborted_connection_is_closing(self) -> None:
        await self.transcriber.start()
        old = self.transports[0]
        old.stop_gate = asyncio.Event()
        old.error_callback(TransportError("lost"))
        await _settle()
        self.assertEqual({}, self.audio.subscribers)

        await self.transcriber.start()

        self.assertEqual(2, len(self.transports))
        self.assertTrue(self.transports[1].started)
        self.assertIn("transcriber", self.audio.subscribers)
        self.assertTrue(self.transcriber.is_streaming)

        old.stop_gate.set()
        old.close_callback()
        await _settle()

        self.assertEqual(1, old.stop_calls)
        self.assertEqual(1, len(self.errors))
        self.assertIn("transcriber", self.audio.subscribers)
        self.assertTrue(self.transcriber.is_streaming)

        self.audio.emit(b"\x01\x00\x02\x00", rms=0.2)
        self.assertEqual([b"\x01\x00\x02\x00"], self.transports[1].sent)
        self.assertEqual([], old.sent)
        await self._stop()

    async def test_can_restart_with_fresh_transport(self) -> None:
        await self.transcriber.start()
        await self._stop()

        await self.transcriber.start()

        self.assertEqual(2, len(self.transports))
        self.assertTrue(self.transports[1].started)
        await self._stop()


if __name__ == "__main__":
    unittest.main()
