import asyncio
import unittest

from audio import AudioResourceError, MicrophoneHub
from runtime import VoicePipeline
from scheduling import ManualScheduler
from transcription import AutoStopConfig, TranscriptionResult, TranscriptionSession, TransportError
from wake_word import WakeWordDetector


class _FakeTranscriber:
    def __init__(self) -> None:
        self.start_calls = 0
        self.stop_calls = 0
        self.start_error = None
        self.result_callback = None
        self.error_callback = None

    def on_result(self, callback) -> None:
        self.result_callback = callback

    def on_error(self, callback) -> None:
        self.error_callback = callback

    async def start(self) -> None:
        self.start_calls += 1
        if self.start_error is not None:
            raise self.start_error

    async def stop(self) -> None:
        self.stop_calls += 1

    def emit(self, transcript: str, is_final: bool) -> None:
        self.result_callback(TranscriptionResult(transcript=transcript, is_final=is_final))


class _FakeStream:
    def __init__(self, on_failure) -> None:
        self.on_failure = on_failure
        self.started = False
        self.closed = False

    @property
    def active(self) -> bool:
        return self.started and not self.closed

    def start(self) -> None:
        self.started = True

    def close(self) -> None:
        self.closed = True


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


class VoicePipelineTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.scheduler = ManualScheduler()
        self.transcriber = _FakeTranscriber()
        self.detector = WakeWordDetector(scheduler=self.scheduler)
        self.detector.set_wake_word("小红")
        self.session = TranscriptionSession(
            self.transcriber,
            scheduler=self.scheduler,
            auto_stop_config=AutoStopConfig(enabled=True, no_speech_timeout_ms=5000),
        )
        self.wake_statuses: list[str] = []
        self.transcripts: list[tuple[str, bool]] = []
        self.wakes: list[str] = []
        self.reasons: list[str] = []
        self.errors: list[Exception] = []

    def _pipeline(self, **kwargs) -> VoicePipeline:
        pipeline = VoicePipeline(self.detector, self.session, **kwargs)
        pipeline.on_wake(self.wakes.append)
        pipeline.on_transcript(lambda text, is_final, result: self.transcripts.append((text, is_final)))
        pipeline.on_wake_status_change(self.wake_statuses.append)
        pipeline.on_auto_stop(self.reasons.append)
        pipeline.on_error(self.errors.append)
        return pipeline

    async def test_wake_starts_transcription_and_forwards_transcripts(self) -> None:
        pipeline = self._pipeline()
        await pipeline.start()
        self.assertEqual("listening", pipeline.wake_status)

        self.assertTrue(self.detector.inspect("小红", True))
        await _settle()

        self.assertEqual(["小红"], self.wakes)
        self.assertEqual("woke", pipeline.wake_status)
        self.assertEqual("active", pipeline.transcriber_status)

        self.transcriber.emit("打开灯", True)
        self.assertEqual(("打开灯", True), self.transcripts[-1])
        await pipeline.stop()

    async def test_session_end_rearms_detector(self) -> None:
        pipeline = self._pipeline()
        await pipeline.start()
        self.detector.inspect("小红", True)
        await _settle()

        await pipeline.stop_transcriber()

        self.assertEqual(["listening", "woke", "listening"], self.wake_statuses)
        self.assertFalse(self.detector.matcher.state.triggered)
        self.assertTrue(self.detector.inspect("小红", True))
        await pipeline.stop()

    async def test_auto_stop_rearms_detector(self) -> None:
        pipeline = self._pipeline()
        await pipeline.start()
        self.detector.inspect("小红", True)
        await _settle()

        self.scheduler.advance(5000)
        await _settle()

        self.assertEqual(["no-speech"], self.reasons)
        self.assertEqual("listening", pipeline.wake_status)
        self.assertEqual("idle", pipeline.transcriber_status)
        await pipeline.stop()

    async def test_wake_without_auto_start_leaves_transcriber_idle(self) -> None:
        pipeline = self._pipeline(auto_start_transcriber_on_wake=False)
        await pipeline.start()

        self.detector.inspect("小红", True)
        await _settle()

        self.assertEqual("woke", pipeline.wake_status)
        self.assertEqual("idle", pipeline.transcriber_status)
        self.assertEqual(0, self.transcriber.start_calls)

        await pipeline.start_transcriber()
        self.assertEqual("active", pipeline.transcriber_status)
        await pipeline.stop()

    async def test_transcriber_start_failure_returns_to_listening(self) -> None:
        pipeline = self._pipeline()
        self.transcriber.start_error = TransportError("refused")
        await pipeline.start()

        self.detector.inspect("小红", True)
        await _settle()

        self.assertEqual(1, len(self.errors))
        self.assertEqual("listening", pipeline.wake_status)
        self.assertEqual("idle", pipeline.transcriber_status)
        await pipeline.stop()

    def _microphone(self) -> tuple[MicrophoneHub, list[_FakeStream]]:
        streams: list[_FakeStream] = []

        def factory(on_chunk, on_failure) -> _FakeStream:
            stream = _FakeStream(on_failure)
            streams.append(stream)
            return stream

        hub = MicrophoneHub(factory)
        hub.attach("meter", lambda chunk: None)
        return hub, streams

    async def test_microphone_loss_aborts_session_and_reports_error(self) -> None:
        hub, streams = self._microphone()
        pipeline = self._pipeline(microphone=hub)
        await pipeline.start()
        self.detector.inspect("小红", True)
        await _settle()
        self.assertEqual("active", pipeline.transcriber_status)

        failure = AudioResourceError("unplugged", kind="device-unavailable")
        with self.assertLogs("runtime.pipeline", level="WARNING") as logs:
            streams[0].on_failure(failure)
            await _settle()

        self.assertIn("device-unavailable", logs.output[0])
        self.assertEqual([failure], self.errors)
        self.assertEqual(1, self.transcriber.stop_calls)
        self.assertEqual("idle", pipeline.transcriber_status)
        self.assertEqual("listening", pipeline.wake_status)
        await pipeline.stop()

    async def test_microphone_loss_while_listening_is_only_reported(self) -> None:
        hub, streams = self._microphone()
        pipeline = self._pipeline(microphone=hub)
        await pipeline.start()

        streams[0].on_failure(AudioResourceError("denied", kind="permission-denied"))
        await _settle()

        self.assertEqual(1, len(self.errors))
        self.assertEqual(0, self.transcriber.stop_calls)
        self.assertEqual("listening", pipeline.wake_status)
        await pipeline.stop()

    async def test_stop_shuts_everything_down(self) -> None:
        pipeline = self._pipeline()
        await pipeline.start()
        self.detector.inspect("小红", True)
        await _settle()

        await pipeline.stop()

        self.assertEqual("idle", pipeline.wake_status)
        self.assertEqual("idle", pipeline.transcriber_status)
        self.assertFalse(self.detector.is_active)
        self.assertEqual(1, self.transcriber.stop_calls)


if __name__ == "__main__":
    unittest.main()
