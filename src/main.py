import asyncio
import logging
import signal
import sys
from typing import Optional

from app_config import (
    AppConfigurationError,
    load_app_config,
    load_secret_config,
    resolve_config_path,
)
from audio import AudioConfig, AudioConfigurationError, MicrophoneHub
from audio.capture import sounddevice_stream_factory
from matching import MatcherConfig, MatcherConfigurationError
from runtime import VoicePipeline
from scheduling import AsyncioScheduler
from transcription import (
    AutoStopConfig,
    StreamingTranscriber,
    TranscriberConfig,
    TranscriberConfigurationError,
    TranscriptionResult,
    TranscriptionSession,
)
from wake_word import (
    AutoResetConfig,
    WakeWordConfig,
    WakeWordConfigurationError,
    WakeWordDetector,
)
from wake_word.recognizer import VoskRecognizer, clear_model_cache

_CONFIGURATION_ERRORS = (
    AudioConfigurationError,
    MatcherConfigurationError,
    TranscriberConfigurationError,
    WakeWordConfigurationError,
)


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("voice_app")


def install_signal_handlers(stop_event: asyncio.Event, logger: logging.Logger) -> None:
    """Set up graceful shutdown on SIGTERM and SIGINT."""
    loop = asyncio.get_running_loop()

    def request_stop(signum: int) -> None:
        logger.info("%s received, stopping...", signal.Signals(signum).name)
        stop_event.set()

    for signum in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(signum, request_stop, signum)
        except NotImplementedError:  # pragma: no cover - Windows event loops
            signal.signal(signum, lambda received, _frame: loop.call_soon_threadsafe(request_stop, received))


async def run(logger: logging.Logger) -> int:
    try:
        config_path = resolve_config_path()
        app_config = load_app_config(str(config_path))
        secret_config = load_secret_config()
        logger.info("Loaded runtime config: %s", config_path)
    except AppConfigurationError as error:
        logger.error("App configuration error: %s", error)
        return 1

    try:
        wake_word_config = WakeWordConfig.from_settings(app_config.wake_word)
        matcher_config = MatcherConfig.from_settings(app_config.matching)
        auto_reset_config = AutoResetConfig.from_settings(app_config.auto_reset)
        audio_config = AudioConfig.from_settings(
            app_config.audio,
            target_sample_rate=wake_word_config.sample_rate,
        )
        transcriber_config = TranscriberConfig.from_settings(
            app_config.transcriber,
            app_id=secret_config.asr_app_id,
            api_key=secret_config.asr_api_key,
        )
        auto_stop_config = AutoStopConfig.from_settings(app_config.auto_stop)
    except _CONFIGURATION_ERRORS as error:
        logger.error("Configuration error: %s", error)
        return 1

    if transcriber_config.sample_rate != audio_config.target_sample_rate:
        logger.error(
            "transcriber.sample_rate (%d) must match wake_word.sample_rate (%d)",
            transcriber_config.sample_rate,
            audio_config.target_sample_rate,
        )
        return 1

    scheduler = AsyncioScheduler(logger=logging.getLogger("scheduling"))
    hub = MicrophoneHub(
        sounddevice_stream_factory(audio_config, logger=logging.getLogger("audio.capture")),
        scheduler=scheduler,
        health_check_interval_ms=audio_config.health_check_interval_ms,
        logger=logging.getLogger("audio.hub"),
    )

    detector = WakeWordDetector(
        recognizer_factory=lambda: VoskRecognizer(
            wake_word_config.model_path,
            wake_word_config.sample_rate,
            use_partial=wake_word_config.use_partial,
        ),
        audio_source=hub,
        scheduler=scheduler,
        matcher_config=matcher_config,
        auto_reset_config=auto_reset_config,
        logger=logging.getLogger("wake_word"),
    )
    detector.set_wake_words(wake_word_config.phrases)

    transcriber = StreamingTranscriber(
        transcriber_config,
        hub,
        scheduler=scheduler,
        logger=logging.getLogger("transcription.transcriber"),
    )
    session = TranscriptionSession(
        transcriber,
        scheduler=scheduler,
        auto_stop_config=auto_stop_config,
        logger=logging.getLogger("transcription.session"),
    )
    pipeline = VoicePipeline(
        detector,
        session,
        auto_start_transcriber_on_wake=app_config.pipeline.auto_start_transcriber_on_wake,
        microphone=hub,
        logger=logging.getLogger("runtime.pipeline"),
    )

    stop_event = asyncio.Event()
    fatal_error: Optional[Exception] = None

    def on_wake(phrase: str) -> None:
        print(f"\n🎤 Wake word detected: {phrase}\n")

    def on_transcript(text: str, is_final: bool, _result: TranscriptionResult) -> None:
        if is_final:
            print(f'  💬 "{text}"\n')
        else:
            logger.debug("Partial transcript: %s", text)

    def on_error(error: Exception) -> None:
        logger.error("Pipeline error: %s", error)

    pipeline.on_wake(on_wake)
    pipeline.on_transcript(on_transcript)
    pipeline.on_error(on_error)
    pipeline.on_auto_stop(lambda reason: logger.info("Transcription auto-stopped (%s)", reason))

    install_signal_handlers(stop_event, logger)

    try:
        logger.info("Starting wake word detection...")
        await pipeline.start()
        logger.info(
            "Ready! Listening for wake word: %s",
            ", ".join(wake_word_config.phrases),
        )
        await stop_event.wait()
    except Exception as error:
        fatal_error = error
        logger.error("Unexpected error: %s", error, exc_info=True)
    finally:
        await pipeline.stop()
        hub.close()
        clear_model_cache()
        logger.info("Shutdown complete")

    return 1 if fatal_error is not None else 0


def main() -> int:
    """Run the wake word and transcription pipeline."""
    logger = setup_logging(level=logging.INFO)
    try:
        return asyncio.run(run(logger))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by keyboard interrupt.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
