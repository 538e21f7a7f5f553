import os
import sys
import tempfile
import textwrap
import unittest
from pathlib import Path
from unittest.mock import patch

from app_config import (
    AppConfigurationError,
    load_app_config,
    load_secret_config,
    resolve_config_path,
)

_MINIMAL_CONFIG = "[wake_word]\nphrases = ['hey robot']\nmodel_path = 'models/vosk'\n"


def _write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


class AppConfigLoadingTests(unittest.TestCase):
    def test_load_app_config_resolves_relative_paths(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            root = Path(temp_dir)
            config_path = root / "config.toml"
            _write_text(
                config_path,
                textwrap.dedent(
                    """
                    [wake_word]
                    phrases = ["小红", "hey robot"]
                    model_path = "models/vosk-small"
                    """
                ).strip(),
            )

            app_config = load_app_config(str(config_path))

            self.assertEqual(str(config_path), app_config.source_file)
            self.assertEqual(
                str((root / "models/vosk-small").resolve()),
                app_config.wake_word.model_path,
            )
            self.assertEqual(("小红", "hey robot"), app_config.wake_word.phrases)

    def test_load_app_config_applies_section_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(config_path, _MINIMAL_CONFIG)

            app_config = load_app_config(str(config_path))

            self.assertEqual(0.72, app_config.matching.partial_threshold)
            self.assertEqual(2, app_config.matching.required_consecutive_hits)
            self.assertTrue(app_config.auto_reset.enabled)
            self.assertEqual(2000.0, app_config.auto_reset.reset_delay_ms)
            self.assertIsNone(app_config.audio.device_index)
            self.assertEqual(1280, app_config.transcriber.frame_size)
            self.assertFalse(app_config.auto_stop.enabled)
            self.assertEqual(5000.0, app_config.auto_stop.no_speech_timeout_ms)
            self.assertTrue(app_config.pipeline.auto_start_transcriber_on_wake)

    def test_load_app_config_parses_overrides(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                _MINIMAL_CONFIG
                + textwrap.dedent(
                    """
                    [matching]
                    final_threshold = 0.9
                    required_near_miss_hits = 4

                    [audio]
                    device_index = 2
                    capture_sample_rate = 48000

                    [auto_stop]
                    enabled = true
                    silence_timeout_ms = 2500
                    """
                ),
            )

            app_config = load_app_config(str(config_path))

            self.assertEqual(0.9, app_config.matching.final_threshold)
            self.assertEqual(4, app_config.matching.required_near_miss_hits)
            self.assertEqual(2, app_config.audio.device_index)
            self.assertEqual(48000, app_config.audio.capture_sample_rate)
            self.assertTrue(app_config.auto_stop.enabled)
            self.assertEqual(2500.0, app_config.auto_stop.silence_timeout_ms)

    def test_load_app_config_requires_wake_phrases(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(config_path, "[wake_word]\nmodel_path = 'models/vosk'\n")

            with self.assertRaises(AppConfigurationError) as context:
                load_app_config(str(config_path))

            self.assertIn("wake_word.phrases", str(context.exception))

    def test_load_app_config_rejects_invalid_types(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                _MINIMAL_CONFIG + "\n[matching]\nrequired_consecutive_hits = true\n",
            )

            with self.assertRaises(AppConfigurationError) as context:
                load_app_config(str(config_path))

            self.assertIn("matching.required_consecutive_hits", str(context.exception))

    def test_load_app_config_rejects_secret_fields(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "config.toml"
            _write_text(
                config_path,
                _MINIMAL_CONFIG + '\n[transcriber]\napi_key = "private-key"\n',
            )

            with self.assertRaises(AppConfigurationError) as context:
                load_app_config(str(config_path))

            self.assertIn("transcriber.api_key", str(context.exception))

    def test_load_app_config_reports_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            with self.assertRaises(AppConfigurationError):
                load_app_config(str(Path(temp_dir) / "missing.toml"))

    def test_load_secret_config_requires_asr_credentials(self) -> None:
        with self.assertRaises(AppConfigurationError) as context:
            load_secret_config(environ={"ASR_APP_ID": "app"})

        self.assertIn("ASR_API_KEY", str(context.exception))

    def test_load_secret_config_strips_values_and_masks_key(self) -> None:
        secret_config = load_secret_config(
            environ={"ASR_APP_ID": "  app-1 ", "ASR_API_KEY": " secret "}
        )

        self.assertEqual("app-1", secret_config.asr_app_id)
        self.assertEqual("secret", secret_config.asr_api_key)
        self.assertNotIn("secret", repr(secret_config))

    def test_resolve_config_path_uses_executable_dir_fallback_in_frozen_mode(self) -> None:
        with tempfile.TemporaryDirectory() as cwd_dir, tempfile.TemporaryDirectory() as exe_dir:
            cwd = Path(cwd_dir)
            executable_dir_config = Path(exe_dir) / "config.toml"
            _write_text(executable_dir_config, _MINIMAL_CONFIG)
            executable = Path(exe_dir) / "main"

            with patch.dict(os.environ, {}, clear=True):
                with patch("app_config.Path.cwd", return_value=cwd):
                    with patch.object(sys, "frozen", True, create=True):
                        with patch.object(sys, "executable", str(executable), create=True):
                            resolved = resolve_config_path()

            self.assertEqual(executable_dir_config.resolve(), resolved)

    def test_resolve_config_path_prefers_environment_variable(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = Path(temp_dir) / "custom.toml"
            _write_text(config_path, _MINIMAL_CONFIG)

            with patch.dict(os.environ, {"APP_CONFIG_FILE": str(config_path)}, clear=True):
                resolved = resolve_config_path()

            self.assertEqual(config_path, resolved)


if __name__ == "__main__":
    unittest.main()
