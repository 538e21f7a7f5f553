"""Diagnostic tool to help tune wake-phrase matching thresholds.

Replays recognizer text through the matcher and prints per-phrase scores.
Each input line is a partial hypothesis; prefix a line with ``!`` to send it
as a final result. Lines come from the files given on the command line, or
from stdin when none are given.
"""

import argparse
import fileinput
import logging
import sys

from app_config import AppConfigurationError, load_app_config, resolve_config_path
from matching import (
    MatcherConfig,
    MatcherConfigurationError,
    TextEvent,
    WakePhraseMatcher,
    normalize,
    score_candidate,
)

FINAL_PREFIX = "!"


def setup_logging(verbose: bool):
    """Configure console logging for the diagnostic tool."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("files", nargs="*", help="transcript files (default: stdin)")
    parser.add_argument(
        "--step-ms",
        type=float,
        default=200.0,
        help="simulated time between lines (default: 200)",
    )
    parser.add_argument(
        "--rearm",
        action="store_true",
        help="reset the matcher after every wake so later lines are scored too",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="show matcher debug logs")
    return parser.parse_args(argv)


def main(argv=None):
    """Score transcript lines against the configured wake phrases."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        app_config = load_app_config(str(resolve_config_path()))
        config = MatcherConfig.from_settings(app_config.matching)
    except (AppConfigurationError, MatcherConfigurationError) as e:
        print(f"Error: {e}")
        return 1

    matcher = WakePhraseMatcher(app_config.wake_word.phrases, config=config)
    if not matcher.phrases:
        print("Error: no usable wake phrases configured")
        return 1

    print("=== Wake Phrase Match Diagnostic ===\n")
    for phrase in matcher.phrases:
        print(f"  phrase: {phrase.raw!r} -> {phrase.normalized!r} / {phrase.phonetic!r}")
    print(
        f"\n  thresholds: partial={config.partial_threshold:.2f} "
        f"final={config.final_threshold:.2f} slack={config.near_miss_slack:.2f}\n"
    )

    timestamp_ms = 0.0
    wakes = 0
    for line in fileinput.input(files=args.files or ("-",), encoding="utf-8"):
        text = line.rstrip("\n")
        if not text.strip():
            continue
        is_final = text.startswith(FINAL_PREFIX)
        if is_final:
            text = text[len(FINAL_PREFIX):]

        timestamp_ms += args.step_ms
        normalized = normalize(text)
        scores = ", ".join(
            f"{phrase.raw}={score_candidate(normalized, phrase.normalized, phrase.phonetic, weights=config.weights):.3f}"
            for phrase in matcher.phrases
        )
        decision = matcher.process(TextEvent(text=text, is_final=is_final, timestamp_ms=timestamp_ms))
        state = matcher.state
        kind = "final  " if is_final else "partial"
        print(
            f"[{timestamp_ms:8.0f}ms] {kind} {text!r}: {scores} "
            f"(hits={state.consecutive_hits} near={state.near_miss_hits} "
            f"buffer={state.partial_buffer!r})"
        )

        if decision is not None:
            wakes += 1
            print(f"  🎤 WAKE -> {decision.phrase} (score={decision.score:.3f})")
            if args.rearm:
                matcher.reset(keep_refractory=True)

    print(f"\n📊 {wakes} wake(s) detected")
    return 0


if __name__ == "__main__":
    sys.exit(main())
