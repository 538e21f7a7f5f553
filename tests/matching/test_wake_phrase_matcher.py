import unittest

from matching import MatcherConfig, MatcherConfigurationError, TextEvent, WakePhraseMatcher


def _partial(text: str, timestamp_ms: float = 0.0) -> TextEvent:
    return TextEvent(text=text, is_final=False, timestamp_ms=timestamp_ms)


def _final(text: str, timestamp_ms: float = 0.0) -> TextEvent:
    return TextEvent(text=text, is_final=True, timestamp_ms=timestamp_ms)


class WakePhraseMatcherTests(unittest.TestCase):
    def test_growing_partials_trigger_after_two_hits(self) -> None:
        matcher = WakePhraseMatcher(["小红"])

        self.assertIsNone(matcher.process(_partial("小", 0)))
        self.assertEqual(0, matcher.state.consecutive_hits)

        self.assertIsNone(matcher.process(_partial("小红", 200)))
        self.assertEqual(1, matcher.state.consecutive_hits)
        self.assertEqual("小小红", matcher.state.partial_buffer)

        decision = matcher.process(_partial("小红", 400))

        self.assertIsNotNone(decision)
        self.assertEqual("小红", decision.phrase)
        self.assertAlmostEqual(1.0, decision.score)
        self.assertEqual(400, decision.timestamp_ms)
        self.assertTrue(matcher.state.triggered)

    def test_one_hit_short_of_requirement_does_not_trigger(self) -> None:
        matcher = WakePhraseMatcher(
            ["hey robot"],
            config=MatcherConfig(required_consecutive_hits=3),
        )

        self.assertIsNone(matcher.process(_partial("hey robot", 0)))
        self.assertIsNone(matcher.process(_partial("hey robot", 100)))
        self.assertEqual(2, matcher.state.consecutive_hits)
        self.assertIsNotNone(matcher.process(_partial("hey robot", 200)))

    def test_final_event_triggers_on_single_score(self) -> None:
        matcher = WakePhraseMatcher(["hey robot"])

        decision = matcher.process(_final("Hey, robot!", 50))

        self.assertIsNotNone(decision)
        self.assertEqual("hey robot", decision.phrase)
        self.assertEqual("", matcher.state.partial_buffer)

    def test_final_below_threshold_decays_counters_and_clears_buffer(self) -> None:
        matcher = WakePhraseMatcher(
            ["hey robot"],
            config=MatcherConfig(required_consecutive_hits=3),
        )
        matcher.process(_partial("hey robot", 0))
        matcher.process(_partial("hey robot", 100))

        self.assertIsNone(matcher.process(_final("good morning", 200)))

        self.assertEqual(1, matcher.state.consecutive_hits)
        self.assertEqual("", matcher.state.partial_buffer)

    def test_near_misses_trigger_after_required_count(self) -> None:
        config = MatcherConfig(
            partial_threshold=0.9,
            final_threshold=0.95,
            near_miss_slack=0.2,
        )
        matcher = WakePhraseMatcher(["abcdefgh"], config=config)

        self.assertIsNone(matcher.process(_partial("abcdefgx", 0)))
        self.assertIsNone(matcher.process(_partial("abcdefgx", 100)))
        self.assertEqual(2, matcher.state.near_miss_hits)
        self.assertEqual(0, matcher.state.consecutive_hits)

        decision = matcher.process(_partial("abcdefgx", 200))

        self.assertIsNotNone(decision)
        self.assertLess(decision.score, 0.9)

    def test_triggered_matcher_stays_silent_until_reset(self) -> None:
        matcher = WakePhraseMatcher(["hey robot"])
        self.assertIsNotNone(matcher.process(_final("hey robot", 0)))

        self.assertIsNone(matcher.process(_final("hey robot", 5000)))

        matcher.reset()
        self.assertIsNotNone(matcher.process(_final("hey robot", 5100)))

    def test_reset_keeping_refractory_suppresses_immediate_retrigger(self) -> None:
        matcher = WakePhraseMatcher(["hey robot"])
        matcher.process(_final("hey robot", 0))

        matcher.reset(keep_refractory=True)

        self.assertIsNone(matcher.process(_final("hey robot", 1000)))
        self.assertIsNotNone(matcher.process(_final("hey robot", 1600)))

    def test_plain_reset_clears_refractory(self) -> None:
        matcher = WakePhraseMatcher(["hey robot"])
        matcher.process(_final("hey robot", 0))

        matcher.reset()

        self.assertIsNone(matcher.state.last_trigger_timestamp_ms)
        self.assertIsNotNone(matcher.process(_final("hey robot", 100)))

    def test_tied_phrases_report_generic_marker(self) -> None:
        matcher = WakePhraseMatcher(["robot", "computer"])

        decision = matcher.process(_final("robot computer", 0))

        self.assertEqual("wake", decision.phrase)

    def test_single_best_phrase_is_reported(self) -> None:
        matcher = WakePhraseMatcher(["robot", "computer"])

        decision = matcher.process(_final("robot", 0))

        self.assertEqual("robot", decision.phrase)

    def test_set_phrases_deduplicates_after_normalization(self) -> None:
        matcher = WakePhraseMatcher()

        matcher.set_phrases(["Hey Robot", "hey robot!", "  ", "嗯"])

        self.assertEqual(["Hey Robot"], [phrase.raw for phrase in matcher.phrases])
        self.assertEqual("heyrobot", matcher.phrases[0].normalized)

    def test_set_phrases_clears_partial_progress(self) -> None:
        matcher = WakePhraseMatcher(["hey robot"])
        matcher.process(_partial("hey robot", 0))

        matcher.set_phrases(["computer"])

        self.assertEqual(0, matcher.state.consecutive_hits)
        self.assertEqual("", matcher.state.partial_buffer)

    def test_no_phrases_never_triggers(self) -> None:
        matcher = WakePhraseMatcher()
        self.assertIsNone(matcher.process(_final("anything", 0)))

    def test_loud_audio_relaxes_threshold(self) -> None:
        config = MatcherConfig(final_threshold=0.9)
        quiet = WakePhraseMatcher(["abcdefgh"], config=config)
        loud = WakePhraseMatcher(["abcdefgh"], config=config)
        loud.update_loudness(0.2, 900)

        self.assertIsNone(quiet.process(_final("abcdefgx", 1000)))
        self.assertIsNotNone(loud.process(_final("abcdefgx", 1000)))

    def test_stale_loudness_is_ignored(self) -> None:
        matcher = WakePhraseMatcher(["abcdefgh"], config=MatcherConfig(final_threshold=0.9))
        matcher.update_loudness(0.2, 0)

        self.assertIsNone(matcher.process(_final("abcdefgx", 5000)))

    def test_partial_buffer_is_bounded(self) -> None:
        matcher = WakePhraseMatcher(["ab"], config=MatcherConfig(partial_buffer_max_chars=8))
        matcher.process(_partial("xyzxyzxyzxyz", 0))

        self.assertEqual("yzxyzxyz", matcher.state.partial_buffer)


class MatcherConfigTests(unittest.TestCase):
    def test_rejects_final_threshold_below_partial(self) -> None:
        with self.assertRaises(MatcherConfigurationError):
            MatcherConfig(partial_threshold=0.9, final_threshold=0.8)

    def test_rejects_zero_required_hits(self) -> None:
        with self.assertRaises(MatcherConfigurationError):
            MatcherConfig(required_consecutive_hits=0)


if __name__ == "__main__":
    unittest.main()
