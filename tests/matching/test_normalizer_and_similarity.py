import unittest

from matching import ScoringWeights, normalize, score_candidate, similarity
from matching.normalizer import has_non_latin


class NormalizerTests(unittest.TestCase):
    def test_normalize_strips_case_whitespace_and_punctuation(self) -> None:
        self.assertEqual("heyrobot", normalize("  Hey, Robot! "))

    def test_normalize_drops_cjk_filler_particles_and_punctuation(self) -> None:
        self.assertEqual("小红", normalize("嗯，小红。"))

    def test_normalize_drops_latin_filler_words(self) -> None:
        self.assertEqual("heyrobot", normalize("um hey uh robot"))

    def test_normalize_keeps_filler_letters_inside_words(self) -> None:
        self.assertEqual("human", normalize("Human"))

    def test_normalize_empty_text(self) -> None:
        self.assertEqual("", normalize(""))
        self.assertEqual("", normalize(" ，。 "))

    def test_has_non_latin(self) -> None:
        self.assertFalse(has_non_latin("heyrobot"))
        self.assertFalse(has_non_latin("café"))
        self.assertTrue(has_non_latin("小红"))
        self.assertTrue(has_non_latin("hey小红"))


class SimilarityTests(unittest.TestCase):
    def test_identical_strings_score_one(self) -> None:
        self.assertAlmostEqual(1.0, similarity("robot", "robot"))

    def test_empty_string_scores_zero(self) -> None:
        self.assertEqual(0.0, similarity("", "robot"))
        self.assertEqual(0.0, similarity("robot", ""))

    def test_disjoint_strings_score_zero(self) -> None:
        self.assertEqual(0.0, similarity("abc", "xyz"))

    def test_scores_stay_in_unit_interval(self) -> None:
        pairs = [("a", "abcdef"), ("robot", "rowboat"), ("小红", "小小红"), ("ab", "ba")]
        for a, b in pairs:
            with self.subTest(a=a, b=b):
                score = similarity(a, b)
                self.assertGreaterEqual(score, 0.0)
                self.assertLessEqual(score, 1.0)

    def test_single_character_edit_blend(self) -> None:
        # lev 7/8, lcs 7/8, bigram overlap 6/7
        expected = 0.5 * 0.875 + 0.3 * 0.875 + 0.2 * (6 / 7)
        self.assertAlmostEqual(expected, similarity("abcdefg", "abcdefgh"))

    def test_custom_weights(self) -> None:
        weights = ScoringWeights(levenshtein=1.0, lcs=0.0, bigram=0.0)
        self.assertAlmostEqual(0.5, similarity("ab", "ax", weights))


class ScoreCandidateTests(unittest.TestCase):
    def test_exact_substring_scores_one(self) -> None:
        self.assertAlmostEqual(1.0, score_candidate("pleaseheyrobotnow", "heyrobot"))

    def test_repeated_partial_prefix_still_contains_phrase(self) -> None:
        self.assertAlmostEqual(1.0, score_candidate("小小红", "小红", None))

    def test_short_candidate_scored_as_whole(self) -> None:
        self.assertAlmostEqual(similarity("小", "小红"), score_candidate("小", "小红", None))

    def test_empty_inputs_score_zero(self) -> None:
        self.assertEqual(0.0, score_candidate("", "robot"))
        self.assertEqual(0.0, score_candidate("robot", ""))

    def test_phonetic_match_lifts_homophone(self) -> None:
        romanized = {"晓红": "xiaohong", "晓": "xiao", "红": "hong"}
        score = score_candidate(
            "晓红",
            "小红",
            "xiaohong",
            transliterate_fn=lambda text: romanized.get(text, text),
        )
        text_score = similarity("晓红", "小红")
        self.assertAlmostEqual(0.4, text_score)
        self.assertAlmostEqual(0.2 * text_score + 0.8 * 1.0, score)

    def test_weak_phonetic_match_keeps_text_score(self) -> None:
        score = score_candidate(
            "晓红",
            "小红",
            "xiaohong",
            transliterate_fn=lambda text: "zzz",
        )
        self.assertAlmostEqual(similarity("晓红", "小红"), score)


if __name__ == "__main__":
    unittest.main()
