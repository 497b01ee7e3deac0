"""Unit tests for text normalization and fuzzy similarity."""

import unittest

from drift.entity_resolution.similarity import (
    jaro_winkler,
    ngram_cosine,
    normalize_entity_text,
    string_similarity,
)


class NormalizeEntityTextTests(unittest.TestCase):
    def test_folds_case_diacritics_and_possessives(self) -> None:
        self.assertEqual(normalize_entity_text("Évans’s  Book!"), "evanss book")

    def test_keeps_dots_and_hyphens(self) -> None:
        self.assertEqual(normalize_entity_text("  U.S. Steel-Works\n"), "u.s. steel-works")

    def test_degenerate_input_is_empty(self) -> None:
        self.assertEqual(normalize_entity_text(""), "")
        self.assertEqual(normalize_entity_text("!!! ’"), "")


class FuzzySimilarityTests(unittest.TestCase):
    def test_identical_strings_score_one(self) -> None:
        for value in ("a", "Shirer", "The Rise and Fall of the Third Reich"):
            self.assertEqual(string_similarity(value, value), 1.0)

    def test_scores_stay_in_unit_interval(self) -> None:
        pairs = [("", "abc"), ("a", "b"), ("Shirer", "Tolstoy"), ("Evans", "evans"), ("x" * 40, "y")]
        for left, right in pairs:
            score = string_similarity(left, right)
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 1.0)

    def test_jaro_winkler_transposed_pair(self) -> None:
        self.assertAlmostEqual(jaro_winkler("MARTHA", "MARHTA"), 0.9611, places=3)

    def test_jaro_winkler_negative_window_is_zero(self) -> None:
        self.assertEqual(jaro_winkler("a", "b"), 0.0)

    def test_trigram_cosine(self) -> None:
        self.assertAlmostEqual(ngram_cosine("abc", "ABC"), 1.0)
        self.assertEqual(ngram_cosine("", "abc"), 0.0)
        self.assertEqual(ngram_cosine("abc", "xyz"), 0.0)

    def test_possessive_variant_clears_merge_threshold(self) -> None:
        self.assertGreaterEqual(string_similarity("Shirer", "Shirer's"), 0.82)
        self.assertLess(string_similarity("Shirer", "Gibbon"), 0.82)


if __name__ == "__main__":
    unittest.main()
