"""
Tests for response normalization and paragraph classification.
"""

import json
import unittest

from support import MODEL_ANSWER, PATIENCE

from quraniq.composer import FOLLOW_UPS_SENTINEL
from quraniq.responses import (
    APOLOGY_MESSAGE,
    PLAIN,
    REFLECTION,
    VERSE,
    classify_paragraph,
    format_verses_answer,
    normalize,
)


class TestNormalize(unittest.TestCase):

    def test_answer_and_suggestions(self):
        answer = "  Patience is light.  "
        suggestions = ["What is sabr?", "How do I stay patient?"]
        raw = answer + FOLLOW_UPS_SENTINEL + json.dumps(suggestions)

        result = normalize(raw)

        self.assertEqual(result.answer, answer.strip())
        self.assertEqual(result.suggestions, suggestions)

    def test_truncated_array(self):
        raw = "Patience is light." + FOLLOW_UPS_SENTINEL + '["What is sabr?", "How do I'

        result = normalize(raw)

        self.assertEqual(result.answer, "Patience is light.")
        self.assertEqual(result.suggestions, [])

    def test_malformed_array_keeps_answer(self):
        raw = "Answer text" + FOLLOW_UPS_SENTINEL + "[not json]"
        result = normalize(raw)
        self.assertEqual(result.answer, "Answer text")
        self.assertEqual(result.suggestions, [])

    def test_non_array_json_ignored(self):
        raw = "Answer" + FOLLOW_UPS_SENTINEL + '{"a": ["b"]}'
        self.assertEqual(normalize(raw).suggestions, [])

    def test_non_string_items_dropped(self):
        raw = "Answer" + FOLLOW_UPS_SENTINEL + '["one", 2, null, "  ", "three"]'
        self.assertEqual(normalize(raw).suggestions, ["one", "three"])

    def test_split_on_first_sentinel(self):
        raw = "Answer" + FOLLOW_UPS_SENTINEL + '["x"]' + FOLLOW_UPS_SENTINEL + '["y"]'
        result = normalize(raw)
        self.assertEqual(result.answer, "Answer")
        self.assertEqual(result.suggestions, [])

    def test_no_sentinel(self):
        result = normalize("  Just an answer.\n")
        self.assertEqual(result.answer, "Just an answer.")
        self.assertEqual(result.suggestions, [])

    def test_empty(self):
        self.assertEqual(normalize("").answer, "")
        self.assertEqual(normalize(None).suggestions, [])

    def test_model_shaped_answer(self):
        result = normalize(MODEL_ANSWER)
        self.assertTrue(result.answer.startswith("Patience (sabr)"))
        self.assertEqual(len(result.suggestions), 2)
        self.assertEqual(len(result.paragraphs), 2)

    def test_suggestions_capped(self):
        raw = "A" + FOLLOW_UPS_SENTINEL + json.dumps(["1", "2", "3", "4", "5"])
        self.assertEqual(normalize(raw).suggestions, ["1", "2", "3"])


class TestClassifyParagraph(unittest.TestCase):

    def test_reflection(self):
        self.assertEqual(classify_paragraph("Ask yourself: what am I grateful for?"), REFLECTION)
        self.assertEqual(classify_paragraph("Deep Question: who do you trust?"), REFLECTION)

    def test_verse(self):
        self.assertEqual(classify_paragraph("Surah Al-Baqarah tells us about trials."), VERSE)
        self.assertEqual(classify_paragraph("As in [2:155], trials come."), VERSE)
        self.assertEqual(classify_paragraph('"Indeed, with hardship will be ease," we read.'), VERSE)

    def test_plain(self):
        self.assertEqual(classify_paragraph("Patience is half of faith."), PLAIN)
        self.assertEqual(classify_paragraph('"short"'), PLAIN)


class TestFormatVersesAnswer(unittest.TestCase):

    def test_lists_verses(self):
        answer = format_verses_answer([PATIENCE])
        self.assertIn("[2:155]", answer)
        self.assertIn(PATIENCE.text, answer)

    def test_apology_without_verses(self):
        self.assertEqual(format_verses_answer([]), APOLOGY_MESSAGE)


if __name__ == "__main__":
    unittest.main()
