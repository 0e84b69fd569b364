"""
Tests for the CLI helpers.
"""

import io
import unittest
from contextlib import redirect_stdout
from unittest.mock import MagicMock, patch

from support import CORPUS, MODEL_ANSWER, PATIENCE_QUESTION, no_sleep, session_for

from quraniq.errors import UpstreamFailure
from quraniq.config import Settings
from quraniq.main import (
    LOCAL_OWNER,
    answer_only_reveal,
    create_service,
    interactive_mode,
    print_answer,
    show_answer,
    single_query_mode,
)
from quraniq.pipeline import ChatPipeline, InquiryService
from quraniq.reveal import Reveal
from quraniq.search import VerseSearch
from quraniq.store import InMemoryStore


def make_service(side_effect=None):
    generator = MagicMock()
    generator.generate.return_value = MODEL_ANSWER
    generator.generate.side_effect = side_effect
    pipeline = ChatPipeline(VerseSearch(verses=CORPUS), generator)
    return InquiryService(
        pipeline,
        InMemoryStore(),
        session_for(LOCAL_OWNER),
        reveal_factory=lambda text: Reveal(answer_only_reveal(text).final_text, sleep=no_sleep),
    )


class TestCli(unittest.TestCase):

    def test_reveal_hides_follow_up_block(self):
        reveal = answer_only_reveal(MODEL_ANSWER)
        self.assertNotIn(":::FOLLOW_UPS:::", reveal.final_text)
        self.assertTrue(reveal.final_text.startswith("Patience (sabr)"))

    def test_show_answer_prints_suggestions(self):
        service = make_service()
        out = io.StringIO()
        with redirect_stdout(out):
            show_answer(service, PATIENCE_QUESTION)

        printed = out.getvalue()
        self.assertIn("[Surah Al-Baqarah 2:155]", printed)
        self.assertIn("Continue the journey:", printed)
        self.assertIn("What is the reward for patience?", printed)
        self.assertNotIn(":::FOLLOW_UPS:::", printed)
        self.assertIsNone(service.active)

    def test_single_query_settles(self):
        service = make_service()
        with redirect_stdout(io.StringIO()):
            single_query_mode(service, PATIENCE_QUESTION)
        self.assertEqual(len(service.list_inquiries()), 1)

    def test_single_query_exit_code_on_failure(self):
        store = MagicMock()
        store.create.side_effect = OSError("read-only")
        service = make_service(side_effect=UpstreamFailure("down"))
        service.store = store
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            single_query_mode(service, "What about astronomy?")
        self.assertEqual(ctx.exception.code, 1)

    def test_print_answer_marks_paragraphs(self):
        out = io.StringIO()
        with redirect_stdout(out):
            print_answer(MODEL_ANSWER)

        lines = out.getvalue().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith("    | Patience (sabr)"))
        self.assertTrue(lines[1].startswith("  * Ask yourself:"))

    def test_surah_commands(self):
        service = make_service()
        out = io.StringIO()
        commands = ["/surahs", "/surah 94", "/surah 3", "/surah x", "/quit"]
        with patch("builtins.input", side_effect=commands), redirect_stdout(out):
            interactive_mode(service)

        printed = out.getvalue()
        self.assertIn(" 94. Ash-Sharh (2 verses)", printed)
        self.assertIn("[94:5] For indeed, with hardship will be ease.", printed)
        self.assertIn("Surah 3 is not in the corpus.", printed)
        self.assertIn("Usage: /surah N", printed)

    def test_create_service_uses_settings(self):
        service = create_service(Settings(openai_api_key="sk-test", jwt_secret="s"))
        self.assertEqual(service.pipeline.generator.api_key, "sk-test")
        self.assertEqual(service.owner_id, LOCAL_OWNER)


if __name__ == "__main__":
    unittest.main()
