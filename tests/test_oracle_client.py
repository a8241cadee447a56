"""
Tests for ContentOracleClient: validation, response shaping, and how
failures map onto the error taxonomy.
"""

import unittest

from fakes import (
    SITES,
    FakeChatClient,
    SleepRecorder,
    chapter_json,
    failed,
    make_oracle,
    novel_json,
    ok,
    rate_limited,
)

from core.errors import (
    ContentUnavailableError,
    InterpretationError,
    QuotaExceededError,
    TransportError,
    ValidationError,
)


class TestValidateQuery(unittest.TestCase):

    def setUp(self):
        self.chat = FakeChatClient()
        self.oracle = make_oracle(self.chat)

    def test_empty(self):
        for name in ("", "   ", None):
            with self.assertRaises(ValidationError) as ctx:
                self.oracle.resolve_novel(name)
            self.assertEqual(str(ctx.exception), "Please enter a novel name.")
        self.assertEqual(self.chat.calls, [])

    def test_too_short(self):
        with self.assertRaises(ValidationError) as ctx:
            self.oracle.resolve_novel("  a ")
        self.assertIn("too short", str(ctx.exception))
        self.assertEqual(self.chat.calls, [])

    def test_trims(self):
        self.assertEqual(self.oracle.validate_query("  Omniscient Reader  "), "Omniscient Reader")


class TestResolveNovel(unittest.TestCase):

    def test_parses_metadata(self):
        chat = FakeChatClient([ok(novel_json(title="Lord of the Mysteries", author="Cuttlefish",
                                             total=1432, titles=["Crimson", "Situation"]))])
        oracle = make_oracle(chat)

        metadata = oracle.resolve_novel("  lord of mysteries ")

        self.assertTrue(metadata.exists)
        self.assertEqual(metadata.title, "Lord of the Mysteries")
        self.assertEqual(metadata.author, "Cuttlefish")
        self.assertEqual(metadata.total_chapters, 1432)
        self.assertEqual(metadata.chapter_titles, ["Crimson", "Situation"])

        prompt = chat.calls[0]
        self.assertIn('"lord of mysteries"', prompt)
        for site in SITES:
            self.assertIn(site, prompt)
        self.assertTrue(chat.kwargs[0]["enable_web_search"])

    def test_not_found_is_not_an_error(self):
        oracle = make_oracle(FakeChatClient([ok('{"exists": false}')]))
        metadata = oracle.resolve_novel("Nonexistent Book")
        self.assertFalse(metadata.exists)

    def test_chapter_titles_keep_positions(self):
        answer = '{"exists": true, "chapterTitles": ["One", null, "  ", "Four"]}'
        metadata = make_oracle(FakeChatClient([ok(answer)])).resolve_novel("Some Novel")
        self.assertEqual(metadata.chapter_titles, ["One", "", "", "Four"])

    def test_missing_fields_fall_back(self):
        oracle = make_oracle(FakeChatClient([ok('{"exists": true, "totalChapters": "lots"}')]))
        metadata = oracle.resolve_novel("Some Novel")
        self.assertEqual(metadata.title, "Some Novel")
        self.assertEqual(metadata.author, "")
        self.assertEqual(metadata.total_chapters, 0)
        self.assertEqual(metadata.chapter_titles, [])

    def test_unparseable_answer(self):
        chat = FakeChatClient([ok("I'm sorry, I can't help with that.")])
        with self.assertRaises(InterpretationError):
            make_oracle(chat).resolve_novel("Some Novel")
        self.assertEqual(len(chat.calls), 1)

    def test_rate_limit_retried_then_succeeds(self):
        sleep = SleepRecorder()
        chat = FakeChatClient([rate_limited(), ok(novel_json())])

        metadata = make_oracle(chat, sleep).resolve_novel("Test Novel")

        self.assertTrue(metadata.exists)
        self.assertEqual(len(chat.calls), 2)
        self.assertEqual(sleep.delays, [2.0])

    def test_rate_limit_exhausted(self):
        sleep = SleepRecorder()
        chat = FakeChatClient([rate_limited(), rate_limited(), rate_limited(), ok(novel_json())])

        with self.assertRaises(QuotaExceededError):
            make_oracle(chat, sleep).resolve_novel("Test Novel")

        self.assertEqual(len(chat.calls), 3)
        self.assertEqual(sleep.delays, [2.0, 4.0])

    def test_server_error_not_retried(self):
        chat = FakeChatClient([failed(), ok(novel_json())])
        with self.assertRaises(TransportError) as ctx:
            make_oracle(chat).resolve_novel("Test Novel")
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(len(chat.calls), 1)

    def test_empty_answer(self):
        with self.assertRaises(TransportError) as ctx:
            make_oracle(FakeChatClient([ok("   ")])).resolve_novel("Test Novel")
        self.assertEqual(str(ctx.exception), "Empty response from AI")


class TestResolveChapter(unittest.TestCase):

    def test_content_title_and_source(self):
        chat = FakeChatClient([ok(chapter_json("Once upon a time...", title="The Beginning"),
                                  urls=("https://novelbin.com/b/test/1", "https://other"))])

        result = make_oracle(chat).resolve_chapter("Test Novel", 1)

        self.assertEqual(result.content, "Once upon a time...")
        self.assertEqual(result.title, "The Beginning")
        self.assertEqual(result.source_url, "https://novelbin.com/b/test/1")
        self.assertIn("Chapter 1 of the webnovel \"Test Novel\"", chat.calls[0])

    def test_missing_title_uses_placeholder(self):
        chat = FakeChatClient([ok(chapter_json("Body"))])
        result = make_oracle(chat).resolve_chapter("Test Novel", 7)
        self.assertEqual(result.title, "Chapter 7")
        self.assertIsNone(result.source_url)

    def test_not_found(self):
        chat = FakeChatClient([ok(chapter_json("CONTENT_NOT_FOUND", found=False))])
        with self.assertRaises(ContentUnavailableError) as ctx:
            make_oracle(chat).resolve_chapter("Test Novel", 3)
        self.assertEqual(str(ctx.exception), "Chapter content unavailable.")

    def test_sentinel_with_found_true(self):
        chat = FakeChatClient([ok(chapter_json("Sorry. CONTENT_NOT_FOUND", title="X"))])
        with self.assertRaises(ContentUnavailableError):
            make_oracle(chat).resolve_chapter("Test Novel", 3)

    def test_empty_content(self):
        chat = FakeChatClient([ok(chapter_json("   ", title="X"))])
        with self.assertRaises(ContentUnavailableError):
            make_oracle(chat).resolve_chapter("Test Novel", 3)

    def test_parse_error_message(self):
        chat = FakeChatClient([ok("no json here")])
        with self.assertRaises(InterpretationError) as ctx:
            make_oracle(chat).resolve_chapter("Test Novel", 3)
        self.assertEqual(str(ctx.exception), "Error parsing chapter data. Please retry.")

    def test_title_hint_only_for_real_titles(self):
        chat = FakeChatClient([ok(chapter_json("a")), ok(chapter_json("b"))])
        oracle = make_oracle(chat)

        oracle.resolve_chapter("Test Novel", 2, current_title="The Crimson Moon")
        oracle.resolve_chapter("Test Novel", 3, current_title="Chapter 3")

        self.assertIn('likely "The Crimson Moon"', chat.calls[0])
        self.assertNotIn("likely", chat.calls[1])

    def test_rate_limit_retried(self):
        sleep = SleepRecorder()
        chat = FakeChatClient([rate_limited(), rate_limited(), ok(chapter_json("Body", title="T"))])

        result = make_oracle(chat, sleep).resolve_chapter("Test Novel", 1)

        self.assertEqual(result.content, "Body")
        self.assertEqual(sleep.delays, [2.0, 4.0])


if __name__ == "__main__":
    unittest.main()
