"""
Tests for CLI command dispatch (rendered to an in-memory console).
"""

import io
import tempfile
import unittest
from pathlib import Path

from rich.console import Console

from fakes import FakeChatClient, SleepRecorder, chapter_handler, make_oracle, novel_json, novel_name, ok

from acquisition.session import NovelSession
from interface.cli import NovelCLI


class TestNovelCLI(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.export_dir = Path(self.tmp.name)

        chapters = chapter_handler(fail=(3,))

        def answer(prompt):
            if novel_name(prompt) is not None:
                return ok(novel_json(title="Test Novel", total=4))
            return chapters(prompt)

        self.session = NovelSession(
            make_oracle(FakeChatClient(answer)),
            fetch_delay=0,
            sleep=SleepRecorder(),
        )
        self.output = io.StringIO()
        self.cli = NovelCLI(
            session=self.session,
            export_dir=self.export_dir,
            console=Console(file=self.output, width=120),
        )

    def printed(self) -> str:
        return self.output.getvalue()

    def test_search(self):
        self.cli.handle_command("/search Test Novel")
        self.assertIn("Found Test Novel by Jane Doe", self.printed())
        self.assertIsNotNone(self.session.manifest)

    def test_validation_error_is_shown_with_category(self):
        self.cli.handle_command("/search x")
        self.assertIn("Novel name is too short", self.printed())
        self.assertIn("(validation)", self.printed())

    def test_command_before_search(self):
        self.cli.handle_command("/list")
        self.assertIn("Search for a novel first.", self.printed())

    def test_unknown_command(self):
        self.cli.handle_command("/dance")
        self.assertIn("Unknown command: /dance", self.printed())

    def test_read_and_save(self):
        self.cli.handle_command("/search Test Novel")
        self.cli.handle_command("/read 2")
        self.cli.handle_command("/save")

        self.assertIn("Text 2", self.printed())
        saved = self.export_dir / "2-title_2.md"
        self.assertEqual(saved.read_text(encoding="utf-8"), "# Title 2\n\nText 2")

    def test_failed_chapter_shows_retry_hint(self):
        self.cli.handle_command("/search Test Novel")
        self.cli.handle_command("/read 3")
        self.assertIn("Chapter content unavailable.", self.printed())
        self.assertIn("/retry", self.printed())

    def test_download_writes_export(self):
        self.cli.handle_command("/search Test Novel")
        self.cli.handle_command("/download 1-4")

        exported = self.export_dir / "test_novel_1-4.md"
        text = exported.read_text(encoding="utf-8")
        self.assertIn("## Title 1", text)
        self.assertNotIn("## Title 3", text)
        self.assertIn("Downloaded 3/4 chapters (1 failed)", self.printed())

    def test_bad_range(self):
        self.cli.handle_command("/search Test Novel")
        self.cli.handle_command("/download first-ten")
        self.assertIn("Invalid range", self.printed())

    def test_ranges(self):
        self.cli.handle_command("/search Test Novel")
        self.cli.handle_command("/ranges")
        self.assertIn("1-4", self.printed())
        self.assertIn("0 downloaded", self.printed())

    def test_quit(self):
        self.cli._running = True
        self.cli.handle_command("/quit")
        self.assertFalse(self.cli._running)


if __name__ == "__main__":
    unittest.main()
