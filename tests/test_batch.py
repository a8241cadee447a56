"""
Tests for batch range downloads: ordering, pacing, failure tolerance,
cancellation, and the export at the end.
"""

import unittest

from fakes import FakeChatClient, SleepRecorder, chapter_handler, make_manifest, make_oracle

from acquisition.batch import BatchDownloadCoordinator, plan_fetch
from acquisition.export import ExportCompiler
from acquisition.loader import ChapterLoader
from concurrency.cancellation import CancellationToken
from core.errors import BatchInProgressError
from core.models import BatchProgress, ChapterStatus


class BatchTestCase(unittest.TestCase):

    def make_coordinator(self, fail=(), hook=None):
        self.fetched_numbers = []
        self.chat = FakeChatClient(chapter_handler(fail=fail, calls=self.fetched_numbers))
        self.sleep = SleepRecorder(hook)
        self.published = []
        self.exports = []
        return BatchDownloadCoordinator(
            ChapterLoader(make_oracle(self.chat)),
            ExportCompiler("NovelWeaver AI"),
            fetch_delay=2.0,
            sleep=self.sleep,
            on_progress=self.published.append,
        )


class TestBatchRun(BatchTestCase):

    def test_failed_chapter_does_not_stop_batch(self):
        manifest = make_manifest(5)
        coordinator = self.make_coordinator(fail=(3,))

        result = coordinator.run(manifest, 1, 5, on_export=self.exports.append)

        self.assertEqual(self.fetched_numbers, [1, 2, 3, 4, 5])
        self.assertEqual(result.fetched, 4)
        self.assertEqual(result.failed, 1)
        self.assertFalse(result.cancelled)
        self.assertEqual(manifest.get_by_number(3).status, ChapterStatus.ERROR)

        artifact = result.artifact
        self.assertEqual(artifact.chapter_numbers, [1, 2, 4, 5])
        self.assertEqual(artifact.text.count("## "), 4)
        positions = [artifact.text.index(f"Text {n}") for n in (1, 2, 4, 5)]
        self.assertEqual(positions, sorted(positions))
        self.assertNotIn("Text 3", artifact.text)
        self.assertEqual(self.exports, [artifact])

    def test_pause_after_every_fetch(self):
        coordinator = self.make_coordinator(fail=(3,))
        coordinator.run(make_manifest(5), 1, 5)
        self.assertEqual(self.sleep.delays, [2.0] * 5)

    def test_progress_sequence(self):
        coordinator = self.make_coordinator(fail=(3,))
        coordinator.run(make_manifest(5), 1, 5)

        self.assertEqual(self.published[0], BatchProgress(current=0, total=5, attempted=0, to_fetch=5))
        self.assertEqual(
            [(p.current, p.attempted) for p in self.published[1:-1]],
            [(1, 1), (2, 2), (2, 3), (3, 4), (4, 5)],
        )
        self.assertIsNone(self.published[-1])
        self.assertIsNone(coordinator.progress)
        self.assertFalse(coordinator.is_active)

    def test_progress_visible_while_running(self):
        snapshots = []
        coordinator = self.make_coordinator(hook=lambda n: snapshots.append(coordinator.progress))
        coordinator.run(make_manifest(2), 1, 2)
        self.assertEqual([s.current for s in snapshots], [1, 2])

    def test_completed_chapters_are_skipped(self):
        manifest = make_manifest(4, completed=(1, 3))
        coordinator = self.make_coordinator()

        result = coordinator.run(manifest, 1, 4)

        self.assertEqual(self.fetched_numbers, [2, 4])
        self.assertEqual(result.already_completed, 2)
        self.assertEqual(self.published[0].current, 2)
        self.assertEqual(result.artifact.chapter_numbers, [1, 2, 3, 4])
        self.assertIn("Stored text 1", result.artifact.text)

    def test_partial_range(self):
        manifest = make_manifest(10)
        coordinator = self.make_coordinator()

        result = coordinator.run(manifest, 4, 6)

        self.assertEqual(self.fetched_numbers, [4, 5, 6])
        self.assertEqual(result.artifact.filename, "test_novel_4-6.md")
        self.assertEqual(manifest.get_by_number(7).status, ChapterStatus.PENDING)

    def test_range_past_end_is_clamped_to_existing_records(self):
        coordinator = self.make_coordinator()
        result = coordinator.run(make_manifest(3), 2, 100)
        self.assertEqual(self.fetched_numbers, [2, 3])
        self.assertEqual(result.selected, 2)

    def test_empty_range(self):
        coordinator = self.make_coordinator()
        self.assertIsNone(coordinator.run(make_manifest(5), 4, 2))
        self.assertIsNone(coordinator.run(make_manifest(5), 50, 60))
        self.assertEqual(self.chat.calls, [])
        self.assertEqual(self.published, [])

    def test_all_failed_reports_export_error(self):
        coordinator = self.make_coordinator(fail=(1, 2))

        result = coordinator.run(make_manifest(2), 1, 2, on_export=self.exports.append)

        self.assertIsNone(result.artifact)
        self.assertEqual(result.export_error, "Failed to download any chapters in range 1-2.")
        self.assertEqual(self.exports, [])
        self.assertIsNone(self.published[-1])


class TestBatchCancellation(BatchTestCase):

    def test_cancel_during_pause_stops_before_next_chapter(self):
        token = CancellationToken()
        manifest = make_manifest(5)
        coordinator = self.make_coordinator(hook=lambda n: n == 2 and token.cancel())

        result = coordinator.run(manifest, 1, 5, token=token, on_export=self.exports.append)

        self.assertTrue(result.cancelled)
        self.assertEqual(self.fetched_numbers, [1, 2])
        self.assertEqual(result.fetched, 2)
        self.assertIsNone(result.artifact)
        self.assertEqual(self.exports, [])
        self.assertEqual(
            [manifest.get_by_number(n).status for n in (3, 4, 5)],
            [ChapterStatus.PENDING] * 3,
        )
        self.assertEqual(manifest.get_by_number(2).status, ChapterStatus.COMPLETED)
        self.assertIsNone(coordinator.progress)

    def test_cancel_during_final_pause_skips_export(self):
        token = CancellationToken()
        coordinator = self.make_coordinator(hook=lambda n: n == 3 and token.cancel())

        result = coordinator.run(make_manifest(3), 1, 3, token=token, on_export=self.exports.append)

        self.assertTrue(result.cancelled)
        self.assertEqual(result.fetched, 3)
        self.assertEqual(self.exports, [])

    def test_cancel_via_coordinator(self):
        holder = {}
        coordinator = self.make_coordinator(
            hook=lambda n: holder.setdefault("signalled", coordinator.cancel("test"))
        )
        result = coordinator.run(make_manifest(3), 1, 3)

        self.assertTrue(holder["signalled"])
        self.assertTrue(result.cancelled)
        self.assertEqual(self.fetched_numbers, [1])

    def test_cancel_when_idle(self):
        self.assertFalse(self.make_coordinator().cancel())

    def test_token_cancelled_before_start(self):
        token = CancellationToken()
        token.cancel("early")
        coordinator = self.make_coordinator()

        result = coordinator.run(make_manifest(3), 1, 3, token=token)

        self.assertTrue(result.cancelled)
        self.assertEqual(self.fetched_numbers, [])
        self.assertEqual(token.reason, "early")


class TestSingleJob(BatchTestCase):

    def test_second_job_rejected_while_running(self):
        manifest = make_manifest(2)
        errors = []

        def hook(n):
            try:
                coordinator.run(manifest, 1, 2)
            except BatchInProgressError as e:
                errors.append(e)

        coordinator = self.make_coordinator(hook=hook)
        result = coordinator.run(manifest, 1, 2)

        self.assertEqual(len(errors), 2)
        self.assertEqual(result.fetched, 2)
        self.assertFalse(coordinator.is_active)

    def test_coordinator_reusable_after_job(self):
        manifest = make_manifest(4)
        coordinator = self.make_coordinator()
        coordinator.run(manifest, 1, 2)
        result = coordinator.run(manifest, 3, 4)
        self.assertEqual(result.fetched, 2)


class TestPlanFetch(unittest.TestCase):

    def test_plan(self):
        manifest = make_manifest(6, completed=(2, 5))
        self.assertEqual(plan_fetch(manifest, 1, 6), [1, 3, 4, 6])
        self.assertEqual(plan_fetch(manifest, 5, 5), [])


if __name__ == "__main__":
    unittest.main()
