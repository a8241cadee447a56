"""
NovelWeaver - Batch Download Coordinator
Fetches a range of chapters one at a time and compiles them into one file

A batch job:
    1. Selects manifest records numbered start..end (missing numbers are skipped)
    2. Counts records that already have content toward progress
    3. Fetches the rest in ascending chapter order, pausing after every
       fetch (success or failure) to stay under the oracle's rate limits
    4. Checks the cancellation token before each chapter; a fetch already
       in flight always finishes
    5. Clears progress, then exports the range unless cancelled

Only one job runs at a time. Failed chapters never stop the job.
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable, List, Optional

from acquisition.export import ExportCompiler
from acquisition.loader import ChapterLoader
from concurrency.cancellation import CancellationToken
from core.errors import BatchInProgressError, ExportEmptyError
from core.logger import log_info, log_success, log_warning
from core.models import BatchProgress, ExportArtifact, Manifest

ProgressCallback = Callable[[Optional[BatchProgress]], None]
ExportCallback = Callable[[ExportArtifact], None]


@dataclass
class BatchResult:
    """Outcome of one batch job."""
    start: int
    end: int
    selected: int
    already_completed: int
    fetched: int = 0
    failed: int = 0
    cancelled: bool = False
    artifact: Optional[ExportArtifact] = None
    export_error: Optional[str] = None

    @property
    def attempted(self) -> int:
        return self.fetched + self.failed


class BatchDownloadCoordinator:
    """
    Runs range downloads against a borrowed manifest.

    The coordinator never owns or replaces the manifest; it only swaps
    individual records through the loader.
    """

    def __init__(
        self,
        loader: ChapterLoader,
        compiler: ExportCompiler,
        fetch_delay: float = 2.0,
        sleep: Optional[Callable[[float], None]] = None,
        on_progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize the coordinator.

        Args:
            loader: Loader used for every chapter fetch
            compiler: Compiler used for the final export
            fetch_delay: Seconds to pause after each fetch
            sleep: Sleep function (defaults to time.sleep)
            on_progress: Called with a BatchProgress after every change,
                and with None when the job ends
        """
        self.loader = loader
        self.compiler = compiler
        self.fetch_delay = fetch_delay
        self._sleep = sleep or time.sleep
        self._on_progress = on_progress

        self._lock = threading.Lock()
        self._progress: Optional[BatchProgress] = None
        self._token: Optional[CancellationToken] = None

    # =========================================================================
    # OBSERVATION
    # =========================================================================

    @property
    def progress(self) -> Optional[BatchProgress]:
        """Snapshot of current progress, or None when no job is running."""
        with self._lock:
            return replace(self._progress) if self._progress else None

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._token is not None

    def cancel(self, reason: str = "cancelled by user") -> bool:
        """
        Cancel the running job, if any.

        Returns:
            True if a running job was signalled
        """
        with self._lock:
            token = self._token
        if token is None:
            return False
        token.cancel(reason)
        return True

    def _publish(self, progress: Optional[BatchProgress]) -> None:
        with self._lock:
            self._progress = progress
        if self._on_progress:
            self._on_progress(replace(progress) if progress else None)

    # =========================================================================
    # RUN
    # =========================================================================

    def run(
        self,
        manifest: Manifest,
        start: int,
        end: int,
        token: Optional[CancellationToken] = None,
        on_export: Optional[ExportCallback] = None
    ) -> Optional[BatchResult]:
        """
        Download and export chapters start..end (inclusive).

        Args:
            manifest: Manifest to read and update
            start: First chapter number
            end: Last chapter number
            token: Cancellation token (a fresh one is created if omitted)
            on_export: Receives the compiled artifact (the host's save step)

        Returns:
            BatchResult, or None if no record falls in the range

        Raises:
            BatchInProgressError: If another job is running
        """
        selection = manifest.in_range(start, end)
        if not selection:
            log_info(f"No chapters in range {start}-{end}, nothing to download")
            return None

        token = token or CancellationToken(label=f"batch {start}-{end}")
        with self._lock:
            if self._token is not None:
                raise BatchInProgressError("A batch download is already running.")
            self._token = token

        to_fetch = sorted((c for c in selection if not c.has_content), key=lambda c: c.number)
        completed_count = len(selection) - len(to_fetch)
        result = BatchResult(
            start=start,
            end=end,
            selected=len(selection),
            already_completed=completed_count,
        )

        log_info(
            f"Batch {start}-{end}: {len(selection)} chapters, "
            f"{completed_count} already downloaded, {len(to_fetch)} to fetch",
            prefix="⬇️"
        )

        try:
            progress = BatchProgress(
                current=completed_count,
                total=len(selection),
                to_fetch=len(to_fetch),
            )
            self._publish(progress)

            for record in to_fetch:
                if token.cancelled:
                    result.cancelled = True
                    log_warning(f"Batch {start}-{end} cancelled after {result.attempted} fetches")
                    break

                if self.loader.load(manifest, record.id):
                    completed_count += 1
                    result.fetched += 1
                else:
                    result.failed += 1

                progress = BatchProgress(
                    current=completed_count,
                    total=len(selection),
                    attempted=result.attempted,
                    to_fetch=len(to_fetch),
                )
                self._publish(progress)

                self._sleep(self.fetch_delay)

            # A cancel that lands during the final pause still skips the export
            if token.cancelled:
                result.cancelled = True
        finally:
            self._publish(None)
            with self._lock:
                self._token = None

        if result.cancelled:
            return result

        try:
            result.artifact = self.compiler.compile_range(manifest, start, end)
        except ExportEmptyError as e:
            result.export_error = str(e)
            log_warning(str(e))
            return result

        log_success(
            f"Batch {start}-{end} finished: {result.fetched} fetched, "
            f"{result.failed} failed, {result.artifact.section_count} exported"
        )
        if on_export:
            on_export(result.artifact)
        return result


def plan_fetch(manifest: Manifest, start: int, end: int) -> List[int]:
    """Chapter numbers a batch over start..end would fetch, in order."""
    return sorted(c.number for c in manifest.in_range(start, end) if not c.has_content)
