"""
NovelWeaver - Reading Session
Owns the live manifest and coordinates search, reading, and downloads

One session holds at most one manifest. A successful search replaces it
wholesale; a failed search leaves the previous manifest in place. Any
running batch job is cancelled once a new search succeeds, and since the
job holds the old manifest object its last write can never touch the new
one.
"""

from typing import Callable, List, Optional, Tuple

from acquisition.batch import BatchDownloadCoordinator, BatchResult, ExportCallback, ProgressCallback
from acquisition.export import ExportCompiler
from acquisition.loader import ChapterLoader, should_auto_load
from acquisition.manifest import ManifestBuilder
from acquisition.ranges import RangeStatus, range_blocks, range_status
from concurrency.cancellation import CancellationToken
from core.errors import NovelWeaverError, ValidationError
from core.logger import log_error, log_info
from core.models import ChapterRecord, ChapterStatus, ExportArtifact, Manifest, ManifestListener
from oracle.client import ContentOracleClient

NO_MANIFEST_MESSAGE = "Search for a novel first."


class NovelSession:
    """
    Session controller.

    Hosts read state through manifest / current_chapter / progress and
    change it only through the methods below.
    """

    def __init__(
        self,
        oracle: ContentOracleClient,
        compiler: Optional[ExportCompiler] = None,
        default_chapter_count: int = 100,
        fetch_delay: float = 2.0,
        sleep: Optional[Callable[[float], None]] = None,
        on_progress: Optional[ProgressCallback] = None
    ):
        """
        Initialize the session.

        Args:
            oracle: Oracle client shared by search and chapter loading
            compiler: Export compiler (default tag if omitted)
            default_chapter_count: Manifest size when the oracle gives no estimate
            fetch_delay: Pause after each batch fetch, in seconds
            sleep: Sleep function for batch pacing (defaults to time.sleep)
            on_progress: Batch progress observer
        """
        self.oracle = oracle
        self.compiler = compiler or ExportCompiler()
        self.builder = ManifestBuilder(oracle, default_chapter_count=default_chapter_count)
        self.loader = ChapterLoader(oracle)
        self.coordinator = BatchDownloadCoordinator(
            self.loader,
            self.compiler,
            fetch_delay=fetch_delay,
            sleep=sleep,
            on_progress=on_progress,
        )

        self.manifest: Optional[Manifest] = None
        self.current_chapter_id: Optional[str] = None
        self._listeners: List[ManifestListener] = []

    # =========================================================================
    # SEARCH
    # =========================================================================

    def search(self, query: str) -> Manifest:
        """
        Resolve a novel and make its manifest the live one.

        Args:
            query: Novel name as typed by the user

        Returns:
            The new manifest

        Raises:
            ValidationError, NotFoundError, InterpretationError,
            QuotaExceededError, TransportError: the search failed and the
            previous manifest and any running download are unchanged
        """
        trimmed = self.oracle.validate_query(query)

        try:
            manifest = self.builder.build(trimmed)
        except NovelWeaverError as e:
            log_error(f"Search for '{trimmed}' failed: {e}")
            raise

        # The running job belongs to the manifest being replaced
        if self.coordinator.cancel("new search started"):
            log_info("Active batch download cancelled for new search", prefix="🛑")

        self._replace_manifest(manifest)
        return manifest

    def _replace_manifest(self, manifest: Manifest) -> None:
        if self.manifest is not None:
            for listener in self._listeners:
                self.manifest.unsubscribe(listener)
        for listener in self._listeners:
            manifest.subscribe(listener)

        self.manifest = manifest
        self.current_chapter_id = manifest.chapters[0].id if manifest.chapters else None
        log_info(f"Now reading '{manifest.title}' ({len(manifest)} chapters)", prefix="📚")

    def subscribe(self, listener: ManifestListener) -> None:
        """Observe record updates on this and every future manifest."""
        self._listeners.append(listener)
        if self.manifest is not None:
            self.manifest.subscribe(listener)

    def require_manifest(self) -> Manifest:
        if self.manifest is None:
            raise ValidationError(NO_MANIFEST_MESSAGE)
        return self.manifest

    # =========================================================================
    # READING
    # =========================================================================

    @property
    def current_chapter(self) -> Optional[ChapterRecord]:
        if self.manifest is None or self.current_chapter_id is None:
            return None
        return self.manifest.get(self.current_chapter_id)

    def _current_index(self) -> int:
        if self.manifest is None or self.current_chapter_id is None:
            return -1
        return self.manifest.index_of(self.current_chapter_id)

    @property
    def has_prev(self) -> bool:
        return self._current_index() > 0

    @property
    def has_next(self) -> bool:
        index = self._current_index()
        return index != -1 and index < len(self.manifest) - 1

    def select(self, chapter_id: str) -> Optional[ChapterRecord]:
        """
        Make a chapter current, fetching it if it was never loaded.

        Failed chapters are not refetched here; use retry().

        Returns:
            The selected record after any fetch, or None for an unknown id
        """
        manifest = self.require_manifest()
        record = manifest.get(chapter_id)
        if record is None:
            return None

        self.current_chapter_id = chapter_id
        if should_auto_load(record):
            self.loader.load(manifest, chapter_id)
        return manifest.get(chapter_id)

    def select_number(self, number: int) -> Optional[ChapterRecord]:
        """select() by chapter number."""
        record = self.require_manifest().get_by_number(number)
        if record is None:
            return None
        return self.select(record.id)

    def navigate(self, direction: str) -> Optional[ChapterRecord]:
        """
        Move to the next or previous chapter.

        Args:
            direction: "next" or "prev"

        Returns:
            The newly selected record, or None if there is nowhere to go
        """
        if direction not in ("next", "prev"):
            raise ValueError(f"Unknown direction: {direction}")

        index = self._current_index()
        if index == -1:
            return None

        new_index = index + 1 if direction == "next" else index - 1
        if not 0 <= new_index < len(self.manifest):
            return None
        return self.select(self.manifest.chapters[new_index].id)

    def retry(self, chapter_id: str) -> bool:
        """
        User-initiated fetch of a chapter, whatever its last outcome.

        Returns:
            True if content was stored
        """
        manifest = self.require_manifest()
        record = manifest.get(chapter_id)
        if record is None or record.status == ChapterStatus.LOADING:
            return False
        return self.loader.load(manifest, chapter_id)

    # =========================================================================
    # DOWNLOADS
    # =========================================================================

    @property
    def progress(self):
        """Current batch progress, or None."""
        return self.coordinator.progress

    @property
    def is_downloading(self) -> bool:
        return self.coordinator.is_active

    def download_range(
        self,
        start: int,
        end: int,
        token: Optional[CancellationToken] = None,
        on_export: Optional[ExportCallback] = None
    ) -> Optional[BatchResult]:
        """Run a batch job over start..end on the live manifest."""
        return self.coordinator.run(self.require_manifest(), start, end, token=token, on_export=on_export)

    def cancel_download(self) -> bool:
        return self.coordinator.cancel()

    def export_range(self, start: int, end: int) -> ExportArtifact:
        """Compile start..end as it stands now, without fetching anything."""
        return self.compiler.compile_range(self.require_manifest(), start, end)

    def export_chapter(self, chapter_id: str) -> ExportArtifact:
        record = self.require_manifest().get(chapter_id)
        if record is None:
            raise ValidationError("Unknown chapter.")
        return self.compiler.compile_chapter(record)

    def range_overview(self, size: int = 100) -> List[Tuple[int, int, RangeStatus]]:
        """Every block of `size` chapters with its status."""
        manifest = self.require_manifest()
        downloading = self.is_downloading
        return [
            (start, end, range_status(manifest, start, end, downloading))
            for start, end in range_blocks(manifest, size)
        ]


# Global session instance
_session: Optional[NovelSession] = None


def get_session() -> NovelSession:
    """Get the global session instance."""
    global _session
    if _session is None:
        import config
        from oracle.client import get_oracle_client
        _session = NovelSession(
            oracle=get_oracle_client(),
            compiler=ExportCompiler(config.EXPORT_GENERATOR_TAG),
            default_chapter_count=config.MANIFEST_DEFAULT_CHAPTER_COUNT,
            fetch_delay=config.BATCH_FETCH_DELAY,
        )
    return _session


def init_session(**kwargs) -> NovelSession:
    """Initialize the global session with explicit collaborators."""
    global _session
    _session = NovelSession(**kwargs)
    return _session
