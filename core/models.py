"""
NovelWeaver - Data Models
Chapter records, the live manifest, and batch/export value types

ChapterRecord is immutable. Every change produces a new record through
one of its transition methods, and the Manifest swaps it in by id, so a
record's id (and therefore any UI selection) survives content updates.
"""

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Dict, List, Optional

from core.logger import log_error


class ChapterStatus(Enum):
    """Lifecycle of a chapter record."""
    PENDING = "pending"        # Manifest entry, never fetched
    LOADING = "loading"        # Fetch in flight
    COMPLETED = "completed"    # Content present
    ERROR = "error"            # Last fetch failed


# Allowed status transitions: pending → loading → {completed, error}, and
# any settled state back to loading on retry.
_TRANSITIONS: Dict[ChapterStatus, tuple] = {
    ChapterStatus.PENDING: (ChapterStatus.LOADING,),
    ChapterStatus.LOADING: (ChapterStatus.COMPLETED, ChapterStatus.ERROR),
    ChapterStatus.COMPLETED: (ChapterStatus.LOADING,),
    ChapterStatus.ERROR: (ChapterStatus.LOADING,),
}


class InvalidTransition(Exception):
    """Raised when a record is moved to a status its current status does not allow."""
    pass


def placeholder_title(number: int) -> str:
    """Title used before the oracle supplies a real one."""
    return f"Chapter {number}"


def new_chapter_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ChapterRecord:
    """
    One addressable chapter in a manifest.

    Attributes:
        id: Opaque identifier, stable for the record's lifetime
        number: 1-based position in the manifest
        title: Placeholder until the oracle resolves the real title
        content: Body text, absent until a successful fetch
        status: Current lifecycle state
        error_message: Cause of the last failed fetch
        source_url: Provenance link from grounding metadata
    """
    id: str
    number: int
    title: str
    content: Optional[str] = None
    status: ChapterStatus = ChapterStatus.PENDING
    error_message: Optional[str] = None
    source_url: Optional[str] = None

    @property
    def has_content(self) -> bool:
        return bool(self.content)

    def _move_to(self, status: ChapterStatus, **changes) -> 'ChapterRecord':
        if status not in _TRANSITIONS[self.status]:
            raise InvalidTransition(
                f"Chapter {self.number}: cannot go from {self.status.value} to {status.value}"
            )
        return replace(self, status=status, **changes)

    def start_loading(self) -> 'ChapterRecord':
        """Optimistic transition taken before a fetch; clears the previous error."""
        return self._move_to(ChapterStatus.LOADING, error_message=None)

    def complete(
        self,
        content: str,
        title: str,
        source_url: Optional[str] = None
    ) -> 'ChapterRecord':
        """Record a successful fetch."""
        return self._move_to(
            ChapterStatus.COMPLETED,
            content=content,
            title=title,
            source_url=source_url,
        )

    def fail(self, message: str) -> 'ChapterRecord':
        """Record a failed fetch. Existing content is left as it was."""
        return self._move_to(ChapterStatus.ERROR, error_message=message)


@dataclass
class NovelMetadata:
    """Answer to a resolve-novel request."""
    exists: bool
    title: str = ""
    author: str = ""
    total_chapters: int = 0
    chapter_titles: List[str] = field(default_factory=list)


@dataclass
class ChapterResult:
    """Answer to a resolve-chapter request."""
    content: str
    title: str
    source_url: Optional[str] = None


@dataclass
class BatchProgress:
    """
    Progress of a running batch job.

    current counts chapters that have content (already completed before the
    job plus fetched successfully during it). attempted counts fetches made
    so far, successful or not.
    """
    current: int
    total: int
    attempted: int = 0
    to_fetch: int = 0


@dataclass
class ExportArtifact:
    """A compiled text document ready to be written by the host."""
    filename: str
    text: str
    chapter_numbers: List[int] = field(default_factory=list)

    @property
    def section_count(self) -> int:
        return len(self.chapter_numbers)


ManifestListener = Callable[[ChapterRecord], None]


class Manifest:
    """
    Ordered chapter records for one resolved novel.

    Records are replaced, never edited: update() swaps in a new record with
    the same id and notifies listeners with it.
    """

    def __init__(
        self,
        title: str,
        author: str = "",
        total_chapters: int = 0,
        chapters: Optional[List[ChapterRecord]] = None
    ):
        self.title = title
        self.author = author
        self.chapters: List[ChapterRecord] = list(chapters or [])
        self.total_chapters = total_chapters or len(self.chapters)
        self._index: Dict[str, int] = {c.id: i for i, c in enumerate(self.chapters)}
        self._listeners: List[ManifestListener] = []

    def __len__(self) -> int:
        return len(self.chapters)

    def get(self, chapter_id: str) -> Optional[ChapterRecord]:
        """Look up a record by id."""
        idx = self._index.get(chapter_id)
        if idx is None:
            return None
        return self.chapters[idx]

    def get_by_number(self, number: int) -> Optional[ChapterRecord]:
        for chapter in self.chapters:
            if chapter.number == number:
                return chapter
        return None

    def index_of(self, chapter_id: str) -> int:
        """Position of a record, or -1 if the id is unknown."""
        return self._index.get(chapter_id, -1)

    def in_range(self, start: int, end: int) -> List[ChapterRecord]:
        """Records with start <= number <= end, in manifest order."""
        return [c for c in self.chapters if start <= c.number <= end]

    def update(self, chapter_id: str, transform: Callable[[ChapterRecord], ChapterRecord]) -> ChapterRecord:
        """
        Replace one record with transform(record).

        Args:
            chapter_id: Id of the record to replace
            transform: Function producing the new record from the current one

        Returns:
            The new record

        Raises:
            KeyError: If no record has this id

        Listener errors are logged, never raised.
        """
        idx = self._index.get(chapter_id)
        if idx is None:
            raise KeyError(f"Unknown chapter id: {chapter_id}")

        updated = transform(self.chapters[idx])
        if updated.id != chapter_id:
            raise ValueError("Record id must not change on update")

        # Rebuild the list rather than assigning in place so that readers
        # holding the previous list see a consistent snapshot.
        chapters = list(self.chapters)
        chapters[idx] = updated
        self.chapters = chapters

        # A failing listener must not undo or block the update
        for listener in list(self._listeners):
            try:
                listener(updated)
            except Exception as e:
                log_error(f"Manifest listener failed for chapter {updated.number}: {e}")
        return updated

    def subscribe(self, listener: ManifestListener) -> None:
        """Register a callback invoked with every updated record."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: ManifestListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def count_by_status(self) -> Dict[ChapterStatus, int]:
        counts = {status: 0 for status in ChapterStatus}
        for chapter in self.chapters:
            counts[chapter.status] += 1
        return counts
