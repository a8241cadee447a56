"""
NovelWeaver - Chapter Manifest Builder
Creates the placeholder chapter list for a resolved novel
"""

from core.errors import NotFoundError
from core.logger import log_info
from core.models import ChapterRecord, Manifest, new_chapter_id, placeholder_title
from oracle.client import ContentOracleClient

NOT_FOUND_MESSAGE = "Novel not found on supported sites ({sites})."


class ManifestBuilder:
    """Builds a fresh Manifest from one resolve-novel oracle call."""

    def __init__(
        self,
        oracle: ContentOracleClient,
        default_chapter_count: int = 100
    ):
        self.oracle = oracle
        self.default_chapter_count = default_chapter_count

    def build(self, query: str) -> Manifest:
        """
        Resolve a novel and create its manifest.

        Every record starts pending, numbered 1..N, with a fresh id and
        the oracle's title for that position when one was supplied.

        Args:
            query: User-supplied novel name

        Returns:
            A new Manifest (never merged with any existing one)

        Raises:
            ValidationError: Query too short (no oracle call is made)
            NotFoundError: Oracle says the novel does not exist
            InterpretationError, QuotaExceededError, TransportError: from the oracle
        """
        metadata = self.oracle.resolve_novel(query)

        if not metadata.exists:
            sites = ", ".join(self.oracle.preferred_sites) or "the web"
            raise NotFoundError(NOT_FOUND_MESSAGE.format(sites=sites))

        total = metadata.total_chapters or self.default_chapter_count
        titles = metadata.chapter_titles

        chapters = [
            ChapterRecord(
                id=new_chapter_id(),
                number=n,
                title=(titles[n - 1] if n - 1 < len(titles) else "") or placeholder_title(n),
            )
            for n in range(1, total + 1)
        ]

        log_info(
            f"Manifest built for '{metadata.title}': {total} chapters, "
            f"{sum(1 for t in titles[:total] if t)} titled",
            prefix="📚"
        )

        return Manifest(
            title=metadata.title,
            author=metadata.author,
            total_chapters=total,
            chapters=chapters,
        )
