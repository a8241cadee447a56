"""
NovelWeaver - Chapter Loader
Fetches one chapter's text and records the outcome on its manifest record
"""

from core.logger import log_error, log_success, log_warning
from core.models import ChapterRecord, ChapterStatus, Manifest
from oracle.client import ContentOracleClient


def should_auto_load(record: ChapterRecord) -> bool:
    """
    Whether selecting this record should trigger a fetch on its own.

    Records that already have content, are loading, or failed last time
    are left alone; a failed record needs an explicit retry.
    """
    return (
        not record.has_content
        and record.status not in (ChapterStatus.LOADING, ChapterStatus.ERROR)
    )


class ChapterLoader:
    """
    Drives a single chapter fetch.

    load() never raises for oracle failures: they are written to the
    record (status=error, error_message) and reported as False, so batch
    iteration can move on to the next chapter.
    """

    def __init__(self, oracle: ContentOracleClient):
        self.oracle = oracle

    def load(self, manifest: Manifest, chapter_id: str) -> bool:
        """
        Fetch content for one record.

        The record is switched to loading (clearing any previous error)
        before the oracle call starts.

        Args:
            manifest: Manifest holding the record; its title is the search context
            chapter_id: Id of the record to fetch

        Returns:
            True if content was stored, False otherwise
        """
        record = manifest.get(chapter_id)
        if record is None:
            log_warning(f"Chapter id {chapter_id} is not in the current manifest")
            return False

        if record.status == ChapterStatus.LOADING:
            log_warning(f"Chapter {record.number} is already loading, skipping")
            return False

        manifest.update(chapter_id, lambda r: r.start_loading())

        try:
            result = self.oracle.resolve_chapter(manifest.title, record.number, record.title)
            updated = manifest.update(
                chapter_id,
                lambda r: r.complete(result.content, result.title, result.source_url)
            )
        except Exception as e:
            message = str(e) or e.__class__.__name__
            log_error(f"Failed to load chapter {record.number}: {message}")
            manifest.update(chapter_id, lambda r: r.fail(message))
            return False

        log_success(f"Chapter {updated.number} loaded: {updated.title}")
        return True
