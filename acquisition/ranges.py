"""
NovelWeaver - Download Ranges
Fixed-size chapter blocks (1-100, 101-200, ...) and their status
"""

from enum import Enum
from typing import List, Tuple

from core.errors import ValidationError
from core.models import ChapterStatus, Manifest


class RangeStatus(Enum):
    EMPTY = "empty"                # No records in the block
    DOWNLOADING = "downloading"    # A batch is running and something in the block is loading
    COMPLETED = "completed"        # Every chapter in a full block has content
    ERROR = "error"                # At least one chapter failed
    PARTIAL = "partial"            # Anything else


def range_blocks(manifest: Manifest, size: int = 100) -> List[Tuple[int, int]]:
    """
    Split 1..N into consecutive blocks of `size`.

    N is the larger of the oracle's chapter estimate and the number of records.
    """
    if size < 1:
        raise ValueError("Block size must be positive")

    max_chapters = max(manifest.total_chapters, len(manifest))
    return [
        (start, min(start + size - 1, max_chapters))
        for start in range(1, max_chapters + 1, size)
    ]


def range_status(
    manifest: Manifest,
    start: int,
    end: int,
    downloading: bool = False
) -> RangeStatus:
    """
    Summarize the records in start..end.

    Args:
        manifest: Manifest to inspect
        start: First chapter number
        end: Last chapter number
        downloading: Whether a batch job is currently running
    """
    chapters = manifest.in_range(start, end)
    if not chapters:
        return RangeStatus.EMPTY

    statuses = [c.status for c in chapters]

    if downloading and ChapterStatus.LOADING in statuses:
        return RangeStatus.DOWNLOADING
    if all(s == ChapterStatus.COMPLETED for s in statuses) and len(chapters) == end - start + 1:
        return RangeStatus.COMPLETED
    if ChapterStatus.ERROR in statuses:
        return RangeStatus.ERROR
    return RangeStatus.PARTIAL


def parse_range(text: str) -> Tuple[int, int]:
    """
    Parse "start-end" (or a single number) into a pair of ints.

    Raises:
        ValidationError: If the text is not a number or a number pair
    """
    cleaned = (text or "").replace(" ", "")
    first, sep, second = cleaned.partition("-")
    try:
        start = int(first)
        end = int(second) if sep else start
    except ValueError:
        raise ValidationError(f"Invalid range '{text}'. Use START-END, e.g. 1-100.")
    return start, end
