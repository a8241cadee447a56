"""
NovelWeaver - Export Compiler
Compiles downloaded chapters into one Markdown document

Document layout:

    # {novel title}
    **Author:** {author}            (only when known)
    **Chapters:** {start} - {end}
    **Generated by:** {generator tag}

    ***

    ## {chapter title}

    {chapter content}

    ***

Filenames are "{sanitized title}_{start}-{end}.md" for ranges and
"{number}-{sanitized title}.md" for single chapters.
"""

import re
from pathlib import Path

from core.errors import ExportEmptyError
from core.logger import log_info, log_success
from core.models import ChapterRecord, ExportArtifact, Manifest

SECTION_SEPARATOR = "***"


def sanitize_filename(title: str) -> str:
    """Lowercase and replace every non-alphanumeric character with '_'."""
    return re.sub(r"[^a-zA-Z0-9]", "_", title).lower()


class ExportCompiler:
    """Builds export artifacts from the current manifest state. Never mutates records."""

    def __init__(self, generator_tag: str = "NovelWeaver AI"):
        self.generator_tag = generator_tag

    def compile_range(self, manifest: Manifest, start: int, end: int) -> ExportArtifact:
        """
        Concatenate every chapter with content in [start, end], ordered by number.

        Args:
            manifest: Manifest to read (its state at call time is what gets exported)
            start: First chapter number, inclusive
            end: Last chapter number, inclusive

        Returns:
            ExportArtifact with filename and document text

        Raises:
            ExportEmptyError: If no chapter in range has content
        """
        chapters = [c for c in manifest.in_range(start, end) if c.has_content]
        if not chapters:
            raise ExportEmptyError(f"Failed to download any chapters in range {start}-{end}.")

        chapters.sort(key=lambda c: c.number)

        parts = [f"# {manifest.title}\n"]
        if manifest.author:
            parts.append(f"**Author:** {manifest.author}\n")
        parts.append(f"**Chapters:** {start} - {end}\n")
        parts.append(f"**Generated by:** {self.generator_tag}\n\n{SECTION_SEPARATOR}\n\n")

        for chapter in chapters:
            parts.append(f"## {chapter.title}\n\n{chapter.content}\n\n{SECTION_SEPARATOR}\n\n")

        artifact = ExportArtifact(
            filename=f"{sanitize_filename(manifest.title)}_{start}-{end}.md",
            text="".join(parts),
            chapter_numbers=[c.number for c in chapters],
        )
        log_info(
            f"Compiled {artifact.section_count} chapters of range {start}-{end} into {artifact.filename}",
            prefix="📝"
        )
        return artifact

    def compile_chapter(self, chapter: ChapterRecord) -> ExportArtifact:
        """
        Export a single chapter as its own document.

        Raises:
            ExportEmptyError: If the chapter has no content
        """
        if not chapter.has_content:
            raise ExportEmptyError(f"Chapter {chapter.number} has no content to save.")

        return ExportArtifact(
            filename=f"{chapter.number}-{sanitize_filename(chapter.title)}.md",
            text=f"# {chapter.title}\n\n{chapter.content}",
            chapter_numbers=[chapter.number],
        )


def save_artifact(artifact: ExportArtifact, directory: Path) -> Path:
    """
    Write an artifact into a directory, replacing any file of the same name.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / artifact.filename
    path.write_text(artifact.text, encoding="utf-8")
    log_success(f"Saved {artifact.filename} ({len(artifact.text):,} chars)")
    return path
