"""
NovelWeaver - Oracle Prompts
Request templates for the two oracle intents: resolve-novel and resolve-chapter
"""

from typing import List, Optional


SYSTEM_PROMPT = (
    "You are a research assistant that locates web novels online and reports "
    "what you find as a single strict JSON object. Never add commentary outside the JSON."
)


# =============================================================================
# RESOLVE NOVEL
# =============================================================================

NOVEL_METADATA_PROMPT = """<task>
Search for the webnovel "{novel_name}" specifically on sites like {site_list}.

I need metadata about this novel to create a table of contents.
</task>

<output_format>
Return a STRICT JSON object with this exact structure (no markdown formatting outside the JSON):
{{
  "exists": boolean,         // true if found on any of the specified sites
  "title": string,           // The full, correct title of the novel
  "author": string,          // The author's name
  "totalChapters": number,   // The estimated total number of chapters (e.g., 1500). If unknown, guess based on latest chapter.
  "chapterTitles": string[]  // An array containing the titles of the first {title_hint_count} chapters.
}}

If the novel cannot be found on these sites, set "exists" to false.
</output_format>"""


# =============================================================================
# RESOLVE CHAPTER
# =============================================================================

CHAPTER_CONTENT_PROMPT = """<task>
Search for and retrieve the full text content of Chapter {chapter_number} of the webnovel "{novel_title}".
{title_hint}
Prioritize searching: {site_list}.
</task>

<output_format>
Return a STRICT JSON object with this exact structure:
{{
  "found": boolean,   // true if content is retrieved
  "title": string,    // The specific title of this chapter (e.g., "The Beginning")
  "content": string   // The full story text in Markdown format. Use ## for headers. Ensure it is long and complete.
}}

Rules:
1. If the text is found, "found" is true.
2. If strictly unavailable, "found" is false and "content" is "{sentinel}".
3. Do NOT include filler text like "Here is the chapter". Just the JSON.
</output_format>"""


def build_novel_prompt(novel_name: str, sites: List[str], title_hint_count: int = 20) -> str:
    """Fill the resolve-novel template."""
    return NOVEL_METADATA_PROMPT.format(
        novel_name=novel_name,
        site_list=", ".join(sites),
        title_hint_count=title_hint_count,
    )


def build_chapter_prompt(
    novel_title: str,
    chapter_number: int,
    sites: List[str],
    current_title: Optional[str] = None,
    sentinel: str = "CONTENT_NOT_FOUND"
) -> str:
    """
    Fill the resolve-chapter template.

    The current title is passed along as a hint only when it is a real
    title, not a "Chapter N" placeholder.
    """
    title_hint = ""
    if current_title and not current_title.startswith("Chapter"):
        title_hint = f'The chapter title is likely "{current_title}".\n'

    return CHAPTER_CONTENT_PROMPT.format(
        chapter_number=chapter_number,
        novel_title=novel_title,
        title_hint=title_hint,
        site_list=", ".join(sites),
        sentinel=sentinel,
    )
