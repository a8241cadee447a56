"""
NovelWeaver - Content Oracle Client
Resolves novels and chapters through the search-backed oracle

Both operations run inside the rate-limit retry policy (llm/retry.py) and
turn the oracle's free-text answer into typed results or typed failures:

    resolve_novel(name)                       -> NovelMetadata
    resolve_chapter(title, number, hint=None) -> ChapterResult

The oracle is best-effort. Answers are checked for shape, never for
truthfulness.
"""

from typing import Any, Callable, Dict, List, Optional

from core.errors import ContentUnavailableError, TransportError, ValidationError
from core.logger import log_info, log_success, log_warning
from core.models import ChapterResult, NovelMetadata, placeholder_title
from llm.anthropic_client import AnthropicClient, AnthropicResponse, get_anthropic_client
from llm.retry import retry_with_backoff
from oracle.parsing import extract_json_object
from oracle.prompts import SYSTEM_PROMPT, build_chapter_prompt, build_novel_prompt

CHAPTER_PARSE_ERROR_MESSAGE = "Error parsing chapter data. Please retry."
CHAPTER_UNAVAILABLE_MESSAGE = "Chapter content unavailable."


def _as_int(value: Any) -> int:
    """Coerce an oracle-supplied number; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


def _as_str_list(value: Any) -> List[str]:
    """Coerce a list of titles. Positions are kept; missing entries become ""."""
    if not isinstance(value, list):
        return []
    return ["" if item is None else str(item).strip() for item in value]


class ContentOracleClient:
    """
    Typed front end to the oracle.

    Holds no session state; safe to share across manifests.
    """

    def __init__(
        self,
        chat_client: Optional[AnthropicClient] = None,
        preferred_sites: Optional[List[str]] = None,
        web_search_max_uses: int = 5,
        temperature: float = 0.2,
        max_attempts: int = 3,
        initial_delay: float = 2.0,
        backoff_multiplier: float = 2.0,
        min_query_length: int = 2,
        title_hint_count: int = 20,
        content_sentinel: str = "CONTENT_NOT_FOUND",
        sleep: Optional[Callable[[float], None]] = None
    ):
        """
        Initialize the oracle client.

        Args:
            chat_client: Transport (defaults to the global Anthropic client)
            preferred_sites: Sites named in every prompt
            web_search_max_uses: Search budget per request
            temperature: Sampling temperature
            max_attempts: Retry budget for rate-limited calls
            initial_delay: First backoff delay in seconds
            backoff_multiplier: Backoff growth factor
            min_query_length: Shortest accepted novel name (after trimming)
            title_hint_count: Chapter titles requested in resolve_novel
            content_sentinel: Marker meaning "no chapter text"
            sleep: Sleep function for backoff waits (defaults to time.sleep)
        """
        self._chat_client = chat_client
        self.preferred_sites = list(preferred_sites or [])
        self.web_search_max_uses = web_search_max_uses
        self.temperature = temperature
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.backoff_multiplier = backoff_multiplier
        self.min_query_length = min_query_length
        self.title_hint_count = title_hint_count
        self.content_sentinel = content_sentinel
        self._sleep = sleep

    @property
    def chat_client(self) -> AnthropicClient:
        if self._chat_client is None:
            self._chat_client = get_anthropic_client()
        return self._chat_client

    def validate_query(self, name: Optional[str]) -> str:
        """
        Trim and check a novel name.

        Raises:
            ValidationError: If the name is empty or too short
        """
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValidationError("Please enter a novel name.")
        if len(trimmed) < self.min_query_length:
            raise ValidationError("Novel name is too short. Please enter a valid name.")
        return trimmed

    def _with_retry(self, operation: Callable[[], Any], label: str) -> Any:
        return retry_with_backoff(
            operation,
            max_attempts=self.max_attempts,
            initial_delay=self.initial_delay,
            backoff_multiplier=self.backoff_multiplier,
            sleep=self._sleep,
            label=label,
        )

    def _ask(self, prompt: str) -> AnthropicResponse:
        """
        Send one oracle request.

        Raises:
            TransportError: If the request failed or the answer is empty
        """
        response = self.chat_client.chat(
            messages=[{"role": "user", "content": prompt}],
            system_prompt=SYSTEM_PROMPT,
            temperature=self.temperature,
            enable_web_search=True,
            web_search_max_uses=self.web_search_max_uses,
        )

        if not response.success:
            raise TransportError(
                response.error or "Oracle request failed",
                status_code=response.status_code,
                error_type=response.error_type,
            )

        if not (response.text or "").strip():
            raise TransportError("Empty response from AI")

        return response

    # =========================================================================
    # RESOLVE NOVEL
    # =========================================================================

    def resolve_novel(self, name: str) -> NovelMetadata:
        """
        Ask the oracle whether a novel exists and for its table of contents.

        Args:
            name: User-supplied novel name

        Returns:
            NovelMetadata (exists may be False; the caller decides what that means)

        Raises:
            ValidationError: Name shorter than the minimum, before any request
            InterpretationError: Answer held no well-formed JSON object
            QuotaExceededError: Rate limited on every attempt
            TransportError: Any other oracle failure
        """
        query = self.validate_query(name)
        prompt = build_novel_prompt(query, self.preferred_sites, self.title_hint_count)

        def attempt() -> NovelMetadata:
            log_info(f"Resolving novel '{query}'", prefix="🔎")
            response = self._ask(prompt)
            data: Dict[str, Any] = extract_json_object(response.text)
            return NovelMetadata(
                exists=bool(data.get("exists", False)),
                title=str(data.get("title") or query).strip(),
                author=str(data.get("author") or "").strip(),
                total_chapters=_as_int(data.get("totalChapters")),
                chapter_titles=_as_str_list(data.get("chapterTitles")),
            )

        metadata = self._with_retry(attempt, label=f"Resolve novel '{query}'")

        if metadata.exists:
            log_success(
                f"Oracle found '{metadata.title}' "
                f"({metadata.total_chapters or 'unknown'} chapters)"
            )
        else:
            log_warning(f"Oracle did not find '{query}'")
        return metadata

    # =========================================================================
    # RESOLVE CHAPTER
    # =========================================================================

    def resolve_chapter(
        self,
        novel_title: str,
        chapter_number: int,
        current_title: Optional[str] = None
    ) -> ChapterResult:
        """
        Ask the oracle for one chapter's text.

        Args:
            novel_title: Title of the manifest's novel (context for the search)
            chapter_number: 1-based chapter number
            current_title: Current record title, used as a hint if not a placeholder

        Returns:
            ChapterResult with content, resolved title and optional source URL

        Raises:
            ContentUnavailableError: Oracle reported not found, or sent the sentinel
            InterpretationError: Answer held no well-formed JSON object
            QuotaExceededError: Rate limited on every attempt
            TransportError: Any other oracle failure
        """
        prompt = build_chapter_prompt(
            novel_title,
            chapter_number,
            self.preferred_sites,
            current_title=current_title,
            sentinel=self.content_sentinel,
        )

        def attempt() -> ChapterResult:
            log_info(f"Fetching chapter {chapter_number} of '{novel_title}'", prefix="📖")
            response = self._ask(prompt)
            data = extract_json_object(response.text, CHAPTER_PARSE_ERROR_MESSAGE)

            content = data.get("content")
            if (
                not data.get("found")
                or not isinstance(content, str)
                or not content.strip()
                or self.content_sentinel in content
            ):
                raise ContentUnavailableError(CHAPTER_UNAVAILABLE_MESSAGE)

            urls = response.grounding_urls()
            title = str(data.get("title") or "").strip()
            return ChapterResult(
                content=content,
                title=title or placeholder_title(chapter_number),
                source_url=urls[0] if urls else None,
            )

        return self._with_retry(attempt, label=f"Chapter {chapter_number}")


# Global client instance
_oracle_client: Optional[ContentOracleClient] = None


def get_oracle_client() -> ContentOracleClient:
    """Get the global oracle client instance."""
    global _oracle_client
    if _oracle_client is None:
        import config
        _oracle_client = ContentOracleClient(
            preferred_sites=config.ORACLE_PREFERRED_SITES,
            web_search_max_uses=config.ORACLE_WEB_SEARCH_MAX_USES,
            temperature=config.ORACLE_TEMPERATURE,
            max_attempts=config.ORACLE_RETRY_MAX_ATTEMPTS,
            initial_delay=config.ORACLE_RETRY_INITIAL_DELAY,
            backoff_multiplier=config.ORACLE_RETRY_BACKOFF_MULTIPLIER,
            min_query_length=config.MANIFEST_MIN_QUERY_LENGTH,
            title_hint_count=config.MANIFEST_TITLE_HINT_COUNT,
            content_sentinel=config.CONTENT_NOT_FOUND_SENTINEL,
        )
    return _oracle_client


def init_oracle_client(**kwargs) -> ContentOracleClient:
    """Initialize the global oracle client with explicit settings."""
    global _oracle_client
    _oracle_client = ContentOracleClient(**kwargs)
    return _oracle_client
