"""
NovelWeaver - Anthropic Claude Client
Transport to the oracle: Claude with server-side web search
"""

from typing import Optional, List, Dict, Any
from dataclasses import dataclass, field

from core.logger import log_info, log_debug


@dataclass
class WebSearchCitation:
    """A citation from web search results."""
    cited_text: str
    title: str
    url: str


@dataclass
class AnthropicResponse:
    """Response from Anthropic API."""
    text: str
    input_tokens: int
    output_tokens: int
    success: bool
    error: Optional[str] = None
    error_type: Optional[str] = None  # "rate_limited", "overloaded", "server_error", "auth_error", etc.
    status_code: Optional[int] = None
    stop_reason: Optional[str] = None
    # Web search fields
    web_searches_used: int = 0
    citations: List[WebSearchCitation] = field(default_factory=list)
    search_result_urls: List[str] = field(default_factory=list)

    def grounding_urls(self) -> List[str]:
        """
        Candidate source URLs, cited URLs first, then raw search results.

        Duplicates and empty values are dropped; order is preserved.
        """
        urls: List[str] = []
        for url in [c.url for c in self.citations] + self.search_result_urls:
            if url and url not in urls:
                urls.append(url)
        return urls


class AnthropicClient:
    """
    Client for Anthropic Claude API.

    Used as a search-backed oracle: every request may run web searches
    before the model writes its answer.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 16000,
        timeout: int = 300
    ):
        """
        Initialize the Anthropic client.

        Args:
            api_key: Anthropic API key
            model: Model to use
            max_tokens: Maximum tokens to generate
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client = None

    def _get_client(self):
        """Lazy-load the Anthropic client."""
        if self._client is None:
            import anthropic
            self._client = anthropic.Anthropic(
                api_key=self.api_key,
                timeout=self.timeout
            )
        return self._client

    def is_available(self) -> bool:
        """Check if Anthropic API is configured."""
        return bool(self.api_key)

    def _classify_error(self, error: Exception) -> tuple:
        """
        Classify an API error.

        Returns:
            Tuple of (error_type, error_message, status_code)
        """
        import anthropic

        error_msg = str(error)

        # Check specific anthropic SDK exception types
        if isinstance(error, anthropic.APITimeoutError):
            return ("timeout", "Request timed out", None)
        elif isinstance(error, anthropic.APIConnectionError):
            return ("connection_error", "Connection failed", None)
        elif isinstance(error, anthropic.RateLimitError):
            return ("rate_limited", f"Rate limit exceeded (429): {error_msg}", 429)
        elif isinstance(error, anthropic.APIStatusError):
            status = error.status_code
            if status == 529:
                return ("overloaded", "API overloaded", status)
            elif status in (500, 502, 503):
                return ("server_error", f"Server error ({status})", status)
            elif status in (401, 403):
                return ("auth_error", "Authentication failed", status)
            elif status == 400:
                return ("bad_request", error_msg, status)
            return ("unknown", error_msg, status)

        # Fallback: check error message text
        error_lower = error_msg.lower()
        if "overloaded" in error_lower:
            return ("overloaded", "API overloaded", None)
        elif "rate" in error_lower and "limit" in error_lower:
            return ("rate_limited", "Rate limit exceeded", None)
        elif "authentication" in error_lower or "api key" in error_lower:
            return ("auth_error", "Invalid API key", None)

        return ("unknown", error_msg, None)

    def chat(
        self,
        messages: List[Dict[str, Any]],
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
        enable_web_search: bool = False,
        web_search_max_uses: Optional[int] = None,
        model: Optional[str] = None
    ) -> AnthropicResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts ({"role": ..., "content": ...})
            system_prompt: Optional system prompt
            max_tokens: Maximum tokens to generate (uses default if None)
            temperature: Sampling temperature
            enable_web_search: Whether to enable Claude's web search tool
            web_search_max_uses: Max searches per request (None = no limit)
            model: Optional model override (uses instance model if None)

        Returns:
            AnthropicResponse; failures are reported with success=False,
            never raised
        """
        if max_tokens is None:
            max_tokens = self.max_tokens

        try:
            client = self._get_client()

            request_params = {
                "model": model or self.model,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "messages": messages
            }

            if system_prompt:
                request_params["system"] = system_prompt

            if enable_web_search:
                web_search_tool = {
                    "type": "web_search_20250305",
                    "name": "web_search",
                }
                if web_search_max_uses is not None:
                    web_search_tool["max_uses"] = web_search_max_uses
                request_params["tools"] = [web_search_tool]

            response = client.messages.create(**request_params)
            return self._parse_response(response)

        except Exception as e:
            error_type, error_msg, status_code = self._classify_error(e)
            log_debug(f"Anthropic request failed: {error_type} - {error_msg}")

            return AnthropicResponse(
                text="",
                input_tokens=0,
                output_tokens=0,
                success=False,
                error=error_msg,
                error_type=error_type,
                status_code=status_code
            )

    def _parse_response(self, response) -> AnthropicResponse:
        """
        Flatten SDK content blocks into an AnthropicResponse.

        Text blocks are concatenated. Citations attached to text blocks and
        URLs listed in web search result blocks are both collected.
        """
        # Note: iterations use the (x or []) pattern; attributes can exist but be None
        text = ""
        web_searches_used = 0
        citations: List[WebSearchCitation] = []
        search_result_urls: List[str] = []

        content_blocks = getattr(response, "content", None) or []
        for block in content_blocks:
            block_type = getattr(block, "type", None)

            if block_type == "text":
                block_text = getattr(block, "text", None)
                if block_text:
                    text += block_text
                for citation in getattr(block, "citations", None) or []:
                    citations.append(WebSearchCitation(
                        cited_text=getattr(citation, "cited_text", "") or "",
                        title=getattr(citation, "title", "") or "",
                        url=getattr(citation, "url", "") or ""
                    ))
            elif block_type == "server_tool_use":
                if getattr(block, "name", None) == "web_search":
                    web_searches_used += 1
                    query = (getattr(block, "input", None) or {}).get("query", "")
                    log_info(f"Web search invoked ({web_searches_used}): {query}", prefix="🔍")
            elif block_type == "web_search_tool_result":
                # content is a list of results, or an error object
                results = getattr(block, "content", None)
                if isinstance(results, list):
                    for result in results:
                        url = getattr(result, "url", None)
                        if url:
                            search_result_urls.append(url)

        usage = getattr(response, "usage", None)
        return AnthropicResponse(
            text=text,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            success=True,
            stop_reason=getattr(response, "stop_reason", None),
            web_searches_used=web_searches_used,
            citations=citations,
            search_result_urls=search_result_urls
        )


# Global client instance
_anthropic_client: Optional[AnthropicClient] = None


def get_anthropic_client() -> AnthropicClient:
    """Get the global Anthropic client instance."""
    global _anthropic_client
    if _anthropic_client is None:
        from config import ANTHROPIC_API_KEY, ANTHROPIC_MODEL, ANTHROPIC_MAX_TOKENS, ANTHROPIC_TIMEOUT
        _anthropic_client = AnthropicClient(
            api_key=ANTHROPIC_API_KEY,
            model=ANTHROPIC_MODEL,
            max_tokens=ANTHROPIC_MAX_TOKENS,
            timeout=ANTHROPIC_TIMEOUT
        )
    return _anthropic_client


def init_anthropic_client(
    api_key: str,
    model: str = "claude-sonnet-4-5-20250929",
    max_tokens: int = 16000,
    timeout: int = 300
) -> AnthropicClient:
    """Initialize the global Anthropic client."""
    global _anthropic_client
    _anthropic_client = AnthropicClient(
        api_key=api_key,
        model=model,
        max_tokens=max_tokens,
        timeout=timeout
    )
    return _anthropic_client
