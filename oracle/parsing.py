"""
NovelWeaver - Oracle Response Parsing
Extracts the one JSON object an oracle answer is expected to contain
"""

import json
from typing import Any, Dict

from core.errors import InterpretationError
from core.logger import log_debug

DEFAULT_INTERPRETATION_MESSAGE = "Failed to interpret AI response. Please try again."


def extract_json_object(
    text: str,
    error_message: str = DEFAULT_INTERPRETATION_MESSAGE
) -> Dict[str, Any]:
    """
    Parse the JSON object spanning the first '{' to the last '}' of text.

    The oracle often wraps its answer in prose or a markdown fence; both are
    ignored.

    Args:
        text: Raw oracle answer
        error_message: Message for the InterpretationError raised on failure

    Returns:
        The decoded object

    Raises:
        InterpretationError: If no braces are found, the span is not valid
            JSON, or it decodes to something other than an object
    """
    text = text or ""
    start = text.find("{")
    end = text.rfind("}")

    if start == -1 or end == -1 or end < start:
        log_debug(f"No JSON object in oracle answer. Raw text: {text[:500]!r}")
        raise InterpretationError(error_message)

    try:
        parsed = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        log_debug(f"JSON parse error: {e}. Raw text: {text[:500]!r}")
        raise InterpretationError(error_message) from e

    if not isinstance(parsed, dict):
        raise InterpretationError(error_message)

    return parsed
