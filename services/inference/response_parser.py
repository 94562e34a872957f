"""Helpers to extract data from generateContent responses.

Every helper tolerates arbitrary JSON: a shape it does not expect yields the
fallback value instead of an exception.
"""

from typing import Any, Dict, Optional

NO_RESULT = "No result"


def _first(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def _field(value: Any, key: str) -> Any:
    if isinstance(value, dict):
        return value.get(key)
    return None


def extract_text(payload: Any) -> str:
    """Return `candidates[0].content.parts[0].text`, or NO_RESULT when absent.

    Missing levels, wrong container types, non-string text and empty text all
    produce the sentinel.
    """
    candidate = _first(_field(payload, "candidates"))
    part = _first(_field(_field(candidate, "content"), "parts"))
    text = _field(part, "text")
    if isinstance(text, str) and text.strip():
        return text
    return NO_RESULT


def extract_usage(payload: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = _field(payload, "usageMetadata")
    input_tokens = _field(usage, "promptTokenCount")
    output_tokens = _field(usage, "candidatesTokenCount")
    return {
        "input_tokens": input_tokens if isinstance(input_tokens, int) else None,
        "output_tokens": output_tokens if isinstance(output_tokens, int) else None,
    }
