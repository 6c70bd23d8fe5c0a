"""Pull structured JSON out of free-form model output."""

from __future__ import annotations

import json
from typing import Any

from dramaforge.exceptions import ParseError

FENCE = "```"


def strip_code_fence(text: str) -> str:
    """Drop a surrounding Markdown code fence if the text starts with one.

    The first line (``` or ```json) is always removed; the last line is
    removed only when it is a lone fence marker.
    """
    stripped = text.strip()
    if not stripped.startswith(FENCE):
        return stripped
    lines = stripped.split("\n")[1:]
    if lines and lines[-1].strip() == FENCE:
        lines.pop()
    return "\n".join(lines)


def extract_json(text: str) -> Any:
    """Parse the JSON object embedded in ``text``.

    After fence stripping, the substring from the first ``{`` to the last
    ``}`` is parsed. When no braces are present the whole remainder is
    parsed as-is.

    Raises:
        ParseError: If the candidate text is not valid JSON. The original
            text is attached as ``raw_text``.
    """
    candidate = strip_code_fence(text)
    start = candidate.find("{")
    end = candidate.rfind("}")
    if start != -1 and end != -1:
        candidate = candidate[start : end + 1]

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ParseError(
            f"Model output is not valid JSON: {e.msg} at position {e.pos}",
            raw_text=text,
        ) from e


def extract_json_object(text: str, required_key: str | None = None) -> dict[str, Any]:
    """Like ``extract_json`` but insists on an object, optionally with a key."""
    data = extract_json(text)
    if not isinstance(data, dict):
        raise ParseError(
            f"Expected a JSON object, got {type(data).__name__}", raw_text=text
        )
    if required_key is not None and required_key not in data:
        raise ParseError(
            f"JSON object is missing the '{required_key}' field", raw_text=text
        )
    return data
