"""Normalization of model replies into validated analysis records."""

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from .errors import ParseError
from .results import UsageMetrics

logger = logging.getLogger(__name__)

# Opening fence with optional language tag (```json, ```JSON, ```),
# and the closing fence.
_OPENING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\r?\n?")
_CLOSING_FENCE = re.compile(r"\r?\n?```$")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence and whitespace."""
    stripped = text.strip()
    stripped = _OPENING_FENCE.sub("", stripped, count=1)
    stripped = _CLOSING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def normalize_response(raw_text: str) -> dict[str, Any]:
    """Parse and validate a model reply.

    Args:
        raw_text: Reply text, possibly wrapped in a code fence.

    Returns:
        The parsed object, unchanged. Fields beyond ``tags`` and
        ``correspondent`` are not validated.

    Raises:
        ParseError: If the reply is not JSON, not an object, ``tags`` is
            not a list, or ``correspondent`` is not a string (null included).
    """
    payload = strip_code_fences(raw_text or "")
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as e:
        logger.debug("Unparseable model reply: %.200s", payload)
        raise ParseError(f"Invalid JSON response from API: {e}") from e

    if not isinstance(parsed, dict):
        raise ParseError(
            f"Invalid response structure: expected a JSON object, got {type(parsed).__name__}"
        )
    if not isinstance(parsed.get("tags"), list) or not isinstance(parsed.get("correspondent"), str):
        raise ParseError(
            "Invalid response structure: missing tags array or correspondent string"
        )
    return parsed


def map_usage(usage: Mapping[str, Any] | Any | None) -> UsageMetrics | None:
    """Rename provider usage counters into UsageMetrics.

    Accepts a mapping or an SDK usage object with ``prompt_tokens``,
    ``completion_tokens`` and ``total_tokens``. Missing or partial usage
    maps to None: metrics are reported only when all three counters are
    integers.
    """
    if usage is None:
        return None

    def _get(name: str) -> Any:
        if isinstance(usage, Mapping):
            return usage.get(name)
        return getattr(usage, name, None)

    prompt, completion, total = (
        _get("prompt_tokens"), _get("completion_tokens"), _get("total_tokens"),
    )
    counters = (prompt, completion, total)
    if not all(isinstance(c, int) and not isinstance(c, bool) for c in counters):
        if any(c is not None for c in counters):
            logger.debug("Ignoring incomplete usage counters: %r", usage)
        return None
    return UsageMetrics(
        prompt_tokens=prompt,
        completion_tokens=completion,
        total_tokens=total,
    )
