"""
Extraction of a single JSON value from free-text LLM replies.

Models tend to wrap their JSON in prose or ```json fences.  The extraction
strategy is pluggable: ``BracketSpanExtractor`` (the default) slices from the
first opening bracket to the last closing bracket; ``BalancedBracketExtractor``
scans for the first balanced, string-aware block instead.

Known limitation of the default: a stray bracket in prose before the JSON (or
after it) widens the slice and the parse fails.

Public API
----------
parse_llm_json(text, extractor=None) -> Any
get_extractor(name)                  -> JsonExtractor
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Protocol

from app.config import settings
from app.exceptions import MalformedModelOutputError
from app.utils.helpers import truncate_text

logger = logging.getLogger(__name__)


class JsonExtractor(Protocol):
    """Locates the substring of *text* that should hold the JSON payload."""

    name: str

    def extract_span(self, text: str) -> Optional[str]:
        ...


class BracketSpanExtractor:
    """
    First-bracket / last-bracket heuristic.

    Start is whichever of ``{`` or ``[`` occurs first; end is the later of the
    last ``}`` and the last ``]``.  Assumes exactly one top-level JSON value.
    """

    name = "bracket_span"

    def extract_span(self, text: str) -> Optional[str]:
        starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
        if not starts:
            return None
        start = min(starts)

        end = max(text.rfind("}"), text.rfind("]"))
        if end == -1 or end < start:
            return None

        return text[start:end + 1]


class BalancedBracketExtractor:
    """
    Return the first complete, balanced ``{…}`` or ``[…]`` block.

    Brackets inside JSON strings are ignored, so trailing prose such as
    "(see [1])" after the payload does not leak into the slice.
    """

    name = "balanced"

    _PAIRS = {"{": "}", "[": "]"}

    def extract_span(self, text: str) -> Optional[str]:
        starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
        if not starts:
            return None
        start = min(starts)

        stack = []
        in_string = False
        escape_next = False

        for i in range(start, len(text)):
            ch = text[i]
            if escape_next:
                escape_next = False
                continue
            if in_string:
                if ch == "\\":
                    escape_next = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch in self._PAIRS:
                stack.append(self._PAIRS[ch])
            elif ch in ("}", "]"):
                if not stack or stack.pop() != ch:
                    return None
                if not stack:
                    return text[start:i + 1]
        return None


_EXTRACTORS: Dict[str, JsonExtractor] = {
    BracketSpanExtractor.name: BracketSpanExtractor(),
    BalancedBracketExtractor.name: BalancedBracketExtractor(),
}


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are not JSON
    raise ValueError(f"Invalid JSON constant {name!r}")


def get_extractor(name: Optional[str] = None) -> JsonExtractor:
    """Look up an extractor by name; defaults to the ``JSON_EXTRACTOR`` setting."""
    key = name or settings.JSON_EXTRACTOR
    try:
        return _EXTRACTORS[key]
    except KeyError:
        raise ValueError(
            f"Unknown JSON extractor {key!r}. Available: {', '.join(sorted(_EXTRACTORS))}"
        )


def parse_llm_json(text: Optional[str], extractor: Optional[JsonExtractor] = None) -> Any:
    """
    Parse the JSON object or array embedded in an LLM reply.

    Args:
        text: Raw model output.
        extractor: Span-locating strategy; the configured default when omitted.

    Returns:
        The parsed JSON value (dict or list).

    Raises:
        MalformedModelOutputError: No bracketed span, or the span is not valid
            JSON.  The raw text is attached for diagnostics.
    """
    extractor = extractor or get_extractor()
    raw = text or ""

    span = extractor.extract_span(raw)
    if span is None:
        logger.warning(
            "parse_llm_json: no JSON structure found (%s). Raw reply: %s",
            extractor.name,
            truncate_text(raw, 2000),
        )
        raise MalformedModelOutputError(
            "Could not find a JSON object or array in the LLM response.",
            raw_text=raw,
        )

    try:
        return json.loads(span, parse_constant=_reject_constant)
    except (json.JSONDecodeError, ValueError) as exc:
        logger.warning(
            "parse_llm_json: invalid JSON (%s). Raw reply: %s",
            exc,
            truncate_text(raw, 2000),
        )
        raise MalformedModelOutputError(
            f"Failed to parse the JSON response from the AI model: {exc}",
            raw_text=raw,
        ) from exc
