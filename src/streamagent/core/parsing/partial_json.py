"""Partial-JSON / mixed-content parser for streamed model output.

A model response may mix free text, fenced code blocks and a tagged JSON
region, and while it is streaming any of those may be cut off mid-way.
:func:`parse_partial_json` runs a pipeline of small pure steps:

1. tag extraction (:mod:`streamagent.core.parsing.tags`)
2. code-fence unwrapping, tolerant of a missing closing fence
3. balanced-brace scan, keeping the *last* closed top-level object
4. leading/trailing fence stripping
5. lenient decode via ``json_repair`` with a strict ``json`` fallback
6. an independent strict validity check

The lenient decode and the validity flag are deliberately independent:
callers show partial data while ``is_valid`` is still false.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from json_repair import repair_json

from streamagent.core.parsing.tags import META_TAG, extract_tagged

logger = logging.getLogger(__name__)

_FENCE_RUN_RE = re.compile(r"`{3,}")
# "```json```json" style duplicated openers on one line
_DUPLICATE_OPENER_RE = re.compile(r"```[ \t]*(?:json)?[ \t]*```[ \t]*(?:json)?", re.IGNORECASE)
_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_OPEN_FENCE_RE = re.compile(r"```(?:json)?\s*\n?", re.IGNORECASE)
_LEADING_FENCE_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_TRAILING_FENCE_RE = re.compile(r"\s*```\s*$")


@dataclass(frozen=True)
class PartialJsonResult:
    """Best-effort decode of a possibly incomplete payload."""

    data: dict[str, Any] = field(default_factory=dict)
    is_valid: bool = False
    raw: str = ""
    text_content: str = ""


def parse_partial_json(text: str, *, tag: str = META_TAG) -> PartialJsonResult:
    """Parse *text* into a :class:`PartialJsonResult`.  Never raises."""
    try:
        return _parse(text, tag)
    except Exception:
        logger.debug("partial JSON parse degraded to empty result", exc_info=True)
        return PartialJsonResult(data={}, is_valid=False, raw=text, text_content="")


def _parse(text: str, tag: str) -> PartialJsonResult:
    extraction = extract_tagged(text, tag)
    if extraction is not None:
        text_content = extraction.text_before
        candidate = extraction.body
    else:
        text_content = ""
        candidate = text
        if not candidate.lstrip().startswith("{"):
            candidate = extract_json_candidate(text)

    cleaned = strip_code_fences(candidate)
    if not cleaned:
        return PartialJsonResult(data={}, is_valid=False, raw=text, text_content=text_content)

    return PartialJsonResult(
        data=decode_lenient(cleaned),
        is_valid=is_strict_json(cleaned),
        raw=text,
        text_content=text_content,
    )


# ---------------------------------------------------------------------------
# Pipeline steps
# ---------------------------------------------------------------------------


def normalize_fences(text: str) -> str:
    """Collapse over-long and duplicated fence markers into plain ones."""
    text = _FENCE_RUN_RE.sub("```", text)
    return _DUPLICATE_OPENER_RE.sub("```json", text)


def find_fenced_block(text: str) -> str | None:
    """Return the body of the first fenced block, or ``None``.

    An opening fence without a closing one (the response is still
    streaming) yields everything after the opener.
    """
    normalized = normalize_fences(text)

    closed = _FENCED_BLOCK_RE.search(normalized)
    if closed and closed.group(1).strip():
        return closed.group(1).strip()

    opener = _OPEN_FENCE_RE.search(normalized)
    if opener:
        remainder = normalized[opener.end() :].strip()
        if remainder:
            return remainder
    return None


def balanced_object_spans(text: str) -> list[str]:
    """Every top-level ``{...}`` span of *text* that closes, in order."""
    return [text[start:end] for start, end in _iter_object_spans(text)]


def extract_json_candidate(text: str) -> str:
    """Pick the JSON-bearing part of free text: fenced block, else last object."""
    fenced = find_fenced_block(text)
    if fenced is not None:
        return fenced

    spans = balanced_object_spans(text)
    if spans:
        return spans[-1]
    return text


def strip_code_fences(candidate: str) -> str:
    """Strip a leading ```` ```json ```` and a trailing ```` ``` ```` marker."""
    cleaned = normalize_fences(candidate.strip())
    cleaned = _LEADING_FENCE_RE.sub("", cleaned)
    cleaned = _TRAILING_FENCE_RE.sub("", cleaned)
    return cleaned.strip()


def decode_lenient(candidate: str) -> dict[str, Any]:
    """Decode as much of *candidate* as possible; ``{}`` when nothing resolves.

    Trailing prose after a closed leading object is discarded before the
    lenient decoder sees it.
    """
    target = _leading_object(candidate)
    try:
        value = repair_json(target, return_objects=True)
    except Exception:
        logger.debug("lenient decode failed for %.80r", target, exc_info=True)
        value = None

    if isinstance(value, dict):
        return value

    try:
        strict = json.loads(candidate)
    except json.JSONDecodeError:
        return {}
    return strict if isinstance(strict, dict) else {}


def is_strict_json(candidate: str) -> bool:
    try:
        json.loads(candidate)
    except json.JSONDecodeError:
        return False
    return True


def summary_of(result: PartialJsonResult) -> str:
    """Narrative to show for a parsed turn: tag-preceding text, else ``summary``."""
    if result.text_content:
        return result.text_content
    summary = result.data.get("summary")
    return summary if isinstance(summary, str) else ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _iter_object_spans(text: str) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` of closed top-level objects.

    Braces inside JSON string literals are ignored; quotes are only tracked
    inside an object so stray quotes in surrounding prose do not matter.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"' and depth > 0:
            in_string = True
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield start, index + 1


def _leading_object(candidate: str) -> str:
    if not candidate.startswith("{"):
        return candidate
    for start, end in _iter_object_spans(candidate):
        if start == 0:
            return candidate[:end]
        break
    return candidate
