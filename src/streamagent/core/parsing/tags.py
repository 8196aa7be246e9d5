"""Tag-scoped extraction — split narrative text from a tagged payload.

Models embed machine-readable payloads in their prose using an XML-like
sentinel tag (``<agent_meta>{...}</agent_meta>``).  While a response is
still streaming the closing tag may not have arrived yet, so every helper
here treats "opening tag up to end of input" as an open tag body.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache

META_TAG = "agent_meta"


@dataclass(frozen=True)
class TagExtraction:
    """Result of locating a sentinel tag in a text."""

    text_before: str
    body: str
    closed: bool


def extract_tagged(text: str, tag: str = META_TAG) -> TagExtraction | None:
    """Locate the first ``<tag>`` in *text*.

    Returns ``None`` when no opening tag is present.  Otherwise
    ``text_before`` is everything preceding the opening tag (trimmed) and
    ``body`` is everything up to the matching closing tag, or to the end of
    input when the closing tag has not been emitted yet (trimmed).
    """
    opening = f"<{tag}>"
    closing = f"</{tag}>"

    start = text.find(opening)
    if start < 0:
        return None

    body_start = start + len(opening)
    end = text.find(closing, body_start)
    closed = end >= 0
    body = text[body_start:end] if closed else text[body_start:]

    return TagExtraction(
        text_before=text[:start].strip(),
        body=body.strip(),
        closed=closed,
    )


def strip_tagged(text: str, tag: str = META_TAG) -> str:
    """Remove every ``<tag>...</tag>`` region plus a trailing unclosed one."""
    complete, dangling = _tag_patterns(tag)
    cleaned = complete.sub("", text)
    cleaned = dangling.sub("", cleaned)
    return cleaned.strip()


@lru_cache(maxsize=16)
def _tag_patterns(tag: str) -> tuple[re.Pattern[str], re.Pattern[str]]:
    escaped = re.escape(tag)
    complete = re.compile(rf"<{escaped}>.*?</{escaped}>", re.DOTALL)
    dangling = re.compile(rf"<{escaped}>.*\Z", re.DOTALL)
    return complete, dangling
