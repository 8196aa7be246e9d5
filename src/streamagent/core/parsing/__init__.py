"""Parsing layer — tag extraction, partial JSON, continuation signal."""

from streamagent.core.parsing.meta import extract_meta, strip_meta
from streamagent.core.parsing.partial_json import (
    PartialJsonResult,
    parse_partial_json,
    summary_of,
)
from streamagent.core.parsing.tags import META_TAG, TagExtraction, extract_tagged, strip_tagged

__all__ = [
    "META_TAG",
    "PartialJsonResult",
    "TagExtraction",
    "extract_meta",
    "extract_tagged",
    "parse_partial_json",
    "strip_meta",
    "strip_tagged",
    "summary_of",
]
