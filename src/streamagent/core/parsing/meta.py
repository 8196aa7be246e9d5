"""AgentMeta extraction — the continuation signal embedded in Think output.

Resolution policy:

* no ``<agent_meta>`` tag, an empty body, or a body that is not a JSON
  object → ``None`` (no decision can be made; the loop stops)
* a JSON object body → strict decode, then lenient decode; if both fail the
  safe default ``AgentMeta(should_continue=True)`` is returned
* a decoded object without a boolean ``shouldContinue`` → continue, keeping
  any ``reason``
"""

from __future__ import annotations

import json
import logging
from typing import Any

from json_repair import repair_json

from streamagent.core.interface.models import AgentMeta
from streamagent.core.parsing.tags import META_TAG, extract_tagged, strip_tagged

logger = logging.getLogger(__name__)


def extract_meta(text: str) -> AgentMeta | None:
    """Return the :class:`AgentMeta` carried by *text*, or ``None``."""
    extraction = extract_tagged(text, META_TAG)
    if extraction is None:
        logger.debug("no <%s> tag in response", META_TAG)
        return None

    body = extraction.body
    if not body:
        logger.debug("<%s> tag is empty", META_TAG)
        return None

    if not body.startswith("{"):
        logger.debug("<%s> body is not a JSON object: %.80r", META_TAG, body)
        return None

    try:
        decoded: Any = json.loads(body)
    except json.JSONDecodeError:
        decoded = _decode_partial(body)
        if decoded is None:
            logger.warning("unreadable <%s> body, defaulting to continue", META_TAG)
            return AgentMeta(should_continue=True)

    if not isinstance(decoded, dict):
        return AgentMeta(should_continue=True)
    return _meta_from(decoded)


def strip_meta(text: str) -> str:
    """Remove the meta tag region(s) from user-visible *text*."""
    return strip_tagged(text, META_TAG)


def _decode_partial(body: str) -> dict[str, Any] | None:
    try:
        value = repair_json(body, return_objects=True)
    except Exception:
        logger.debug("lenient meta decode failed", exc_info=True)
        return None
    return value if isinstance(value, dict) else None


def _meta_from(decoded: dict[str, Any]) -> AgentMeta:
    reason = decoded.get("reason")
    reason = reason if isinstance(reason, str) and reason else None

    should_continue = decoded.get("shouldContinue")
    if isinstance(should_continue, bool):
        return AgentMeta(should_continue=should_continue, reason=reason)

    logger.warning("<%s> lacks a boolean shouldContinue, defaulting to continue", META_TAG)
    return AgentMeta(should_continue=True, reason=reason)
