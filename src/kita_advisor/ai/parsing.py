import json
import re
from collections.abc import Callable
from typing import Any

from kita_advisor.errors import MalformedResponseError
from kita_advisor.logger import get_logger

logger = get_logger(__name__)

_OPENING_FENCE = re.compile(r"^\s*```[\w+-]*[ \t]*\r?\n?")
_CLOSING_FENCE = re.compile(r"\r?\n?```\s*$")
_BLANK_RUNS = re.compile(r"\n{3,}")


def strip_code_fences(text: str) -> str:
    """Remove one leading ```lang fence and one trailing ``` fence, if present."""
    stripped = _OPENING_FENCE.sub("", text, count=1)
    stripped = _CLOSING_FENCE.sub("", stripped, count=1)
    return stripped.strip()


def parse_json(text: str | None) -> Any:
    if not text or not text.strip():
        raise MalformedResponseError("Empty AI response where JSON was expected.")

    payload = strip_code_fences(text)
    try:
        return json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.error("[AI] Malformed JSON in AI response: %s (preview: %r)", exc, payload[:120])
        raise MalformedResponseError(f"AI response is not valid JSON: {exc}") from exc


def parse_html_fragment(
    text: str | None,
    sanitizer: Callable[[str], str] | None = None,
) -> str:
    """Trim fences and whitespace; escaping is left to ``sanitizer``."""
    if not text:
        return ""
    fragment = strip_code_fences(text)
    fragment = fragment.replace("\r\n", "\n").replace("\r", "\n")
    fragment = _BLANK_RUNS.sub("\n\n", fragment)
    if sanitizer is not None:
        fragment = sanitizer(fragment)
    return fragment.strip()
