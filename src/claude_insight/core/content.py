from __future__ import annotations

import re

from claude_insight.core.patterns import CALLOUT_MARKERS, MAX_TITLE_LENGTH
from claude_insight.storage.models import ParsedInsightContent

_CALLOUT_HEADER_RE = re.compile(r"★\s*Insight\s*─*")
_RULE_RE = re.compile(r"─+")
_BULLET_RE = re.compile(r"^-\s*")
_GENERIC_BULLET_RE = re.compile(r"^[-•]\s*")


def truncate(text: str, max_length: int) -> str:
    """Clip text to max_length characters, ending with an ellipsis when clipped."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def _non_empty_lines(text: str) -> list[str]:
    return [line.strip() for line in text.split("\n") if line.strip()]


def is_callout(raw: str) -> bool:
    return any(marker in raw for marker in CALLOUT_MARKERS)


def parse_insight_content(raw: str) -> ParsedInsightContent:
    """Split an insight body into title, summary and bullets.

    Callout blocks (``★ Insight ─────`` banners, as printed by Claude Code's
    explanatory output style) keep their first line as the title and their
    ``-`` lines as bullets. Anything else is treated as generic text.
    """
    if is_callout(raw):
        return _parse_callout(raw)
    return _parse_generic(raw)


def _parse_callout(raw: str) -> ParsedInsightContent:
    cleaned = _CALLOUT_HEADER_RE.sub("", raw)
    cleaned = _RULE_RE.sub("", cleaned).replace("**", "").strip()
    lines = _non_empty_lines(cleaned)

    title = lines[0] if lines else ""
    title = title.removesuffix(":").strip()
    bullets = [
        _BULLET_RE.sub("", line, count=1).strip() for line in lines[1:] if line.startswith("-")
    ]
    summary = f"{title}: {bullets[0]}" if bullets else title
    return ParsedInsightContent(title=title, summary=summary, bullets=bullets, raw_content=raw)


def _parse_generic(raw: str) -> ParsedInsightContent:
    cleaned = raw.replace("**", "").replace('\\"', '"').replace("\\n", "\n").strip()
    lines = _non_empty_lines(cleaned)

    title = truncate(lines[0] if lines else cleaned, MAX_TITLE_LENGTH)
    bullets = [
        _GENERIC_BULLET_RE.sub("", line, count=1).strip()
        for line in lines[1:]
        if line.startswith(("-", "•"))
    ]
    return ParsedInsightContent(title=title, summary=title, bullets=bullets, raw_content=raw)
