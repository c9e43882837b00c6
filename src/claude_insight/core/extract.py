from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable

from claude_insight.core.content import truncate
from claude_insight.core.patterns import (
    CONTEXT_RADIUS,
    DECISION_CONFIDENCE,
    DECISION_PATTERNS,
    DEFAULT_WORK_TYPE,
    EFFORT_CONFIDENCE,
    FILE_PATH_TOOLS,
    LEARNING_CONFIDENCE,
    LEARNING_PATTERNS,
    MAX_TITLE_LENGTH,
    WORK_TOOLS,
    WORK_TYPE_SIGNALS,
    WORKITEM_CONFIDENCE,
)
from claude_insight.ingest.base import MessageType, ParsedMessage, ParsedSession
from claude_insight.storage.models import Insight, InsightType, WorkType

logger = logging.getLogger(__name__)

_INT32_MASK = 0xFFFFFFFF


def generate_project_id(project_path: str) -> str:
    """Stable project id: 32-bit ``h * 31 + c`` rolling hash over UTF-16 code units.

    Same result as JavaScript's ``(h << 5) - h + charCodeAt(i) | 0`` loop, so ids
    line up with documents written by JS clients.
    """
    encoded = project_path.encode("utf-16-le", errors="surrogatepass")
    hash_value = 0
    for index in range(0, len(encoded), 2):
        code_unit = encoded[index] | (encoded[index + 1] << 8)
        hash_value = (hash_value * 31 + code_unit) & _INT32_MASK
    if hash_value >= 0x80000000:
        hash_value -= 0x100000000
    return f"proj_{abs(hash_value):x}"


def _first_match(
    content: str, patterns: Iterable[re.Pattern[str]]
) -> tuple[str, str] | None:
    """Return (matched text, surrounding context) for the first pattern that hits."""
    for pattern in patterns:
        match = pattern.search(content)
        if match is None:
            continue
        text = match.group(1) or match.group(0)
        start = max(0, match.start() - CONTEXT_RADIUS)
        end = min(len(content), match.end() + CONTEXT_RADIUS)
        return text, content[start:end]
    return None


def extract_decisions(
    message: ParsedMessage, session: ParsedSession, project_id: str
) -> list[Insight]:
    found = _first_match(message.content, DECISION_PATTERNS)
    if found is None:
        return []
    text, context = found
    return [
        Insight(
            session_id=session.id,
            project_id=project_id,
            project_name=session.project_name,
            type=InsightType.DECISION,
            title=truncate(text, MAX_TITLE_LENGTH),
            content=context,
            confidence=DECISION_CONFIDENCE,
            metadata={"reasoning": text},
            timestamp=message.timestamp,
        )
    ]


def extract_learnings(
    message: ParsedMessage, session: ParsedSession, project_id: str
) -> list[Insight]:
    found = _first_match(message.content, LEARNING_PATTERNS)
    if found is None:
        return []
    text, context = found
    return [
        Insight(
            session_id=session.id,
            project_id=project_id,
            project_name=session.project_name,
            type=InsightType.LEARNING,
            title=truncate(text, MAX_TITLE_LENGTH),
            content=context,
            confidence=LEARNING_CONFIDENCE,
            timestamp=message.timestamp,
        )
    ]


def determine_work_type(content: str) -> WorkType:
    lowered = content.lower()
    for work_type, signals in WORK_TYPE_SIGNALS:
        if any(signal in lowered for signal in signals):
            return work_type
    return DEFAULT_WORK_TYPE


def _modified_files(message: ParsedMessage) -> list[str]:
    work_calls = [call for call in message.tool_calls if call.name in WORK_TOOLS]
    files: list[str] = []
    for call in work_calls:
        if call.name not in FILE_PATH_TOOLS:
            continue
        file_path = call.input.get("file_path")
        if isinstance(file_path, str) and file_path:
            files.append(file_path)
    return files


def extract_work_items(
    message: ParsedMessage, session: ParsedSession, project_id: str
) -> list[Insight]:
    files = _modified_files(message)
    if not files:
        return []

    work_type = determine_work_type(message.content)
    return [
        Insight(
            session_id=session.id,
            project_id=project_id,
            project_name=session.project_name,
            type=InsightType.WORKITEM,
            title=f"{work_type.value.capitalize()}: {len(files)} file(s) modified",
            content=f"Files: {', '.join(files)}",
            confidence=WORKITEM_CONFIDENCE,
            metadata={"files": files, "workType": work_type.value},
            timestamp=message.timestamp,
        )
    ]


def session_duration_minutes(session: ParsedSession) -> int | None:
    """Whole minutes (half rounds up), or None for sessions under a minute."""
    seconds = (session.ended_at - session.started_at).total_seconds()
    if seconds < 60:
        return None
    return math.floor(seconds / 60 + 0.5)


def create_effort_insight(session: ParsedSession, project_id: str) -> Insight | None:
    duration = session_duration_minutes(session)
    if duration is None:
        return None

    return Insight(
        session_id=session.id,
        project_id=project_id,
        project_name=session.project_name,
        type=InsightType.EFFORT,
        title=f"Session: {duration} min, {session.message_count} messages",
        content=(
            f"User: {session.user_message_count} messages, "
            f"Assistant: {session.assistant_message_count} messages, "
            f"Tool calls: {session.tool_call_count}"
        ),
        confidence=EFFORT_CONFIDENCE,
        metadata={"duration": duration},
        timestamp=session.started_at,
    )


def extract_insights(session: ParsedSession, include_effort: bool = True) -> list[Insight]:
    """Classify a session's assistant messages into insights.

    Output follows message order (decisions, learnings, then work items for
    each message), with the session effort insight appended last. Every call
    mints fresh insight ids.
    """
    project_id = generate_project_id(session.project_path)
    insights: list[Insight] = []

    for message in session.messages:
        if message.type != MessageType.ASSISTANT:
            continue
        insights.extend(extract_decisions(message, session, project_id))
        insights.extend(extract_learnings(message, session, project_id))
        insights.extend(extract_work_items(message, session, project_id))

    if include_effort:
        effort = create_effort_insight(session, project_id)
        if effort is not None:
            insights.append(effort)

    logger.debug("Extracted %d insights from session %s", len(insights), session.id)
    return insights
