from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest

from claude_insight.ingest.base import MessageType, ParsedMessage, ParsedSession, ToolCall

SESSION_START = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


def _make_message(
    content: str,
    message_type: MessageType = MessageType.ASSISTANT,
    tool_calls: list[ToolCall] | None = None,
    timestamp: datetime | None = None,
) -> ParsedMessage:
    return ParsedMessage(
        type=message_type,
        content=content,
        tool_calls=tool_calls or [],
        timestamp=timestamp or SESSION_START + timedelta(minutes=1),
    )


def _make_session(
    messages: list[ParsedMessage] | None = None,
    duration: timedelta = timedelta(minutes=30),
    project_path: str = "/Users/dev/projects/webapp",
    **overrides: Any,
) -> ParsedSession:
    messages = messages or []
    fields: dict[str, Any] = {
        "id": "session-1",
        "project_path": project_path,
        "project_name": Path(project_path).name,
        "messages": messages,
        "started_at": SESSION_START,
        "ended_at": SESSION_START + duration,
        "message_count": len(messages),
        "user_message_count": sum(1 for m in messages if m.type == MessageType.USER),
        "assistant_message_count": sum(1 for m in messages if m.type == MessageType.ASSISTANT),
        "tool_call_count": sum(len(m.tool_calls) for m in messages),
    }
    fields.update(overrides)
    return ParsedSession(**fields)


def _transcript_event(
    event_type: str,
    content: Any,
    timestamp: str,
    cwd: str = "/Users/dev/projects/webapp",
    session_id: str = "abc-123",
) -> dict[str, Any]:
    role = "user" if event_type == "user" else "assistant"
    return {
        "type": event_type,
        "sessionId": session_id,
        "cwd": cwd,
        "gitBranch": "main",
        "version": "1.0.51",
        "uuid": f"{event_type}-{timestamp}",
        "timestamp": timestamp,
        "message": {"role": role, "content": content},
    }


@pytest.fixture
def make_message() -> Callable[..., ParsedMessage]:
    return _make_message


@pytest.fixture
def make_session() -> Callable[..., ParsedSession]:
    return _make_session


@pytest.fixture
def transcript_event() -> Callable[..., dict[str, Any]]:
    return _transcript_event


@pytest.fixture
def write_transcript(tmp_path: Path) -> Callable[..., Path]:
    """Write JSONL events to a transcript file under a fake ~/.claude tree."""

    def _write(
        events: list[dict[str, Any] | str],
        project_dir: str = "-Users-dev-projects-webapp",
        name: str = "abc-123.jsonl",
    ) -> Path:
        directory = tmp_path / ".claude" / "projects" / project_dir
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        lines = [event if isinstance(event, str) else json.dumps(event) for event in events]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_events() -> list[dict[str, Any]]:
    return [
        _transcript_event("user", "Please fix the login redirect bug", "2024-03-01T09:00:00Z"),
        _transcript_event(
            "assistant",
            [
                {"type": "text", "text": "I fixed the redirect. We decided to use a 302 here."},
                {
                    "type": "tool_use",
                    "id": "toolu_1",
                    "name": "Edit",
                    "input": {"file_path": "src/auth.ts", "old_string": "a", "new_string": "b"},
                },
            ],
            "2024-03-01T09:05:00Z",
        ),
        _transcript_event(
            "user",
            [{"type": "tool_result", "tool_use_id": "toolu_1", "content": "ok"}],
            "2024-03-01T09:05:01Z",
        ),
        _transcript_event(
            "assistant",
            "TIL: the session cookie is read before middleware runs",
            "2024-03-01T09:20:00Z",
        ),
    ]
