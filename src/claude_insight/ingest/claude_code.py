from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime
from pathlib import Path, PurePath
from typing import Any

from claude_insight.ingest.base import (
    MessageType,
    ParsedMessage,
    ParsedSession,
    SessionIngester,
    ToolCall,
    TranscriptParseError,
)

logger = logging.getLogger(__name__)

_ENCODE_RE = re.compile(r"[^A-Za-z0-9]")
_MESSAGE_EVENT_TYPES = {"user", "assistant", "system", "message", "human"}


def encode_project_dir(project_path: Path | str) -> str:
    """Directory name Claude Code uses under projects/ for a working directory."""
    return _ENCODE_RE.sub("-", str(project_path))


class ClaudeCodeIngester(SessionIngester):
    """Ingest Claude Code session transcripts from JSONL storage."""

    def __init__(
        self,
        project_path: Path | None = None,
        claude_dir: Path | None = None,
        all_projects: bool = False,
    ):
        self.project_path = (project_path or Path.cwd()).resolve()
        self.claude_dir = (claude_dir or Path.home() / ".claude").expanduser()
        self.all_projects = all_projects

    @property
    def source_name(self) -> str:
        return "claude-code"

    @property
    def projects_dir(self) -> Path:
        return self.claude_dir / "projects"

    @staticmethod
    def _normalize_dt(value: datetime) -> datetime:
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)

    def _find_project_dir(self) -> Path | None:
        if not self.projects_dir.exists():
            return None

        candidates = {
            encode_project_dir(self.project_path),
            encode_project_dir(str(self.project_path).rstrip("/")),
        }
        for name in candidates:
            project_dir = self.projects_dir / name
            if project_dir.is_dir():
                return project_dir
        return None

    def _project_dirs(self) -> list[Path]:
        if self.all_projects:
            if not self.projects_dir.exists():
                return []
            return sorted(path for path in self.projects_dir.iterdir() if path.is_dir())
        project_dir = self._find_project_dir()
        return [project_dir] if project_dir else []

    def discover_sessions(self, since: datetime | None = None) -> list[Path]:
        sessions: list[Path] = []
        normalized_since = self._normalize_dt(since) if since else None

        for project_dir in self._project_dirs():
            for session_file in project_dir.glob("*.jsonl"):
                if normalized_since:
                    mtime = datetime.fromtimestamp(session_file.stat().st_mtime, tz=UTC)
                    if mtime < normalized_since:
                        continue
                sessions.append(session_file)

        return sorted(sessions, key=lambda session: session.stat().st_mtime)

    def get_session_id(self, path: Path) -> str:
        return path.stem

    def _parse_timestamp(self, value: Any) -> datetime | None:
        if value is None:
            return None

        try:
            if isinstance(value, (int, float)):
                timestamp = float(value)
                if timestamp > 1e12:
                    timestamp = timestamp / 1000
                return datetime.fromtimestamp(timestamp, tz=UTC)
            if isinstance(value, str):
                parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
                return self._normalize_dt(parsed)
        except (OSError, TypeError, ValueError, OverflowError):
            return None

        return None

    def _read_events(self, path: Path) -> list[dict[str, Any]]:
        events: list[dict[str, Any]] = []
        try:
            with path.open(encoding="utf-8") as file:
                for line_number, raw_line in enumerate(file, start=1):
                    line = raw_line.strip()
                    if not line:
                        continue
                    try:
                        event = json.loads(line)
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed line %d in %s", line_number, path)
                        continue
                    if isinstance(event, dict):
                        events.append(event)
        except (OSError, UnicodeDecodeError) as exc:
            raise TranscriptParseError(path, str(exc)) from exc
        return events

    def parse_session(self, path: Path) -> ParsedSession:
        events = self._read_events(path)

        messages: list[ParsedMessage] = []
        started_at: datetime | None = None
        ended_at: datetime | None = None
        session_id: str | None = None
        cwd: str | None = None
        git_branch: str | None = None
        claude_version: str | None = None
        summary: str | None = None

        for event in events:
            event_type = str(event.get("type", "message")).lower()
            if event_type == "summary":
                summary = summary or _as_text(event.get("summary"))
                continue

            timestamp = self._parse_timestamp(event.get("timestamp"))
            if timestamp:
                started_at = timestamp if started_at is None else min(started_at, timestamp)
                ended_at = timestamp if ended_at is None else max(ended_at, timestamp)

            session_id = session_id or _as_text(event.get("sessionId"))
            cwd = cwd or _as_text(event.get("cwd"))
            git_branch = git_branch or _as_text(event.get("gitBranch"))
            claude_version = claude_version or _as_text(event.get("version"))

            if event_type not in _MESSAGE_EVENT_TYPES:
                continue

            message = self._build_message(event, timestamp)
            if message is not None:
                messages.append(message)

        fallback_time = datetime.fromtimestamp(path.stat().st_mtime, tz=UTC)
        started_at = started_at or fallback_time
        ended_at = ended_at or started_at
        project_path = cwd or self._decode_project_dir(path.parent.name)

        return ParsedSession(
            id=session_id or self.get_session_id(path),
            project_path=project_path,
            project_name=PurePath(project_path).name or project_path,
            messages=messages,
            started_at=started_at,
            ended_at=ended_at,
            message_count=len(messages),
            user_message_count=sum(1 for m in messages if m.type == MessageType.USER),
            assistant_message_count=sum(1 for m in messages if m.type == MessageType.ASSISTANT),
            tool_call_count=sum(len(m.tool_calls) for m in messages),
            git_branch=git_branch,
            claude_version=claude_version,
            summary=summary,
        )

    def _decode_project_dir(self, dir_name: str) -> str:
        if encode_project_dir(self.project_path) == dir_name:
            return str(self.project_path)
        # Lossy: dots and dashes in the source path also became dashes.
        return dir_name.replace("-", "/")

    def _build_message(
        self, event: dict[str, Any], timestamp: datetime | None
    ) -> ParsedMessage | None:
        payload = event.get("message")
        if not isinstance(payload, dict):
            payload = event

        message_type = self._extract_type(event, payload)
        blocks = payload.get("content", "")
        if _is_tool_result_only(blocks):
            return None

        content = self._extract_content(blocks)
        tool_calls = self._extract_tool_calls(blocks) + self._extract_flat_tool_calls(payload)
        if not content.strip() and not tool_calls:
            return None

        return ParsedMessage(
            type=message_type,
            content=content,
            tool_calls=tool_calls,
            timestamp=timestamp or datetime.now(UTC),
            id=_as_text(event.get("uuid")),
            parent_id=_as_text(event.get("parentUuid")),
        )

    @staticmethod
    def _extract_type(event: dict[str, Any], payload: dict[str, Any]) -> MessageType:
        role = str(payload.get("role") or event.get("role") or event.get("type", "")).lower()
        if role in {"human", "user"}:
            return MessageType.USER
        if role == "system":
            return MessageType.SYSTEM
        return MessageType.ASSISTANT

    @staticmethod
    def _extract_content(blocks: Any) -> str:
        if isinstance(blocks, str):
            return blocks

        if isinstance(blocks, list):
            parts: list[str] = []
            for block in blocks:
                if isinstance(block, str):
                    parts.append(block)
                    continue
                if not isinstance(block, dict):
                    continue
                if str(block.get("type", "")).lower() == "text":
                    parts.append(str(block.get("text", "")))
            return "\n".join(part for part in parts if part)

        return ""

    @staticmethod
    def _extract_tool_calls(blocks: Any) -> list[ToolCall]:
        if not isinstance(blocks, list):
            return []

        tool_calls: list[ToolCall] = []
        for block in blocks:
            if not isinstance(block, dict) or block.get("type") != "tool_use":
                continue
            tool_input = block.get("input", {})
            if not isinstance(tool_input, dict):
                tool_input = {"raw": tool_input}
            tool_calls.append(ToolCall(name=str(block.get("name", "unknown")), input=tool_input))
        return tool_calls

    @staticmethod
    def _extract_flat_tool_calls(payload: dict[str, Any]) -> list[ToolCall]:
        for field in ["tool_calls", "toolCalls", "tool_use"]:
            value = payload.get(field)
            if not isinstance(value, list):
                continue
            tool_calls: list[ToolCall] = []
            for tool_call in value:
                if not isinstance(tool_call, dict):
                    continue
                args = tool_call.get("input", tool_call.get("args", tool_call.get("arguments", {})))
                if not isinstance(args, dict):
                    args = {"raw": args}
                name = tool_call.get("name", tool_call.get("tool", "unknown"))
                tool_calls.append(ToolCall(name=str(name), input=args))
            return tool_calls
        return []


def _is_tool_result_only(blocks: Any) -> bool:
    if not isinstance(blocks, list) or not blocks:
        return False
    return all(isinstance(block, dict) and block.get("type") == "tool_result" for block in blocks)


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
