from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageType(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class TranscriptModel(BaseModel):
    """Read-only transcript record; accepts snake_case or camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class ToolCall(TranscriptModel):
    """Tool invocation recorded on an assistant message."""

    name: str
    input: dict[str, Any] = Field(default_factory=dict)


class ParsedMessage(TranscriptModel):
    """Single transcript message with its tool calls."""

    type: MessageType
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    timestamp: datetime
    id: str | None = None
    parent_id: str | None = None


class ParsedSession(TranscriptModel):
    """Parsed Claude Code session, constructed once per transcript."""

    id: str
    project_path: str
    project_name: str
    messages: list[ParsedMessage] = Field(default_factory=list)
    started_at: datetime
    ended_at: datetime
    message_count: int = 0
    user_message_count: int = 0
    assistant_message_count: int = 0
    tool_call_count: int = 0
    git_branch: str | None = None
    claude_version: str | None = None
    summary: str | None = None


class TranscriptParseError(Exception):
    """Raised when a transcript file cannot be read."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to parse transcript {path}: {reason}")


class SessionIngester(ABC):
    """Abstract base for discovering and parsing native agent sessions."""

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Identifier for this ingester (e.g. "claude-code")."""

    @abstractmethod
    def discover_sessions(self, since: datetime | None = None) -> list[Path]:
        """Find transcript files that may have new content."""

    @abstractmethod
    def parse_session(self, path: Path) -> ParsedSession:
        """Parse a native transcript into a ParsedSession."""

    @abstractmethod
    def get_session_id(self, path: Path) -> str:
        """Extract the session identifier for a transcript."""
