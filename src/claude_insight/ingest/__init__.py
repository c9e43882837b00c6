from __future__ import annotations

from claude_insight.ingest.base import (
    MessageType,
    ParsedMessage,
    ParsedSession,
    SessionIngester,
    ToolCall,
    TranscriptParseError,
)
from claude_insight.ingest.claude_code import ClaudeCodeIngester, encode_project_dir

__all__ = [
    "SessionIngester",
    "ParsedSession",
    "ParsedMessage",
    "ToolCall",
    "MessageType",
    "TranscriptParseError",
    "ClaudeCodeIngester",
    "encode_project_dir",
]
