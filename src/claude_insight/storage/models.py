from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """UTC now with timezone info for stable serialization."""
    return datetime.now(UTC)


def new_insight_id() -> str:
    return str(uuid4())


class InsightType(StrEnum):
    """Kind of insight surfaced from a session."""

    DECISION = "decision"
    LEARNING = "learning"
    WORKITEM = "workitem"
    EFFORT = "effort"


class InsightSource(StrEnum):
    """Provenance tag for insights."""

    PATTERN = "pattern"


class WorkType(StrEnum):
    FEATURE = "feature"
    BUGFIX = "bugfix"
    REFACTOR = "refactor"
    DOCS = "docs"
    TEST = "test"


class Insight(BaseModel):
    """Classified insight record. Immutable after creation."""

    id: str = Field(default_factory=new_insight_id)
    session_id: str
    project_id: str
    project_name: str
    type: InsightType
    title: str = Field(..., max_length=100)
    content: str = ""
    summary: str = ""
    bullets: list[str] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    source: InsightSource = InsightSource.PATTERN
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class ParsedInsightContent(BaseModel):
    """Title/summary/bullets view of a free-text insight body."""

    title: str = ""
    summary: str = ""
    bullets: list[str] = Field(default_factory=list)
    raw_content: str = ""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


ExportFormat = Literal["plain", "obsidian", "notion"]


class ExtractionConfig(BaseModel):
    """Which insight kinds the extractor emits."""

    include_effort: bool = True


class ScanConfig(BaseModel):
    """Defaults for multi-session scans."""

    all_projects: bool = Field(
        default=False,
        description="Scan every project under claude_dir instead of the current one",
    )
    limit: int = Field(default=20, ge=1, description="Maximum insights to display")


class ExportConfig(BaseModel):
    """Markdown export defaults."""

    format: ExportFormat = "plain"
    include_metadata: bool = True
    group_by_type: bool = True


class ThemeConfig(BaseModel):
    """CLI theme configuration."""

    name: str = "dark+"


class ClaudeInsightConfig(BaseModel):
    """Root configuration for config.yaml."""

    extends: list[str] = Field(default_factory=list)
    claude_dir: str = Field(
        default="~/.claude",
        description="Claude Code data directory holding projects/<encoded-path>/*.jsonl",
    )
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    theme: ThemeConfig = Field(default_factory=ThemeConfig)
