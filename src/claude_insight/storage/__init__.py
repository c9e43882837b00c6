from __future__ import annotations

from claude_insight.storage.models import (
    ClaudeInsightConfig,
    Insight,
    InsightSource,
    InsightType,
    ParsedInsightContent,
    WorkType,
)

__all__ = [
    "ClaudeInsightConfig",
    "Insight",
    "InsightSource",
    "InsightType",
    "ParsedInsightContent",
    "WorkType",
]
