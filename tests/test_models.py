from __future__ import annotations

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from claude_insight.storage.models import (
    ClaudeInsightConfig,
    Insight,
    InsightSource,
    InsightType,
)

WHEN = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


def _insight(**overrides) -> Insight:
    fields = {
        "session_id": "session-1",
        "project_id": "proj_1",
        "project_name": "webapp",
        "type": InsightType.DECISION,
        "title": "use PostgreSQL",
        "confidence": 0.7,
        "timestamp": WHEN,
    }
    fields.update(overrides)
    return Insight(**fields)


def test_insight_defaults() -> None:
    insight = _insight()

    assert insight.source == InsightSource.PATTERN
    assert insight.content == ""
    assert insight.bullets == []
    assert insight.metadata == {}
    assert insight.id


def test_insight_is_frozen() -> None:
    insight = _insight()

    with pytest.raises(ValidationError):
        insight.title = "changed"


def test_insight_title_max_length() -> None:
    with pytest.raises(ValidationError):
        _insight(title="x" * 101)


def test_insight_confidence_bounds() -> None:
    with pytest.raises(ValidationError):
        _insight(confidence=1.5)


def test_insight_serializes_camel_case() -> None:
    payload = _insight(metadata={"reasoning": "json support"}).model_dump(
        mode="json", by_alias=True
    )

    assert payload["sessionId"] == "session-1"
    assert payload["projectId"] == "proj_1"
    assert payload["projectName"] == "webapp"
    assert payload["type"] == "decision"
    assert payload["source"] == "pattern"
    assert payload["metadata"] == {"reasoning": "json support"}

    restored = Insight.model_validate(payload)
    assert restored == _insight(id=payload["id"], metadata={"reasoning": "json support"})


def test_config_defaults() -> None:
    config = ClaudeInsightConfig()

    assert config.claude_dir == "~/.claude"
    assert config.extraction.include_effort is True
    assert config.scan.limit == 20
    assert config.export.format == "plain"
    assert config.theme.name == "dark+"


def test_config_rejects_unknown_export_format() -> None:
    with pytest.raises(ValidationError):
        ClaudeInsightConfig.model_validate({"export": {"format": "pdf"}})
