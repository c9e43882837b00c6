from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from claude_insight.core.extract import extract_insights
from claude_insight.ingest.base import ParsedSession, SessionIngester, TranscriptParseError
from claude_insight.storage.models import Insight, InsightType

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, Any]], None]


class ScanResult(BaseModel):
    """Sessions and insights collected from a batch of transcripts."""

    sessions: list[ParsedSession] = Field(default_factory=list)
    insights: list[Insight] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    def counts_by_type(self) -> dict[InsightType, int]:
        counts: Counter[InsightType] = Counter(insight.type for insight in self.insights)
        return {insight_type: counts.get(insight_type, 0) for insight_type in InsightType}

    def counts_by_project(self) -> dict[str, int]:
        counts: Counter[str] = Counter(insight.project_name for insight in self.insights)
        return dict(counts.most_common())

    def insights_for(self, session_id: str) -> list[Insight]:
        return [insight for insight in self.insights if insight.session_id == session_id]

    def total_effort_minutes(self) -> int:
        return sum(
            int(insight.metadata.get("duration", 0))
            for insight in self.insights
            if insight.type == InsightType.EFFORT
        )


class InsightScanner:
    """Run insight extraction over every transcript an ingester discovers."""

    def __init__(self, ingester: SessionIngester, include_effort: bool = True):
        self.ingester = ingester
        self.include_effort = include_effort

    @staticmethod
    def _emit_progress(callback: ProgressCallback | None, payload: dict[str, Any]) -> None:
        if callback is None:
            return
        try:
            callback(payload)
        except Exception:  # noqa: BLE001
            return

    def scan_paths(
        self,
        paths: Iterable[Path],
        progress_callback: ProgressCallback | None = None,
    ) -> ScanResult:
        paths = list(paths)
        result = ScanResult()

        for index, path in enumerate(paths, start=1):
            try:
                session = self.ingester.parse_session(path)
            except TranscriptParseError as exc:
                logger.warning("Skipping transcript %s: %s", path, exc.reason)
                result.failed.append(str(path))
                continue

            insights = extract_insights(session, include_effort=self.include_effort)
            result.sessions.append(session)
            result.insights.extend(insights)
            self._emit_progress(
                progress_callback,
                {
                    "event": "session_scanned",
                    "session_id": session.id,
                    "path": str(path),
                    "index": index,
                    "total": len(paths),
                    "insights": len(insights),
                },
            )

        logger.info(
            "Scanned %d sessions, %d insights, %d failed",
            len(result.sessions),
            len(result.insights),
            len(result.failed),
        )
        return result

    def scan(
        self,
        since: datetime | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ScanResult:
        paths = self.ingester.discover_sessions(since=since)
        return self.scan_paths(paths, progress_callback=progress_callback)


def filter_insights(
    insights: Iterable[Insight],
    insight_type: InsightType | None = None,
    project: str | None = None,
    since: datetime | None = None,
    limit: int | None = None,
) -> list[Insight]:
    """Filter insights; a limit keeps the newest ones, newest first."""
    selected = list(insights)
    if insight_type is not None:
        selected = [insight for insight in selected if insight.type == insight_type]
    if project:
        needle = project.lower()
        selected = [insight for insight in selected if needle in insight.project_name.lower()]
    if since is not None:
        selected = [insight for insight in selected if insight.timestamp >= since]
    if limit is not None:
        selected = sorted(selected, key=lambda insight: insight.timestamp, reverse=True)[:limit]
    return selected
