from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

from claude_insight.core.scan import InsightScanner, ScanResult, filter_insights
from claude_insight.ingest import ClaudeCodeIngester, encode_project_dir
from claude_insight.ingest.base import ParsedSession, TranscriptParseError
from claude_insight.storage.models import Insight, InsightType

WHEN = datetime(2024, 3, 1, 9, 0, tzinfo=UTC)


def _insight(
    title: str,
    insight_type: InsightType = InsightType.DECISION,
    project_name: str = "webapp",
    minutes: int = 0,
    **overrides,
) -> Insight:
    return Insight(
        session_id=overrides.pop("session_id", "session-1"),
        project_id="proj_1",
        project_name=project_name,
        type=insight_type,
        title=title,
        confidence=0.7,
        timestamp=WHEN + timedelta(minutes=minutes),
        **overrides,
    )


class FakeIngester:
    source_name = "fake"

    def __init__(self, sessions: dict[Path, ParsedSession | None]):
        self._sessions = sessions

    def discover_sessions(self, since=None):
        _ = since
        return list(self._sessions)

    def get_session_id(self, path: Path) -> str:
        return path.stem

    def parse_session(self, path: Path) -> ParsedSession:
        session = self._sessions[path]
        if session is None:
            raise TranscriptParseError(path, "unreadable")
        return session


def test_scan_collects_sessions_and_insights(tmp_path: Path, write_transcript, sample_events):
    project = tmp_path / "webapp"
    project.mkdir()
    write_transcript(sample_events, project_dir=encode_project_dir(project.resolve()))
    ingester = ClaudeCodeIngester(project_path=project, claude_dir=tmp_path / ".claude")
    events: list[dict] = []

    result = InsightScanner(ingester).scan(progress_callback=events.append)

    assert len(result.sessions) == 1
    assert len(result.insights) == 4
    assert result.failed == []
    assert events == [
        {
            "event": "session_scanned",
            "session_id": "abc-123",
            "path": str(ingester.discover_sessions()[0]),
            "index": 1,
            "total": 1,
            "insights": 4,
        }
    ]


def test_scan_without_effort(tmp_path: Path, write_transcript, sample_events) -> None:
    project = tmp_path / "webapp"
    project.mkdir()
    write_transcript(sample_events, project_dir=encode_project_dir(project.resolve()))
    ingester = ClaudeCodeIngester(project_path=project, claude_dir=tmp_path / ".claude")

    result = InsightScanner(ingester, include_effort=False).scan()

    assert InsightType.EFFORT not in {insight.type for insight in result.insights}
    assert result.total_effort_minutes() == 0


def test_unreadable_transcripts_are_recorded(make_message, make_session) -> None:
    good = make_session([make_message("TIL: retries need jitter")], id="good")
    ingester = FakeIngester({Path("bad.jsonl"): None, Path("good.jsonl"): good})

    result = InsightScanner(ingester).scan()

    assert result.failed == ["bad.jsonl"]
    assert [session.id for session in result.sessions] == ["good"]
    assert {insight.session_id for insight in result.insights} == {"good"}


def test_failing_progress_callback_does_not_abort_scan(make_session) -> None:
    ingester = FakeIngester({Path("one.jsonl"): make_session()})

    def explode(_payload: dict) -> None:
        raise RuntimeError("boom")

    result = InsightScanner(ingester).scan(progress_callback=explode)

    assert len(result.sessions) == 1


def test_scan_result_aggregates() -> None:
    result = ScanResult(
        insights=[
            _insight("a"),
            _insight("b", InsightType.LEARNING, project_name="api", session_id="s2"),
            _insight("Session: 30 min, 4 messages", InsightType.EFFORT, metadata={"duration": 30}),
            _insight("Session: 12 min, 2 messages", InsightType.EFFORT, metadata={"duration": 12}),
        ]
    )

    assert result.counts_by_type() == {
        InsightType.DECISION: 1,
        InsightType.LEARNING: 1,
        InsightType.WORKITEM: 0,
        InsightType.EFFORT: 2,
    }
    assert result.counts_by_project() == {"webapp": 3, "api": 1}
    assert [insight.title for insight in result.insights_for("s2")] == ["b"]
    assert result.total_effort_minutes() == 42


class TestFilterInsights:
    def test_by_type(self) -> None:
        insights = [_insight("a"), _insight("b", InsightType.LEARNING)]

        assert [i.title for i in filter_insights(insights, InsightType.LEARNING)] == ["b"]

    def test_by_project_substring_case_insensitive(self) -> None:
        insights = [_insight("a", project_name="WebApp"), _insight("b", project_name="api")]

        assert [i.title for i in filter_insights(insights, project="weba")] == ["a"]

    def test_since(self) -> None:
        insights = [_insight("old"), _insight("new", minutes=60)]

        selected = filter_insights(insights, since=WHEN + timedelta(minutes=30))

        assert [i.title for i in selected] == ["new"]

    def test_limit_keeps_newest_first(self) -> None:
        insights = [_insight("first"), _insight("third", minutes=20), _insight("second", minutes=10)]

        selected = filter_insights(insights, limit=2)

        assert [i.title for i in selected] == ["third", "second"]

    def test_no_filters_preserves_order(self) -> None:
        insights = [_insight("b", minutes=5), _insight("a")]

        assert filter_insights(insights) == insights
