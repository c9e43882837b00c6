"""Markdown rendering of sessions and insights."""

from __future__ import annotations

from datetime import date, datetime

from claude_insight.core.extract import session_duration_minutes
from claude_insight.ingest.base import ParsedSession
from claude_insight.storage.models import ExportFormat, Insight, InsightType, utcnow

SECTION_TITLES: dict[InsightType, str] = {
    InsightType.DECISION: "Decisions",
    InsightType.LEARNING: "Learnings",
    InsightType.WORKITEM: "Work Items",
    InsightType.EFFORT: "Effort",
}

DIGEST_TITLES: dict[InsightType, str] = {
    InsightType.DECISION: "Decisions Made",
    InsightType.LEARNING: "Things Learned",
    InsightType.WORKITEM: "Work Completed",
}

OBSIDIAN_CALLOUTS: dict[InsightType, str] = {
    InsightType.DECISION: "info",
    InsightType.LEARNING: "tip",
    InsightType.WORKITEM: "todo",
    InsightType.EFFORT: "note",
}


def _short_date(value: datetime | date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


def _long_date(value: datetime | date) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def _date_time(value: datetime) -> str:
    hour = value.hour % 12 or 12
    return f"{_short_date(value)} {hour}:{value:%M} {value:%p}"


def _heading(text: str, level: int) -> list[str]:
    return ["", f"{'#' * level} {text}", ""]


def _by_type(insights: list[Insight], insight_type: InsightType) -> list[Insight]:
    return [insight for insight in insights if insight.type == insight_type]


def format_insight(
    insight: Insight, export_format: ExportFormat, include_metadata: bool = True
) -> list[str]:
    footer = f"*{insight.project_name} | {_short_date(insight.timestamp)}*"

    if export_format == "obsidian":
        callout = OBSIDIAN_CALLOUTS[insight.type]
        lines = [f"> [!{callout}] {insight.title}"]
        lines.extend(f"> {line}" for line in insight.content.split("\n"))
        lines.extend(f"> - {bullet}" for bullet in insight.bullets)
        if include_metadata:
            lines.extend(["> ", f"> {footer}"])
        lines.append("")
        return lines

    if export_format == "notion":
        lines = ["<details>", f"<summary>{insight.title}</summary>", "", insight.content, ""]
        lines.extend(f"- {bullet}" for bullet in insight.bullets)
        if insight.bullets:
            lines.append("")
        if include_metadata:
            lines.append(footer)
        lines.extend(["</details>", ""])
        return lines

    lines = [f"### {insight.title}", "", insight.content, ""]
    lines.extend(f"- {bullet}" for bullet in insight.bullets)
    if insight.bullets:
        lines.append("")
    if include_metadata:
        lines.extend([footer, ""])
    lines.extend(["---", ""])
    return lines


def _insight_list(
    insights: list[Insight], export_format: ExportFormat, include_metadata: bool
) -> list[str]:
    lines: list[str] = []
    for insight in insights:
        lines.extend(format_insight(insight, export_format, include_metadata))
    return lines


def format_session(
    session: ParsedSession, export_format: ExportFormat, include_metadata: bool = True
) -> list[str]:
    title = session.summary or "Session"
    heading = f"### [[{title}]]" if export_format == "obsidian" else f"### {title}"
    lines = [heading, "", f"{session.project_name} | {_date_time(session.started_at)}"]

    if include_metadata:
        lines.extend(
            [
                "",
                f"- Duration: {session_duration_minutes(session) or 0} min",
                f"- Messages: {session.message_count}",
                f"- Tool Calls: {session.tool_call_count}",
            ]
        )
        if session.git_branch:
            lines.append(f"- Branch: {session.git_branch}")

    lines.append("")
    return lines


def export_to_markdown(
    sessions: list[ParsedSession],
    insights: list[Insight],
    export_format: ExportFormat = "plain",
    include_metadata: bool = True,
    group_by_type: bool = True,
    exported_at: datetime | None = None,
) -> str:
    """Render every session and insight into one markdown document."""
    exported_at = exported_at or utcnow()

    lines = ["# Claude Insight Export", "", f"Exported on {_date_time(exported_at)}"]
    lines.extend(_heading("Summary", 2))
    lines.append(f"- **Sessions:** {len(sessions)}")
    lines.append(f"- **Insights:** {len(insights)}")
    for insight_type, title in SECTION_TITLES.items():
        lines.append(f"- **{title}:** {len(_by_type(insights, insight_type))}")

    lines.extend(_heading("Insights", 2))
    if group_by_type:
        for insight_type, title in SECTION_TITLES.items():
            selected = _by_type(insights, insight_type)
            if not selected:
                continue
            lines.extend(_heading(title, 3))
            lines.extend(_insight_list(selected, export_format, include_metadata))
    else:
        chronological = sorted(insights, key=lambda insight: insight.timestamp, reverse=True)
        lines.extend(_insight_list(chronological, export_format, include_metadata))

    lines.extend(_heading("Sessions", 2))
    for session in sessions:
        lines.extend(format_session(session, export_format, include_metadata))

    return "\n".join(lines).rstrip() + "\n"


def export_session_to_markdown(
    session: ParsedSession,
    insights: list[Insight],
    export_format: ExportFormat = "plain",
    include_metadata: bool = True,
) -> str:
    lines = [
        f"# {session.summary or 'Session'}",
        "",
        f"{session.project_name} | {_long_date(session.started_at)}",
    ]

    if include_metadata:
        lines.extend(_heading("Details", 2))
        lines.append(f"- **Duration:** {session_duration_minutes(session) or 0} minutes")
        lines.append(f"- **Messages:** {session.message_count}")
        lines.append(f"- **Tool Calls:** {session.tool_call_count}")
        if session.git_branch:
            lines.append(f"- **Branch:** {session.git_branch}")

    if insights:
        lines.extend(_heading("Insights", 2))
        lines.extend(_insight_list(insights, export_format, include_metadata))

    return "\n".join(lines).rstrip() + "\n"


def export_daily_digest(
    day: date,
    sessions: list[ParsedSession],
    insights: list[Insight],
) -> str:
    """One-page digest of a day's sessions grouped by project."""
    lines = [f"# Daily Digest - {_long_date(day)}", ""]
    lines.append(f"**{len(sessions)}** sessions | **{len(insights)}** insights")

    lines.extend(_heading("Projects", 2))
    project_counts: dict[str, int] = {}
    for session in sessions:
        project_counts[session.project_name] = project_counts.get(session.project_name, 0) + 1
    for project, count in project_counts.items():
        lines.append(f"- **{project}**: {count} sessions")

    for insight_type, title in DIGEST_TITLES.items():
        selected = _by_type(insights, insight_type)
        if not selected:
            continue
        lines.extend(_heading(title, 2))
        lines.extend(f"- {insight.title}" for insight in selected)

    return "\n".join(lines).rstrip() + "\n"
