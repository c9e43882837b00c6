from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from claude_insight.cli.theme import DEFAULT_THEME, ThemeManager
from claude_insight.core.config import (
    ConfigError,
    default_home,
    load_config,
    update_config,
    write_default_config,
)
from claude_insight.core.content import parse_insight_content
from claude_insight.core.export import (
    export_daily_digest,
    export_session_to_markdown,
    export_to_markdown,
)
from claude_insight.core.extract import extract_insights
from claude_insight.core.scan import InsightScanner, ScanResult, filter_insights
from claude_insight.ingest.base import TranscriptParseError
from claude_insight.ingest.claude_code import ClaudeCodeIngester
from claude_insight.storage.models import ClaudeInsightConfig, Insight, InsightType

app = typer.Typer(help="Claude Insight - decisions, learnings and work items from Claude Code")
theme_app = typer.Typer(help="Manage CLI themes")

_theme_manager = ThemeManager(DEFAULT_THEME)
console = Console(theme=_theme_manager.get_theme())
err_console = Console(stderr=True)

EXPORT_FORMATS = ("plain", "obsidian", "notion")
GROUP_HEADINGS: dict[InsightType, str] = {
    InsightType.DECISION: "Decisions",
    InsightType.LEARNING: "Learnings",
    InsightType.WORKITEM: "Work Items",
}

_home: Path | None = None
T = TypeVar("T")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _apply_theme(theme_name: str) -> None:
    global console
    if theme_name == _theme_manager.get_theme_name() or not ThemeManager.is_valid_theme(
        theme_name
    ):
        return
    _theme_manager.set_theme(theme_name)
    console = Console(theme=_theme_manager.get_theme())


def get_config() -> ClaudeInsightConfig:
    try:
        config = load_config(_home)
    except ConfigError as exc:
        console.print(f"[error]{escape(str(exc))}[/error]")
        raise typer.Exit(1) from None
    _apply_theme(config.theme.name)
    return config


def get_ingester(
    config: ClaudeInsightConfig,
    project: Path | None = None,
    all_projects: bool = False,
) -> ClaudeCodeIngester:
    return ClaudeCodeIngester(
        project_path=project,
        claude_dir=Path(config.claude_dir).expanduser(),
        all_projects=all_projects or config.scan.all_projects,
    )


def run_with_spinner(description: str, action: Callable[[], T]) -> T:
    """Run a blocking action with a transient spinner."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(description, total=None)
        return action()


def _start_of_today() -> datetime:
    return datetime.now().astimezone().replace(hour=0, minute=0, second=0, microsecond=0)


def _echo_json(insights: list[Insight]) -> None:
    payload = [insight.model_dump(mode="json", by_alias=True) for insight in insights]
    typer.echo(json.dumps(payload, indent=2))


def _print_insight(insight: Insight) -> None:
    console.print(f"  • {escape(insight.title)}")
    console.print(
        f"    [dim]{escape(insight.project_name)} | {insight.timestamp:%b} "
        f"{insight.timestamp.day}[/dim]"
    )
    if insight.content and len(insight.content) < 100:
        console.print(f"    [dim]{escape(insight.content)}[/dim]")


def _print_grouped(insights: list[Insight]) -> None:
    for insight_type, heading in GROUP_HEADINGS.items():
        selected = [insight for insight in insights if insight.type == insight_type]
        if not selected:
            continue
        style = ThemeManager.insight_style(insight_type)
        console.print(f"[{style}]{heading}[/{style}]")
        for insight in selected:
            _print_insight(insight)
        console.print()


def _insight_table(insights: list[Insight], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Type", style="table_header")
    table.add_column("Title")
    table.add_column("Confidence", justify="right")
    table.add_column("When", style="dim")
    for insight in insights:
        style = ThemeManager.insight_style(insight.type)
        table.add_row(
            f"[{style}]{insight.type.value}[/{style}]",
            escape(insight.title),
            f"{insight.confidence:.1f}",
            insight.timestamp.strftime("%Y-%m-%d %H:%M"),
        )
    return table


def _scan(config: ClaudeInsightConfig, project: Path | None, all_projects: bool) -> ScanResult:
    ingester = get_ingester(config, project=project, all_projects=all_projects)
    scanner = InsightScanner(ingester, include_effort=config.extraction.include_effort)
    return run_with_spinner("Scanning Claude Code sessions...", scanner.scan)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    home: Path | None = typer.Option(
        None,
        "--home",
        help="Config directory (defaults to $CLAUDE_INSIGHT_HOME or ~/.claude-insight)",
    ),
):
    """Claude Insight command line."""
    global _home
    _home = home
    _configure_logging(verbose)


@app.command()
def init(force: bool = typer.Option(False, "--force", "-f", help="Overwrite existing config")):
    """Write a default config.yaml."""
    home = _home or default_home()
    existed = (home / "config.yaml").exists()
    path = write_default_config(home, force=force)
    if existed and not force:
        console.print(f"[warning]Config already exists at {path}[/warning]")
        return
    console.print(f"[success]✓ Wrote config to {path}[/success]")


@app.command()
def extract(
    path: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False, readable=True),
    insight_type: InsightType | None = typer.Option(
        None, "--type", "-t", case_sensitive=False, help="Only show one insight type"
    ),
    json_output: bool = typer.Option(False, "--json", help="Print insights as JSON"),
    markdown: bool = typer.Option(
        False, "--markdown", help="Print the session and its insights as markdown"
    ),
):
    """Extract insights from a single transcript."""
    config = get_config()
    ingester = get_ingester(config)
    try:
        session = ingester.parse_session(path)
    except TranscriptParseError as exc:
        console.print(f"[error]{escape(str(exc))}[/error]")
        raise typer.Exit(1) from None

    insights = extract_insights(session, include_effort=config.extraction.include_effort)
    insights = filter_insights(insights, insight_type=insight_type)

    if json_output:
        _echo_json(insights)
        return
    if markdown:
        typer.echo(
            export_session_to_markdown(
                session,
                insights,
                export_format=config.export.format,
                include_metadata=config.export.include_metadata,
            ),
            nl=False,
        )
        return
    if not insights:
        console.print("[warning]No insights found.[/warning]")
        return
    console.print(_insight_table(insights, f"{session.project_name} · {session.id}"))


@app.command()
def scan(
    project: Path | None = typer.Option(
        None, "--project", "-p", help="Project directory (defaults to the current directory)"
    ),
    all_projects: bool = typer.Option(False, "--all", help="Scan every Claude Code project"),
    insight_type: InsightType | None = typer.Option(
        None, "--type", "-t", case_sensitive=False, help="Only show one insight type"
    ),
    project_name: str | None = typer.Option(
        None, "--project-name", help="Filter by project name substring"
    ),
    today: bool = typer.Option(False, "--today", help="Only insights from today"),
    limit: int | None = typer.Option(None, "--limit", "-n", min=1, help="Maximum insights"),
    json_output: bool = typer.Option(False, "--json", help="Print insights as JSON"),
):
    """Scan Claude Code transcripts and show recent insights."""
    config = get_config()
    result = _scan(config, project, all_projects)

    insights = filter_insights(
        result.insights,
        insight_type=insight_type,
        project=project_name,
        since=_start_of_today() if today else None,
        limit=limit or config.scan.limit,
    )

    if json_output:
        _echo_json(insights)
        return

    for failed in result.failed:
        console.print(f"[warning]Skipped unreadable transcript: {escape(failed)}[/warning]")

    if not insights:
        console.print("\n[warning]No insights found.[/warning]")
        if today:
            console.print("[dim]Try running without --today to see older insights.[/dim]")
        return

    console.print(f"\n[info]Recent Insights ({len(insights)})[/info]\n")
    _print_grouped(insights)

    console.print(
        f"[dim]{len(result.sessions)} sessions scanned · "
        f"{result.total_effort_minutes()} min of tracked effort[/dim]"
    )


@app.command()
def export(
    project: Path | None = typer.Option(
        None, "--project", "-p", help="Project directory (defaults to the current directory)"
    ),
    all_projects: bool = typer.Option(False, "--all", help="Export every Claude Code project"),
    export_format: str | None = typer.Option(
        None, "--format", "-f", help="plain, obsidian or notion"
    ),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to a file"),
    no_metadata: bool = typer.Option(False, "--no-metadata", help="Omit project/date footers"),
    chronological: bool = typer.Option(
        False, "--chronological", help="List insights newest first instead of by type"
    ),
    digest: bool = typer.Option(False, "--digest", help="Export today's daily digest"),
):
    """Export sessions and insights as markdown."""
    config = get_config()
    chosen_format = export_format or config.export.format
    if chosen_format not in EXPORT_FORMATS:
        console.print(f"[error]Invalid format: {escape(chosen_format)}[/error]")
        console.print(f"[dim]Available formats: {', '.join(EXPORT_FORMATS)}[/dim]")
        raise typer.Exit(1)

    result = _scan(config, project, all_projects)

    if digest:
        start = _start_of_today()
        sessions = [session for session in result.sessions if session.started_at >= start]
        session_ids = {session.id for session in sessions}
        insights = [insight for insight in result.insights if insight.session_id in session_ids]
        markdown = export_daily_digest(start.date(), sessions, insights)
    else:
        markdown = export_to_markdown(
            result.sessions,
            result.insights,
            export_format=chosen_format,  # type: ignore[arg-type]
            include_metadata=config.export.include_metadata and not no_metadata,
            group_by_type=config.export.group_by_type and not chronological,
        )

    if output is None:
        typer.echo(markdown, nl=False)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(markdown)
    console.print(
        f"[success]✓ Exported {len(result.insights)} insights from "
        f"{len(result.sessions)} sessions to {output}[/success]"
    )


@app.command("parse-content")
def parse_content(text: str = typer.Argument(..., help="Insight text to parse")):
    """Show how an insight body splits into title, summary and bullets."""
    parsed = parse_insight_content(text)
    console.print(f"[bold]Title:[/bold] {escape(parsed.title)}")
    console.print(f"[bold]Summary:[/bold] {escape(parsed.summary)}")
    for bullet in parsed.bullets:
        console.print(f"  - {escape(bullet)}")


@theme_app.command("list")
def theme_list():
    """List all available themes."""
    current_theme = get_config().theme.name

    table = Table(title="Available Themes")
    table.add_column("Name", style="table_header")
    table.add_column("Status")

    for theme_name in ThemeManager.get_available_themes():
        status = "[success]✓ Current[/success]" if theme_name == current_theme else ""
        table.add_row(theme_name, status)

    console.print(table)


@theme_app.command("set")
def theme_set(name: str = typer.Argument(..., help="Theme name to set")):
    """Set the active theme."""
    if not ThemeManager.is_valid_theme(name):
        available = ", ".join(ThemeManager.get_available_themes())
        console.print(f"[error]Invalid theme: {escape(name)}[/error]")
        console.print(f"[dim]Available themes: {available}[/dim]")
        raise typer.Exit(1)

    try:
        update_config({"theme": {"name": name}}, _home)
    except ConfigError as exc:
        console.print(f"[error]Failed to set theme: {escape(str(exc))}[/error]")
        raise typer.Exit(1) from None

    _apply_theme(name)
    console.print(f"[success]✓ Theme set to '{name}'[/success]")


@theme_app.command("show")
def theme_show():
    """Show the current theme."""
    console.print(f"Current theme: [accent]{get_config().theme.name}[/accent]")


app.add_typer(theme_app, name="theme")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
