"""Terminal rendering of artifacts, reviews, history and session statistics.

Everything user-facing goes through the shared rich Console. Handler output
is escaped before printing so stray square brackets are never read as markup.
"""

from __future__ import annotations

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from ideflow_core.artifacts import ADDED, INFO, REMOVED, Artifact, CodeData, DiffData, DocumentData, TableData
from ideflow_core.executor import ExecutionResult
from ideflow_core.review.analytics import ReviewAnalytics
from ideflow_core.review.models import ReviewResult
from ideflow_core.telemetry import SessionTelemetry
from ideflow_store.models import ExecutionRecord

console = Console()

# Code artifacts longer than this are shown collapsed until expanded.
PREVIEW_LINES = 20

_SEVERITY_STYLE = {
    "critical": "bold red",
    "high": "red",
    "error": "red",
    "warning": "yellow",
    "medium": "yellow",
    "info": "blue",
    "low": "dim",
}
_VERDICT_STYLE = {"approve": "green", "comment-only": "yellow", "request-changes": "red"}
_RISK_STYLE = {"low": "green", "medium": "yellow", "high": "red", "critical": "bold red"}


def _styled(value: str, styles: dict[str, str]) -> str:
    style = styles.get(value, "white")
    return f"[{style}]{escape(value)}[/{style}]"


def render_artifact(artifact: Artifact, index: int | None = None, expanded: bool = True) -> None:
    data = artifact.data
    label = f"[{index}] " if index is not None else ""

    if isinstance(data, CodeData):
        name = data.filename or data.language
        console.print(f"\n[bold cyan]{escape(label)}Code[/bold cyan] [dim]{escape(name)}[/dim]")
        lines = data.code.splitlines()
        hidden = 0 if expanded else max(0, len(lines) - PREVIEW_LINES)
        code = "\n".join(lines[:PREVIEW_LINES]) if hidden else data.code
        console.print(Syntax(code, data.language, line_numbers=True, word_wrap=True))
        if hidden:
            console.print(f"[dim]... {hidden} more line(s). Use :expand {index} to show all.[/dim]")
        return

    if isinstance(data, DocumentData):
        console.print(f"\n[bold cyan]{escape(label)}{escape(data.title)}[/bold cyan]")
        for section in data.sections:
            console.print(f"\n[bold]{escape(section.title)}[/bold]")
            console.print(Markdown(section.content))
        return

    if isinstance(data, TableData):
        table = Table(title=f"{label}{data.title}", show_header=True, header_style="bold cyan")
        for column in data.columns:
            table.add_column(escape(column))
        for row in data.rows:
            table.add_row(*(escape(row.get(column, "")) for column in data.columns))
        console.print(table)
        return

    if isinstance(data, DiffData):
        render_diff(data, label)


def render_diff(data: DiffData, label: str = "") -> None:
    stats = data.stats
    console.print(
        f"\n[bold cyan]{escape(label)}{escape(data.title)}[/bold cyan] [dim]{escape(data.filename)}[/dim]  "
        f"[green]+{stats.additions}[/green] [red]-{stats.deletions}[/red] "
        f"[dim]~{stats.logic_changes} logic change(s)[/dim]"
    )
    _line_style = {ADDED: "green", REMOVED: "red", INFO: "cyan"}
    _line_prefix = {ADDED: "+", REMOVED: "-"}
    for line in data.lines:
        number = f"{line.line_number:>5} " if line.line_number is not None else "      "
        text = escape(_line_prefix.get(line.kind, " ") + line.content)
        style = _line_style.get(line.kind)
        console.print(f"[dim]{number}[/dim]" + (f"[{style}]{text}[/{style}]" if style else text))


def render_result(result: ExecutionResult, expanded: bool = False) -> None:
    """Show an execution: its routing, then each artifact (or the error)."""
    retry = " [yellow](retry)[/yellow]" if result.is_retry else ""
    console.print(f"[dim]{result.intent} → {result.handler_id}[/dim]{retry}")

    if result.error:
        console.print(f"[red]{escape(result.error)}[/red]")
        return
    if not result.artifacts:
        console.print("[yellow]The handler returned no output.[/yellow]")
        return

    for i, artifact in enumerate(result.artifacts, start=1):
        render_artifact(artifact, index=i, expanded=expanded)
    console.print(f"\n[dim]{len(result.artifacts)} artifact(s) in {result.response_time_ms:.0f} ms[/dim]")


def render_review(result: ReviewResult) -> None:
    health = result.health
    console.print(
        f"\n[bold]Review ({escape(result.review_mode)})[/bold]  "
        f"verdict {_styled(health.verdict, _VERDICT_STYLE)}  "
        f"quality [bold]{health.quality_score}[/bold]/100  "
        f"risk {_styled(health.risk_level, _RISK_STYLE)}  "
        f"merge {escape(health.merge_readiness)}  "
        f"[dim]confidence {health.confidence}%[/dim]"
    )
    console.print(escape(result.summary))

    diff = result.diff_awareness
    console.print(
        f"[dim]{diff.files_changed} file(s), +{diff.lines_added} -{diff.lines_removed}, "
        f"{diff.logic_changes} logic / {diff.formatting_changes} formatting change(s)[/dim]"
    )
    for item in diff.risky_deletions:
        console.print(f"  [red]risky deletion:[/red] {escape(item)}")
    for item in diff.behavior_altering_refactors:
        console.print(f"  [yellow]behavior change:[/yellow] {escape(item)}")

    if result.comments:
        table = Table(title="Comments", show_header=True, header_style="bold cyan")
        table.add_column("Location", max_width=30)
        table.add_column("Severity", width=10)
        table.add_column("Category", width=14)
        table.add_column("Comment")
        for c in result.comments:
            severity = _styled(c.severity, _SEVERITY_STYLE) + (" [bold red]![/bold red]" if c.is_blocker else "")
            body = escape(c.comment)
            if c.suggestion:
                body += f"\n[dim]suggestion: {escape(c.suggestion)}[/dim]"
            table.add_row(f"{escape(c.file)}:{c.line}", severity, c.category, body)
        console.print(table)

    if result.security_findings:
        table = Table(title="Security Findings", show_header=True, header_style="bold red")
        table.add_column("Location", max_width=30)
        table.add_column("Type")
        table.add_column("Severity", width=10)
        table.add_column("Description / Remediation")
        for f in result.security_findings:
            table.add_row(
                f"{escape(f.file)}:{f.line}",
                escape(f.type),
                _styled(f.severity, _SEVERITY_STYLE),
                f"{escape(f.description)}\n[dim]{escape(f.remediation)}[/dim]",
            )
        console.print(table)


def render_history(records: list[ExecutionRecord], limit: int = 20) -> None:
    if not records:
        console.print("[yellow]No executions yet.[/yellow]")
        return

    table = Table(title="Execution History", show_header=True, header_style="bold cyan")
    table.add_column("Time", width=8)
    table.add_column("Intent", width=13)
    table.add_column("Handler", width=14)
    table.add_column("Prompt", max_width=40)
    table.add_column("Result", width=18)

    for r in records[:limit]:
        if r.status == "success":
            outcome = f"[green]{len(r.artifacts)} artifact(s)[/green]"
        else:
            outcome = f"[red]{escape(r.error or 'error')}[/red]"
        table.add_row(r.timestamp[11:19], r.intent, r.handler_id, escape(r.prompt[:40]), outcome)

    console.print(table)


def render_stats(telemetry: SessionTelemetry) -> None:
    """Show per-handler counters and the quality signals derived from them."""
    handlers = telemetry.handlers()
    if not handlers:
        console.print("[yellow]No requests in this session yet.[/yellow]")
        return

    table = Table(title="Session Quality Signals", show_header=True, header_style="bold cyan")
    table.add_column("Handler", style="bold")
    table.add_column("Requests", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Retry", justify="right")
    table.add_column("Copy", justify="right")
    table.add_column("Download", justify="right")
    table.add_column("Edit", justify="right")
    table.add_column("Avg ms", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Languages")
    table.add_column("Active", justify="right")

    for handler_id in handlers:
        metrics = telemetry.get_session_metrics(handler_id)
        signals = telemetry.get_quality_signals(handler_id)
        languages = ", ".join(lang for lang, _ in metrics.languages.most_common(3))
        table.add_row(
            handler_id,
            str(metrics.request_count),
            f"{signals.success_rate:.0f}%",
            f"{signals.retry_rate:.0f}%",
            f"{signals.copy_rate:.0f}%",
            f"{signals.download_rate:.0f}%",
            f"{signals.edit_rate:.0f}%",
            f"{metrics.avg_response_time:.0f}",
            str(metrics.token_count),
            languages,
            f"{telemetry.session_duration(handler_id):.0f}s",
        )
    console.print(table)


def render_analytics(analytics: ReviewAnalytics) -> None:
    if not analytics.total_reviews:
        console.print("[yellow]No reviews in this session yet.[/yellow]")
        return

    console.print("\n[bold]Review analytics[/bold]")
    console.print(f"  Total reviews:     {analytics.total_reviews}")
    console.print(f"  Avg issues:        {analytics.average_issues_per_review:.1f}")
    console.print(f"  Avg quality score: {analytics.avg_quality_score:.0f}")
    console.print(f"  Blocker rate:      {analytics.blocker_rate:.0f}%")
    console.print(f"  Security findings: {analytics.security_issues_found}")

    if analytics.repeated_violations:
        table = Table(title="Most Frequent Categories", show_header=True)
        table.add_column("Category")
        table.add_column("Comments", justify="right")
        for category, count in analytics.repeated_violations.most_common(5):
            table.add_row(category, str(count))
        console.print(table)
