"""review command: review a diff or source file with the reviewer handler."""

from __future__ import annotations

import json

import click
from rich.console import Console

from ideflow_core.executor import ReviewOutcome, run_review
from ideflow_core.review.modes import REVIEW_MODES
from ideflow_store.models import CommentRecord, ReviewRecord

console = Console()


def _outcome_to_record(outcome: ReviewOutcome) -> ReviewRecord:
    """Map a successful ReviewOutcome returned by run_review() to a ReviewRecord for the store."""
    result = outcome.result
    return ReviewRecord(
        review_id=outcome.id,
        timestamp=outcome.timestamp,
        mode=outcome.mode,
        verdict=result.health.verdict,
        quality_score=result.health.quality_score,
        risk_level=result.health.risk_level,
        merge_readiness=result.health.merge_readiness,
        summary=result.summary,
        security_findings=len(result.security_findings),
        comments=[
            CommentRecord(
                file=c.file,
                line=c.line,
                severity=c.severity,
                category=c.category,
                comment=c.comment,
            )
            for c in result.comments
        ],
    )


def report_outcome(ctx: click.Context, outcome: ReviewOutcome, as_json: bool = False) -> bool:
    """Record and print a review outcome. Returns False when the review failed."""
    from ideflow_cli.render import render_review

    if outcome.result is None:
        console.print(f"[red]{outcome.error}[/red]")
        if outcome.raw_text:
            console.print("[dim]Raw reviewer output:[/dim]")
            console.print(outcome.raw_text, markup=False, highlight=False)
        return False

    ctx.obj["analytics"].record(outcome.result)
    ctx.obj["store"].save_review(_outcome_to_record(outcome))

    if as_json:
        click.echo(json.dumps(outcome.result.to_dict(), indent=2))
    else:
        render_review(outcome.result)
    return True


@click.command("review")
@click.argument("source", type=click.File("r"), default="-")
@click.option(
    "--mode",
    type=click.Choice(list(REVIEW_MODES)),
    default=None,
    help="Review mode. Overrides config file (default: standard).",
)
@click.option(
    "--replay",
    "replay_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Replay a recorded handler stream instead of calling the endpoint.",
)
@click.option("--json", "as_json", is_flag=True, help="Print the normalized review as JSON.")
@click.pass_context
def review_cmd(ctx, source, mode: str | None, replay_path: str | None, as_json: bool):
    """Review a diff or source file. Reads standard input when SOURCE is omitted.

    The reviewer's reply is normalized into a health summary, inline comments
    and security findings, even when it is wrapped in prose or slightly
    malformed JSON.
    """
    from ideflow_cli.client import build_client

    content = source.read()
    if not content.strip():
        raise click.UsageError("Nothing to review: the input is empty.")

    config = ctx.obj["config"]
    mode = mode or config.get("review_mode", "standard")
    if mode not in REVIEW_MODES:
        raise click.UsageError(f"Unknown review mode '{mode}'. Choose one of: {', '.join(REVIEW_MODES)}.")

    client = build_client(config, replay_path)
    ctx.call_on_close(client.close)

    with console.status(f"Reviewing ({mode})..."):
        outcome = run_review(content, client, ctx.obj["telemetry"], mode=mode)

    if not report_outcome(ctx, outcome, as_json=as_json):
        ctx.exit(1)
