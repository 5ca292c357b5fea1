"""run command: send one prompt and print the artifacts it produced."""

from __future__ import annotations

import re
from pathlib import Path

import click
from rich.console import Console

from ideflow_core.artifacts import Artifact, CodeData
from ideflow_core.executor import ExecutionResult, execute
from ideflow_core.intent import INTENTS
from ideflow_store.models import ArtifactRecord, ExecutionRecord

console = Console()

_EXTENSIONS = {
    "python": "py",
    "typescript": "ts",
    "javascript": "js",
    "java": "java",
    "cpp": "cpp",
    "go": "go",
    "rust": "rs",
}


def _result_to_record(result: ExecutionResult) -> ExecutionRecord:
    """Map an ExecutionResult returned by execute() to an ExecutionRecord for the store.

    The CLI layer owns this mapping. ideflow_core has no store knowledge and
    ideflow_store has no core knowledge. The CLI bridges the two.
    """
    return ExecutionRecord(
        id=result.id,
        prompt=result.prompt,
        intent=result.intent,
        handler_id=result.handler_id,
        timestamp=result.timestamp,
        status=result.status,
        artifacts=[
            ArtifactRecord(id=d["id"], type=d["type"], data=d["data"], created_at=d["created_at"])
            for d in (artifact.to_dict() for artifact in result.artifacts)
        ],
        error=result.error,
    )


def artifact_filename(artifact: Artifact, index: int) -> str:
    """Pick a download name: the detected filename, else one derived from the type."""
    data = artifact.data
    if isinstance(data, CodeData):
        if data.filename:
            # Keep only the last path component; never write outside the target directory.
            return Path(data.filename).name
        return f"artifact-{index}.{_EXTENSIONS.get(data.language, 'txt')}"
    if artifact.type == "table":
        return f"artifact-{index}.md"
    if artifact.type == "diff":
        return f"artifact-{index}.diff"
    return f"artifact-{index}.md"


def save_artifact(artifact: Artifact, index: int, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    name = re.sub(r"[^\w.+-]", "_", artifact_filename(artifact, index)) or f"artifact-{index}.txt"
    path = directory / name
    path.write_text(artifact.text + "\n")
    return path


@click.command("run")
@click.argument("prompt")
@click.option(
    "--file",
    "files",
    multiple=True,
    help="Name of an attached file to mention in the request. Repeatable.",
)
@click.option(
    "--intent",
    type=click.Choice(INTENTS),
    default=None,
    help="Skip classification and use this intent.",
)
@click.option(
    "--replay",
    "replay_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Replay a recorded handler stream instead of calling the endpoint.",
)
@click.option(
    "--save",
    "save_dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Write every artifact to this directory.",
)
@click.pass_context
def run_cmd(
    ctx,
    prompt: str,
    files: tuple[str, ...],
    intent: str | None,
    replay_path: str | None,
    save_dir: str | None,
):
    """Send PROMPT to the handler best suited for it.

    The prompt is classified, routed to a handler, and the streamed response
    is split into typed artifacts: code, documents, tables and diffs.

    \b
    Environment variables:
      IDEFLOW_ENDPOINT   Handler endpoint URL (or set endpoint in .ideflow.yml)
      IDEFLOW_API_KEY    Bearer token sent to the endpoint, if it needs one
    """
    from ideflow_cli.client import build_client
    from ideflow_cli.render import render_result

    if not prompt.strip():
        raise click.UsageError("PROMPT must not be empty.")

    config = ctx.obj["config"]
    telemetry = ctx.obj["telemetry"]
    client = build_client(config, replay_path)
    ctx.call_on_close(client.close)

    with console.status("Waiting for handler..."):
        result = execute(prompt, client, telemetry, files=files, intent=intent)

    ctx.obj["store"].save_execution(_result_to_record(result))
    render_result(result, expanded=True)

    if result.error:
        ctx.exit(1)

    if save_dir:
        for i, artifact in enumerate(result.artifacts, start=1):
            path = save_artifact(artifact, i, Path(save_dir))
            telemetry.track_download(result.handler_id)
            console.print(f"[green]Saved {path}[/green]")
