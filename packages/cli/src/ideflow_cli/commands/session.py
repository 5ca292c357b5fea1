"""session command: interactive prompt loop.

Plain input is sent as a prompt; lines starting with ':' are session
commands acting on the artifacts of the most recent execution. What the
user does with those artifacts (copying, expanding, downloading, editing)
feeds the handler's quality signals.
"""

from __future__ import annotations

import logging
import shlex
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable

import click
from rich.console import Console

from ideflow_core.artifacts import Artifact
from ideflow_core.executor import SUCCESS, ExecutionResult, execute, run_review
from ideflow_core.handlers.base import BaseHandlerClient
from ideflow_core.review.modes import REVIEW_MODES
from ideflow_core.stream import CancelToken

from ideflow_cli.commands.review import report_outcome
from ideflow_cli.commands.run import _result_to_record, save_artifact

logger = logging.getLogger(__name__)

console = Console()

HELP = """\
Type a prompt to run it. Session commands:
  :attach NAME          mention NAME as an attached file in the next prompt
  :copy N               print artifact N as plain text
  :expand N             show artifact N in full
  :download N [DIR]     write artifact N to DIR (default: current directory)
  :edit N               open artifact N in $EDITOR
  :review PATH [MODE]   review a diff or source file
  :history              list recent executions
  :stats                show session quality signals
  :reviews              show review analytics
  :help                 show this help
  :quit                 leave the session
Press Ctrl-C while waiting to cancel the request."""


class Session:
    """State of one interactive session: the conversation and the latest artifacts."""

    def __init__(self, ctx: click.Context, client: BaseHandlerClient):
        self.ctx = ctx
        self.client = client
        self.config: dict = ctx.obj["config"]
        self.store = ctx.obj["store"]
        self.telemetry = ctx.obj["telemetry"]
        self.conversation: list[dict] = []
        self.attachments: list[str] = []
        self.last: ExecutionResult | None = None
        self.edits: dict[int, str] = {}
        self._commands: dict[str, Callable[[list[str]], None]] = {
            "attach": self.attach,
            "copy": self.copy,
            "expand": self.expand,
            "download": self.download,
            "edit": self.edit,
            "review": self.review,
            "history": self.history,
            "stats": self.stats,
            "reviews": self.reviews,
            "help": self.help,
        }

    # ------------------------------------------------------------------ #
    # Input dispatch                                                      #
    # ------------------------------------------------------------------ #

    def handle(self, line: str) -> bool:
        """Process one line of input. Returns False when the session should end."""
        line = line.strip()
        if not line:
            return True
        if not line.startswith(":"):
            self.submit(line)
            return True

        try:
            name, *args = shlex.split(line[1:])
        except ValueError as e:
            console.print(f"[red]Could not parse command: {e}[/red]")
            return True

        if name in ("quit", "exit", "q"):
            return False
        command = self._commands.get(name)
        if command is None:
            console.print(f"[red]Unknown command :{name}. Type :help for a list.[/red]")
            return True
        try:
            command(args)
        except click.ClickException as e:
            console.print(f"[red]{e.format_message()}[/red]")
        return True

    def _run_cancellable(self, work: Callable[[CancelToken], object]):
        """Run work on a worker thread so Ctrl-C can cancel it cooperatively."""
        cancel = CancelToken()
        with ThreadPoolExecutor(max_workers=1) as pool:
            future = pool.submit(work, cancel)
            try:
                return future.result()
            except KeyboardInterrupt:
                cancel.cancel()
                console.print("[yellow]Cancelling...[/yellow]")
                return future.result()

    # ------------------------------------------------------------------ #
    # Prompts                                                             #
    # ------------------------------------------------------------------ #

    def submit(self, prompt: str) -> ExecutionResult:
        from ideflow_cli.render import render_result

        files, self.attachments = self.attachments, []
        history = list(self.conversation)
        result = self._run_cancellable(
            lambda cancel: execute(prompt, self.client, self.telemetry, files=files, history=history, cancel=cancel)
        )

        # Failed executions are kept in the history too.
        self.store.save_execution(_result_to_record(result))
        render_result(result)

        if result.status == SUCCESS:
            self.conversation.append({"role": "user", "content": prompt})
            self.conversation.append({"role": "assistant", "content": result.text})
            self.last = result
            self.edits = {}
        return result

    # ------------------------------------------------------------------ #
    # Artifact actions                                                    #
    # ------------------------------------------------------------------ #

    def _artifact(self, args: list[str]) -> tuple[int, Artifact]:
        if self.last is None or not self.last.artifacts:
            raise click.UsageError("No artifacts yet. Run a prompt first.")
        if not args:
            raise click.UsageError("Which artifact? Pass its number, e.g. :copy 1")
        try:
            index = int(args[0])
        except ValueError:
            raise click.UsageError(f"Not an artifact number: {args[0]}")
        if not 1 <= index <= len(self.last.artifacts):
            raise click.UsageError(f"Artifact {index} does not exist (1-{len(self.last.artifacts)}).")
        return index, self.last.artifacts[index - 1]

    def attach(self, args: list[str]) -> None:
        if not args:
            raise click.UsageError("Usage: :attach NAME [NAME...]")
        self.attachments.extend(args)
        console.print(f"[dim]Attached: {', '.join(self.attachments)}[/dim]")

    def copy(self, args: list[str]) -> None:
        index, artifact = self._artifact(args)
        console.print(self.edits.get(index, artifact.text), markup=False, highlight=False)
        self.telemetry.track_copy(self.last.handler_id)

    def expand(self, args: list[str]) -> None:
        from ideflow_cli.render import render_artifact

        index, artifact = self._artifact(args)
        render_artifact(artifact, index=index, expanded=True)
        self.telemetry.track_expand(self.last.handler_id)

    def download(self, args: list[str]) -> None:
        index, artifact = self._artifact(args)
        directory = Path(args[1]) if len(args) > 1 else Path.cwd()
        path = save_artifact(artifact, index, directory)
        if index in self.edits:
            path.write_text(self.edits[index])
        self.telemetry.track_download(self.last.handler_id)
        console.print(f"[green]Saved {path}[/green]")

    def edit(self, args: list[str]) -> None:
        index, artifact = self._artifact(args)
        original = self.edits.get(index, artifact.text)
        edited = click.edit(original)
        if edited is None or edited == original:
            console.print("[dim]No changes.[/dim]")
            return
        self.edits[index] = edited
        self.telemetry.track_manual_edit(self.last.handler_id)
        console.print(f"[green]Artifact {index} edited. :copy or :download it to use the new text.[/green]")

    # ------------------------------------------------------------------ #
    # Reviews and reports                                                 #
    # ------------------------------------------------------------------ #

    def review(self, args: list[str]) -> None:
        if not args:
            raise click.UsageError("Usage: :review PATH [MODE]")
        path = Path(args[0])
        if not path.is_file():
            raise click.UsageError(f"No such file: {path}")
        mode = args[1] if len(args) > 1 else self.config.get("review_mode", "standard")
        if mode not in REVIEW_MODES:
            raise click.UsageError(f"Unknown review mode '{mode}'. Choose one of: {', '.join(REVIEW_MODES)}.")

        content = path.read_text()
        outcome = self._run_cancellable(
            lambda cancel: run_review(content, self.client, self.telemetry, mode=mode, cancel=cancel)
        )
        report_outcome(self.ctx, outcome)

    def history(self, args: list[str]) -> None:
        from ideflow_cli.render import render_history

        render_history(self.store.list_executions())

    def stats(self, args: list[str]) -> None:
        from ideflow_cli.render import render_stats

        render_stats(self.telemetry)

    def reviews(self, args: list[str]) -> None:
        from ideflow_cli.render import render_analytics

        render_analytics(self.ctx.obj["analytics"])

    def help(self, args: list[str]) -> None:
        console.print(HELP, markup=False, highlight=False)


@click.command("session")
@click.option(
    "--replay",
    "replay_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Answer every prompt from a recorded handler stream.",
)
@click.pass_context
def session_cmd(ctx, replay_path: str | None):
    """Start an interactive session. Type :help for session commands."""
    from ideflow_cli.client import build_client

    client = build_client(ctx.obj["config"], replay_path)
    ctx.call_on_close(client.close)
    session = Session(ctx, client)

    console.print("[bold cyan]ideflow session[/bold cyan]. Type :help for commands, :quit to leave.")
    while True:
        try:
            line = click.prompt("ideflow", prompt_suffix="> ", default="", show_default=False)
        except click.Abort:
            break
        if not session.handle(line):
            break
    logger.debug("Session ended after %d execution(s)", len(session.conversation) // 2)
