"""CLI entry point for ideflow.

Commands:
  run      : send one prompt and print the artifacts it produced
  review   : review a diff or source file with the reviewer handler
  classify : show which intent and handler a prompt would be routed to
  session  : interactive prompt loop with history and quality signals
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console

from ideflow_cli.commands.classify import classify_cmd
from ideflow_cli.commands.review import review_cmd
from ideflow_cli.commands.run import run_cmd
from ideflow_cli.commands.session import session_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured history store from .ideflow.yml settings.

    Store selection:
      store: memory → MemoryStore (default, capped at max_history records)
      store: noop   → NoOpStore   (keep no history)

    Kept in the CLI layer: ideflow_store never reads config files, and
    ideflow_core never sees a store.
    """
    from ideflow_store.memory import MemoryStore
    from ideflow_store.noop import NoOpStore

    store_type = config.get("store", "memory")

    if store_type == "noop":
        return NoOpStore()

    if store_type != "memory":
        console.print(f"[yellow]Unknown store '{store_type}'. Falling back to the memory store.[/yellow]")
    return MemoryStore(max_entries=int(config.get("max_history", 50)))


@click.group()
@click.version_option(
    version=importlib.metadata.version("ideflow"),
    prog_name="ideflow",
)
@click.option(
    "--config",
    "config_path",
    default=".ideflow.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="IDEFLOW_CONFIG",
)
@click.option("--endpoint", default=None, help="Handler endpoint URL. Overrides config file.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, endpoint: str | None, verbose: bool):
    """Prompt-driven code generation with automatic handler routing."""
    from ideflow_core.config import load_config
    from ideflow_core.review.analytics import ReviewAnalytics
    from ideflow_core.telemetry import SessionTelemetry

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    ctx.ensure_object(dict)

    config = load_config(config_path, cli_overrides={"endpoint": endpoint})

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["telemetry"] = SessionTelemetry()
    ctx.obj["analytics"] = ReviewAnalytics()
    ctx.call_on_close(store.close)


main.add_command(run_cmd)
main.add_command(review_cmd)
main.add_command(classify_cmd)
main.add_command(session_cmd)
