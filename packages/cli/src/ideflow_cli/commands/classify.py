"""classify command: show where a prompt would be routed, without calling a handler."""

from __future__ import annotations

import click
from rich.console import Console

from ideflow_core.intent import classify
from ideflow_core.router import route

console = Console()


@click.command("classify")
@click.argument("prompts", nargs=-1, required=True)
def classify_cmd(prompts: tuple[str, ...]):
    """Print the intent and handler for each of PROMPTS."""
    for prompt in prompts:
        intent = classify(prompt)
        console.print(f"{intent}\t{route(intent)}\t{prompt}", markup=False, highlight=False)
