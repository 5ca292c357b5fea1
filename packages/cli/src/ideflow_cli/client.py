"""Handler client factory shared by every command."""

from __future__ import annotations

import click

from ideflow_core.handlers.base import BaseHandlerClient


def build_client(config: dict, replay_path: str | None = None) -> BaseHandlerClient:
    """Instantiate the handler client for this invocation.

    A --replay recording takes precedence over the configured endpoint, so
    commands can be exercised without a live handler.
    """
    if replay_path:
        from ideflow_core.handlers.replay import ReplayHandlerClient

        client = ReplayHandlerClient.from_file(replay_path)
    else:
        endpoint = config.get("endpoint")
        if not endpoint:
            raise click.UsageError(
                "No handler endpoint configured. Set IDEFLOW_ENDPOINT, add 'endpoint:' to "
                ".ideflow.yml, or pass --replay FILE."
            )
        from ideflow_core.handlers.http import HttpHandlerClient

        client = HttpHandlerClient(
            endpoint=endpoint,
            api_key=config.get("api_key"),
            timeout=float(config.get("timeout", 120)),
            max_retries=int(config.get("max_retries", 3)),
        )

    client.HISTORY_LIMIT = int(config.get("history_limit", client.HISTORY_LIMIT))
    return client
