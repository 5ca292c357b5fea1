from __future__ import annotations

import logging
from typing import Iterator

import httpx

from ideflow_core.handlers.base import BaseHandlerClient, HandlerConnectionError, HandlerRequestError, StreamResponse

logger = logging.getLogger(__name__)


class HttpHandlerClient(BaseHandlerClient):
    """Streams handler responses from an HTTP endpoint speaking the SSE chunk format."""

    def __init__(self, endpoint: str, api_key: str | None = None, timeout: float = 120.0, max_retries: int = 3):
        if not endpoint:
            raise ValueError("A handler endpoint URL is required.")
        self.endpoint = endpoint
        self.MAX_RETRIES = max_retries
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.Client(headers=headers, timeout=httpx.Timeout(timeout))

    def _open_stream(self, request: dict) -> StreamResponse:
        http_request = self.client.build_request("POST", self.endpoint, json=request)
        try:
            response = self.client.send(http_request, stream=True)
        except httpx.TransportError as e:
            raise HandlerConnectionError(f"{type(e).__name__}: {e}") from e

        body = ""
        if not response.is_success:
            # Error bodies are small JSON documents; read them for the log message.
            try:
                body = response.read().decode("utf-8", errors="replace")
            except httpx.HTTPError as e:
                logger.debug("Could not read error body (%s): %s", response.status_code, e)
                response.close()
        return StreamResponse(
            status_code=response.status_code,
            chunks=self._iter_chunks(response),
            close=response.close,
            body=body,
        )

    @staticmethod
    def _iter_chunks(response: httpx.Response) -> Iterator[bytes]:
        try:
            yield from response.iter_bytes()
        except httpx.HTTPError as e:
            # Dropped connection or undecodable body mid-stream. Nothing already read is retried.
            raise HandlerRequestError(f"Stream interrupted: {type(e).__name__}: {e}") from e

    def close(self) -> None:
        self.client.close()
