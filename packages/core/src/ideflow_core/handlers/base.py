"""Base handler client implementing the Template Method pattern.

All transports share the same invocation algorithm:
    stream() → _build_request()
             → _open_with_retry() → _open_stream()   ← only this differs per transport
             → yield raw byte chunks

Subclasses implement two things only:
  - __init__: validate and store the transport client
  - _open_stream: start one streaming request and return a StreamResponse

Request shape, history capping, status-code mapping and retry of connection
failures live here so every transport behaves the same way.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterator

from ideflow_core.stream import CancelToken

logger = logging.getLogger(__name__)

# Shared defaults; subclasses may override as class attributes if needed.
_MAX_RETRIES = 3
_HISTORY_LIMIT = 10


class HandlerError(Exception):
    """A terminal request failure surfaced to the user."""

    category = "failure"
    user_message = "Execution failed. Please try again."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        super().__init__(message or self.user_message)
        self.status_code = status_code


class RateLimitError(HandlerError):
    category = "rate_limit"
    user_message = "Rate limit exceeded. Please try again later."


class CreditsExhaustedError(HandlerError):
    category = "credits_exhausted"
    user_message = "AI credits exhausted. Please add more credits."


class HandlerRequestError(HandlerError):
    category = "failure"


class HandlerConnectionError(HandlerError):
    """Raised by transports when no response could be obtained at all. Retried."""

    category = "failure"


def error_for_status(status_code: int, detail: str = "") -> HandlerError:
    if status_code == 429:
        return RateLimitError(status_code=status_code)
    if status_code == 402:
        return CreditsExhaustedError(status_code=status_code)
    message = f"Execution failed: {status_code}"
    if detail:
        message += f" ({detail[:200]})"
    return HandlerRequestError(message, status_code=status_code)


@dataclass
class StreamResponse:
    """An opened streaming response: its status, body chunks and a close hook."""

    status_code: int
    chunks: Iterator[bytes]
    close: Callable[[], None] | None = None
    body: str = ""

    def release(self) -> None:
        if self.close is not None:
            self.close()


class BaseHandlerClient(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    HISTORY_LIMIT: int = _HISTORY_LIMIT

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def stream(
        self,
        handler_id: str,
        message: str,
        history: list[dict] | None = None,
        cancel: CancelToken | None = None,
    ) -> Iterator[bytes]:
        """Invoke a handler and yield the raw bytes of its streaming response.

        Raises a HandlerError subclass for non-success statuses. A cancelled
        token stops reading and closes the response.
        """
        request = self._build_request(handler_id, message, history)
        response = self._open_with_retry(request)
        try:
            if not 200 <= response.status_code < 300:
                raise error_for_status(response.status_code, response.body)
            for chunk in response.chunks:
                if cancel is not None and cancel.cancelled:
                    logger.info("Stream from %s cancelled", handler_id)
                    return
                yield chunk
        finally:
            response.release()

    def close(self) -> None:
        """Release the transport. Default is a no-op."""

    # ------------------------------------------------------------------ #
    # Abstract: implement in each transport                               #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _open_stream(self, request: dict) -> StreamResponse:
        """Start a single streaming request.

        Raise HandlerConnectionError when the handler could not be reached;
        _open_with_retry handles retries and logging.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _build_request(self, handler_id: str, message: str, history: list[dict] | None) -> dict:
        """Build the invocation body. Only the most recent history entries are sent."""
        recent = list(history or [])[-self.HISTORY_LIMIT :]
        return {
            "handlerId": handler_id,
            "message": message,
            "history": [{"role": h.get("role", "user"), "content": h.get("content", "")} for h in recent],
        }

    def _open_with_retry(self, request: dict) -> StreamResponse:
        """Retry _open_stream on connection failures with exponential backoff.

        Only failures before the first byte are retried; a response that
        arrived, whatever its status, is returned as-is.
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                return self._open_stream(request)
            except HandlerConnectionError as e:
                if attempt == self.MAX_RETRIES - 1:
                    logger.error(
                        "%s could not reach handler %s after %d attempts: %s",
                        self.__class__.__name__,
                        request["handlerId"],
                        self.MAX_RETRIES,
                        e,
                    )
                    raise
                delay = 2**attempt
                logger.warning(
                    "%s connection error (attempt %d/%d): %s. Retrying in %ds...",
                    self.__class__.__name__,
                    attempt + 1,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)
        raise HandlerConnectionError("No attempts made")
