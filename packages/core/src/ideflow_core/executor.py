"""Core execution pipeline.

    prompt → classify() → route() → client.stream() → iter_deltas()
           → TokenAccumulator → extract()            (general prompts)
                              → review.normalize()   (review mode)

Telemetry observes every step. Nothing here raises for expected failures:
terminal handler errors and unparseable reviews come back as results with
an error message, and the caller decides how to show them.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Sequence

from ideflow_core.artifacts import Artifact, CodeData
from ideflow_core.extractor import extract
from ideflow_core.handlers.base import BaseHandlerClient, HandlerError
from ideflow_core.intent import classify
from ideflow_core.review.modes import build_review_prompt, get_mode
from ideflow_core.review.models import ReviewResult
from ideflow_core.review.normalizer import normalize
from ideflow_core.router import REVIEWER, route
from ideflow_core.stream import CancelToken, TokenAccumulator, iter_deltas
from ideflow_core.telemetry import SessionTelemetry

logger = logging.getLogger(__name__)

SUCCESS = "success"
ERROR = "error"

CANCELLED_MESSAGE = "Execution cancelled."
REVIEW_PARSE_ERROR = "Could not parse review result."


@dataclass
class ExecutionResult:
    """Outcome of one submitted prompt.

    Decoupled from ideflow_store so ideflow_core has no dependency on the
    store layer. The CLI converts this to an ExecutionRecord before saving.
    """

    prompt: str
    intent: str
    handler_id: str
    status: str  # "success" | "error"
    artifacts: list[Artifact] = field(default_factory=list)
    text: str = ""
    error: str | None = None
    error_category: str | None = None
    is_retry: bool = False
    response_time_ms: float = 0.0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass
class ReviewOutcome:
    """Outcome of a review request. ``result`` is None when it failed; ``raw_text`` is always kept."""

    mode: str
    result: ReviewResult | None = None
    raw_text: str = ""
    error: str | None = None
    error_category: str | None = None
    is_retry: bool = False
    response_time_ms: float = 0.0
    id: str = field(default_factory=lambda: f"review-{uuid.uuid4().hex[:12]}")
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def build_message(prompt: str, files: Sequence[str] = ()) -> str:
    """Append the names of attached files to the prompt."""
    if not files:
        return prompt
    listing = "\n".join(f"- {name}" for name in files)
    return f"{prompt}\n\nAttached files:\n{listing}"


def _consume(
    client: BaseHandlerClient,
    handler_id: str,
    message: str,
    history: list[dict] | None,
    cancel: CancelToken | None,
) -> TokenAccumulator:
    accumulator = TokenAccumulator()
    chunks = client.stream(handler_id, message, history=history, cancel=cancel)
    accumulator.consume(iter_deltas(chunks, cancel))
    return accumulator


def execute(
    prompt: str,
    client: BaseHandlerClient,
    telemetry: SessionTelemetry,
    *,
    files: Sequence[str] = (),
    history: list[dict] | None = None,
    intent: str | None = None,
    cancel: CancelToken | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> ExecutionResult:
    """Run one prompt through the full pipeline and return its artifacts."""
    intent = intent or classify(prompt)
    handler_id = route(intent)
    logger.info("Routing %s request to %s", intent, handler_id)

    telemetry.set_active_session(handler_id)
    is_retry = telemetry.track_prompt(handler_id, prompt)
    telemetry.track_request(handler_id)
    start = clock()

    def failed(message: str, category: str | None = None) -> ExecutionResult:
        return ExecutionResult(
            prompt=prompt,
            intent=intent,
            handler_id=handler_id,
            status=ERROR,
            error=message,
            error_category=category,
            is_retry=is_retry,
        )

    try:
        accumulator = _consume(client, handler_id, build_message(prompt, files), history, cancel)
    except HandlerError as e:
        telemetry.track_error(handler_id)
        logger.warning("Execution on %s failed (%s): %s", handler_id, e.category, e)
        return failed(str(e), e.category)

    if cancel is not None and cancel.cancelled:
        return failed(CANCELLED_MESSAGE, "cancelled")

    text = accumulator.text
    artifacts = extract(text, intent)
    elapsed_ms = (clock() - start) * 1000

    telemetry.track_success(handler_id, elapsed_ms, accumulator.token_estimate)
    for artifact in artifacts:
        if isinstance(artifact.data, CodeData):
            telemetry.track_language(handler_id, artifact.data.language)

    return ExecutionResult(
        prompt=prompt,
        intent=intent,
        handler_id=handler_id,
        status=SUCCESS,
        artifacts=artifacts,
        text=text,
        is_retry=is_retry,
        response_time_ms=elapsed_ms,
    )


def run_review(
    content: str,
    client: BaseHandlerClient,
    telemetry: SessionTelemetry,
    *,
    mode: str = "standard",
    history: list[dict] | None = None,
    cancel: CancelToken | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> ReviewOutcome:
    """Send code or a diff to the reviewer handler and normalize its verdict.

    Raises ValueError for an unknown review mode; every handler-side failure
    is reported through the returned ReviewOutcome instead.
    """
    review_mode = get_mode(mode)
    logger.info("Starting %s review", review_mode.name)

    telemetry.set_active_session(REVIEWER)
    is_retry = telemetry.track_prompt(REVIEWER, content)
    telemetry.track_request(REVIEWER)
    start = clock()

    try:
        accumulator = _consume(client, REVIEWER, build_review_prompt(mode, content), history, cancel)
    except HandlerError as e:
        telemetry.track_error(REVIEWER)
        logger.warning("Review failed (%s): %s", e.category, e)
        return ReviewOutcome(mode=mode, error=str(e), error_category=e.category, is_retry=is_retry)

    raw_text = accumulator.text
    if cancel is not None and cancel.cancelled:
        return ReviewOutcome(
            mode=mode, raw_text=raw_text, error=CANCELLED_MESSAGE, error_category="cancelled", is_retry=is_retry
        )

    result = normalize(raw_text, review_mode=mode)
    elapsed_ms = (clock() - start) * 1000
    if result is None:
        telemetry.track_error(REVIEWER)
        return ReviewOutcome(
            mode=mode,
            raw_text=raw_text,
            error=REVIEW_PARSE_ERROR,
            error_category="parse",
            is_retry=is_retry,
            response_time_ms=elapsed_ms,
        )

    telemetry.track_success(REVIEWER, elapsed_ms, accumulator.token_estimate)
    logger.info(
        "Review complete: %d comment(s), %d security finding(s)",
        len(result.comments),
        len(result.security_findings),
    )
    return ReviewOutcome(
        mode=mode,
        result=result,
        raw_text=raw_text,
        is_retry=is_retry,
        response_time_ms=elapsed_ms,
    )
