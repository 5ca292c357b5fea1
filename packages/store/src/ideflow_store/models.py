"""Session history data models.

Decoupled from ideflow_core so the store layer can be used independently
and ideflow_core has no knowledge of history concerns.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class ArtifactRecord:
    """One artifact of an execution, with its payload as plain data."""

    id: str
    type: str  # "code" | "document" | "table" | "diff"
    data: dict
    created_at: str  # ISO-8601 UTC timestamp


@dataclass
class ExecutionRecord:
    """A submitted prompt and what came back.

    Created by the CLI layer after execute() returns an ExecutionResult.
    """

    id: str
    prompt: str
    intent: str
    handler_id: str
    timestamp: str  # ISO-8601 UTC timestamp
    status: str  # "success" | "error"
    artifacts: list[ArtifactRecord] = field(default_factory=list)
    error: str | None = None


@dataclass
class CommentRecord:
    """A single review comment kept with its review."""

    file: str
    line: int
    severity: str
    category: str
    comment: str


@dataclass
class ReviewRecord:
    """A completed review, created by the CLI layer from a ReviewOutcome."""

    review_id: str
    timestamp: str  # ISO-8601 UTC timestamp
    mode: str
    verdict: str  # "approve" | "request-changes" | "comment-only"
    quality_score: int
    risk_level: str
    merge_readiness: str
    summary: str
    security_findings: int = 0
    comments: list[CommentRecord] = field(default_factory=list)
