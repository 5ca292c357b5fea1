"""Review result records.

Every field has a default so a ReviewResult is always fully populated,
whatever the handler actually returned.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

COMMENT_SEVERITIES = ("info", "warning", "error", "critical")
COMMENT_CATEGORIES = ("bug", "security", "performance", "style", "architecture", "logic", "documentation")
FINDING_SEVERITIES = ("low", "medium", "high", "critical")

RISK_LEVELS = ("low", "medium", "high", "critical")
MERGE_READINESS = ("ready", "needs-work", "blocked")
VERDICTS = ("approve", "request-changes", "comment-only")


@dataclass
class HealthSummary:
    quality_score: int = 75
    risk_level: str = "low"
    merge_readiness: str = "ready"
    confidence: int = 85
    verdict: str = "approve"


@dataclass
class DiffAwareness:
    lines_added: int = 0
    lines_removed: int = 0
    files_changed: int = 1
    logic_changes: int = 0
    formatting_changes: int = 0
    risky_deletions: list[str] = field(default_factory=list)
    behavior_altering_refactors: list[str] = field(default_factory=list)


@dataclass
class ReviewComment:
    id: str
    file: str = "unknown"
    line: int = 0
    severity: str = "info"
    category: str = "logic"
    comment: str = ""
    suggestion: str | None = None
    snippet: str | None = None
    is_blocker: bool = False


@dataclass
class SecurityFinding:
    id: str
    file: str = "unknown"
    line: int = 0
    type: str = "unknown"
    severity: str = "medium"
    description: str = ""
    remediation: str = ""


@dataclass
class ReviewResult:
    health: HealthSummary = field(default_factory=HealthSummary)
    diff_awareness: DiffAwareness = field(default_factory=DiffAwareness)
    comments: list[ReviewComment] = field(default_factory=list)
    security_findings: list[SecurityFinding] = field(default_factory=list)
    summary: str = "Review complete."
    review_mode: str = "standard"
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def has_blockers(self) -> bool:
        return any(c.is_blocker for c in self.comments)

    def to_dict(self) -> dict:
        return asdict(self)
