"""Aggregate statistics over the reviews completed in a session."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from ideflow_core.review.modes import REVIEW_MODES
from ideflow_core.review.models import ReviewResult


@dataclass
class ReviewAnalytics:
    total_reviews: int = 0
    total_issues: int = 0
    security_issues_found: int = 0
    reviews_with_blockers: int = 0
    quality_score_total: int = 0
    repeated_violations: Counter = field(default_factory=Counter)
    reviews_by_mode: Counter = field(default_factory=lambda: Counter({key: 0 for key in REVIEW_MODES}))

    def record(self, result: ReviewResult) -> None:
        self.total_reviews += 1
        self.total_issues += len(result.comments)
        self.security_issues_found += len(result.security_findings)
        self.quality_score_total += result.health.quality_score
        if result.has_blockers:
            self.reviews_with_blockers += 1
        for comment in result.comments:
            self.repeated_violations[comment.category] += 1
        self.reviews_by_mode[result.review_mode] += 1

    @property
    def average_issues_per_review(self) -> float:
        return self.total_issues / self.total_reviews if self.total_reviews else 0.0

    @property
    def avg_quality_score(self) -> float:
        return self.quality_score_total / self.total_reviews if self.total_reviews else 0.0

    @property
    def blocker_rate(self) -> float:
        """Percentage of reviews with at least one blocking comment."""
        return self.reviews_with_blockers / self.total_reviews * 100 if self.total_reviews else 0.0
