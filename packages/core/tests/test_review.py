"""Tests for review normalization, review modes and review analytics."""

import json

import pytest

from ideflow_core.review import REVIEW_MODES, ReviewAnalytics, build_review_prompt, get_mode, normalize
from ideflow_core.review.normalizer import (
    build_review_result,
    derive_merge_readiness,
    derive_risk_level,
    derive_verdict,
    parse_review_payload,
)


def _comment(severity="info", category="logic", **extra):
    return {"file": "app.py", "line": 3, "severity": severity, "category": category, "comment": "x", **extra}


# ---------------------------------------------------------------------------
# Recovery chain
# ---------------------------------------------------------------------------


class TestParseReviewPayload:
    def test_strict_json(self):
        assert parse_review_payload('{"quality_score": 80}') == {"quality_score": 80}

    def test_not_json_at_all(self):
        assert normalize("not json at all") is None

    def test_empty_text(self):
        assert normalize("") is None
        assert normalize("   ") is None

    def test_fenced_json_recovered(self):
        raw = 'Here is my review:\n```json\n{"quality_score": 88, "summary": "Solid work."}\n```\nThanks!'
        result = normalize(raw)
        assert result is not None
        assert result.health.quality_score == 88
        assert result.summary == "Solid work."

    def test_repair_closes_truncated_object(self):
        payload = parse_review_payload('{"quality_score": 70, "comments": [{"file": "a.py", "line": 2')
        assert payload["quality_score"] == 70
        assert payload["comments"][0]["file"] == "a.py"

    def test_repair_fixes_trailing_comma(self):
        assert parse_review_payload('{"quality_score": 60,}') == {"quality_score": 60}

    def test_top_level_array_is_not_a_payload(self):
        assert normalize('[{"quality_score": 90}]') is None

    def test_json_repair_crash_is_a_failed_stage(self, mocker):
        mocker.patch("ideflow_core.review.normalizer.repair_json", side_effect=RecursionError("deep"))
        raw = 'prose ```json\n{"summary": "ok"}\n```'
        assert parse_review_payload(raw) == {"summary": "ok"}


# ---------------------------------------------------------------------------
# Derivation rules
# ---------------------------------------------------------------------------


class TestDerivations:
    @pytest.mark.parametrize(
        "critical, errors, comments, expected",
        [
            (1, 0, 0, "critical"),
            (0, 3, 3, "high"),
            (0, 2, 2, "medium"),
            (0, 0, 6, "medium"),
            (0, 0, 5, "low"),
            (0, 0, 0, "low"),
        ],
    )
    def test_risk_level(self, critical, errors, comments, expected):
        assert derive_risk_level(critical, errors, comments) == expected

    def test_merge_readiness(self):
        assert derive_merge_readiness(1, 0) == "blocked"
        assert derive_merge_readiness(0, 1) == "needs-work"
        assert derive_merge_readiness(0, 0) == "ready"

    def test_verdict_from_summary_keywords(self):
        assert derive_verdict("Please REQUEST CHANGES before merging", 0, 0) == "request-changes"
        assert derive_verdict("A few comments inline", 0, 0) == "comment-only"

    def test_verdict_from_counts(self):
        assert derive_verdict("", 1, 0) == "request-changes"
        assert derive_verdict("", 0, 2) == "request-changes"
        assert derive_verdict("", 0, 1) == "approve"


class TestBuildReviewResult:
    def test_clean_review_scenario(self):
        result = normalize(json.dumps({"quality_score": 95, "comments": [], "security_findings": []}))
        assert result.health.risk_level == "low"
        assert result.health.merge_readiness == "ready"
        assert result.health.verdict == "approve"
        assert result.health.quality_score == 95
        assert result.health.confidence == 95

    def test_empty_payload_fully_populated(self):
        result = build_review_result({})
        assert result.health.quality_score == 75
        assert result.health.confidence == 85
        assert result.health.verdict == "approve"
        assert result.summary == "Review complete."
        assert result.comments == []
        assert result.diff_awareness.files_changed == 1

    def test_default_summary_does_not_trigger_comment_verdict(self):
        assert build_review_result({"summary": None}).health.verdict == "approve"

    @pytest.mark.parametrize("score, expected", [(150, 100), (-5, 0), ("82", 82), ("n/a", 75), (True, 75)])
    def test_quality_score_coercion(self, score, expected):
        assert build_review_result({"quality_score": score}).health.quality_score == expected

    def test_camel_case_aliases(self):
        result = build_review_result(
            {"qualityScore": 40, "securityFindings": [{"type": "xss", "severity": "high", "fix": "escape it"}]}
        )
        assert result.health.quality_score == 40
        assert result.security_findings[0].remediation == "escape it"

    def test_high_security_finding_counts_as_critical(self):
        result = build_review_result({"security_findings": [{"severity": "high", "type": "sqli"}]})
        assert result.health.risk_level == "critical"
        assert result.health.merge_readiness == "blocked"
        assert result.health.verdict == "request-changes"

    def test_error_comments_need_work(self):
        result = build_review_result({"comments": [_comment("error")], "summary": "Looks fine"})
        assert result.health.merge_readiness == "needs-work"
        assert result.health.risk_level == "medium"
        assert result.comments[0].is_blocker

    def test_comment_defaults_and_invalid_choices(self):
        result = build_review_result({"comments": [{"severity": "catastrophic", "category": "vibes", "line": "x"}, "junk"]})
        (comment,) = result.comments
        assert comment.severity == "info"
        assert comment.category == "logic"
        assert comment.line == 0
        assert comment.file == "unknown"
        assert comment.id == "comment-0"
        assert not comment.is_blocker

    def test_diff_awareness(self):
        result = build_review_result(
            {
                "comments": [_comment(category="logic"), _comment(category="style"), _comment(category="style")],
                "diff_stats": {"added": 12, "removed": "4", "files": 3},
                "risky_deletions": ["drop table users"],
                "behavior_changes": ["retry removed"],
            }
        )
        diff = result.diff_awareness
        assert (diff.lines_added, diff.lines_removed, diff.files_changed) == (12, 4, 3)
        assert diff.logic_changes == 1
        assert diff.formatting_changes == 2
        assert diff.risky_deletions == ["drop table users"]
        assert diff.behavior_altering_refactors == ["retry removed"]

    def test_review_mode_recorded(self):
        assert normalize("{}", review_mode="strict").review_mode == "strict"


# ---------------------------------------------------------------------------
# Modes and analytics
# ---------------------------------------------------------------------------


class TestReviewModes:
    def test_four_modes(self):
        assert list(REVIEW_MODES) == ["fast", "standard", "strict", "pre-merge"]

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            get_mode("thorough")

    def test_prompt_prefix(self):
        prompt = build_review_prompt("fast", "+x = 1")
        assert prompt.startswith("REVIEW MODE: FAST\nFOCUS AREAS: bugs, security-critical, blockers\n")
        assert "Only report critical bugs" in prompt
        assert prompt.endswith("provide a comprehensive PR review:\n+x = 1")

    def test_standard_has_no_extra_instruction(self):
        prompt = build_review_prompt("standard", "code")
        assert prompt.splitlines()[2] == ""


class TestReviewAnalytics:
    def test_empty(self):
        analytics = ReviewAnalytics()
        assert analytics.average_issues_per_review == 0.0
        assert analytics.avg_quality_score == 0.0
        assert analytics.blocker_rate == 0.0
        assert analytics.reviews_by_mode["pre-merge"] == 0

    def test_record(self):
        analytics = ReviewAnalytics()
        analytics.record(build_review_result({"quality_score": 90, "comments": [_comment("error", "bug")]}, "strict"))
        analytics.record(
            build_review_result(
                {
                    "quality_score": 70,
                    "comments": [_comment("info", "bug"), _comment("warning", "style")],
                    "security_findings": [{"severity": "low"}],
                }
            )
        )
        assert analytics.total_reviews == 2
        assert analytics.average_issues_per_review == 1.5
        assert analytics.avg_quality_score == 80
        assert analytics.blocker_rate == 50
        assert analytics.security_issues_found == 1
        assert analytics.repeated_violations.most_common(1) == [("bug", 2)]
        assert analytics.reviews_by_mode["strict"] == 1
        assert analytics.reviews_by_mode["standard"] == 1
