"""Parse a reviewer handler's raw text into a ReviewResult.

Recovery chain for the raw text:
    1. strict json.loads of the whole text
    2. json_repair.repair_json (unterminated strings/objects, trailing
       commas) followed by json.loads
    3. the contents of the first ```json fenced block

A stage only counts as a success when it yields a JSON object. When all
three fail, normalize() returns None and the caller decides what to tell
the user; nothing here raises for malformed handler output.
"""

from __future__ import annotations

import json
import logging
import re

from json_repair import repair_json

from ideflow_core.review.models import (
    COMMENT_CATEGORIES,
    COMMENT_SEVERITIES,
    FINDING_SEVERITIES,
    DiffAwareness,
    HealthSummary,
    ReviewComment,
    ReviewResult,
    SecurityFinding,
)

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)

DEFAULT_QUALITY_SCORE = 75
MAX_CONFIDENCE = 95

# More than this many error-severity comments raises risk to "high".
_HIGH_RISK_ERROR_COUNT = 2
# More than this many comments of any severity raises risk to "medium".
_MEDIUM_RISK_COMMENT_COUNT = 5
# More than this many error-severity comments requests changes.
_REQUEST_CHANGES_ERROR_COUNT = 1


def _loads_object(text: str) -> dict | None:
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return payload if isinstance(payload, dict) else None


def parse_review_payload(raw: str) -> dict | None:
    """Run the three-stage recovery chain and return the payload object, or None."""
    if not raw or not raw.strip():
        return None

    payload = _loads_object(raw)
    if payload is not None:
        return payload

    try:
        payload = _loads_object(repair_json(raw))
    except Exception as e:
        # json_repair is best-effort; a crash inside it is just another failed stage.
        logger.debug("json_repair failed on review text: %s", e)
        payload = None
    if payload is not None:
        logger.debug("Review payload recovered by JSON repair")
        return payload

    match = _JSON_FENCE_RE.search(raw)
    if match:
        payload = _loads_object(match.group(1).strip())
        if payload is not None:
            logger.debug("Review payload recovered from fenced block")
            return payload

    return None


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _first(payload: dict, *keys: str):
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def _as_int(value, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _as_str(value, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def _as_choice(value, choices: tuple[str, ...], default: str) -> str:
    text = _as_str(value).strip().lower()
    return text if text in choices else default


def _as_str_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [_as_str(v) for v in value if v is not None]


def _as_dict_list(value) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, dict)]


def _build_comment(raw: dict, index: int) -> ReviewComment:
    severity = _as_choice(raw.get("severity"), COMMENT_SEVERITIES, "info")
    suggestion = raw.get("suggestion")
    snippet = raw.get("snippet")
    return ReviewComment(
        id=_as_str(raw.get("id")) or f"comment-{index}",
        file=_as_str(raw.get("file")) or "unknown",
        line=_as_int(raw.get("line"), 0),
        severity=severity,
        category=_as_choice(raw.get("category"), COMMENT_CATEGORIES, "logic"),
        comment=_as_str(_first(raw, "comment", "message")),
        suggestion=_as_str(suggestion) if suggestion is not None else None,
        snippet=_as_str(snippet) if snippet is not None else None,
        is_blocker=severity in ("critical", "error"),
    )


def _build_finding(raw: dict, index: int) -> SecurityFinding:
    return SecurityFinding(
        id=_as_str(raw.get("id")) or f"security-{index}",
        file=_as_str(raw.get("file")) or "unknown",
        line=_as_int(raw.get("line"), 0),
        type=_as_str(raw.get("type")) or "unknown",
        severity=_as_choice(raw.get("severity"), FINDING_SEVERITIES, "medium"),
        description=_as_str(raw.get("description")),
        remediation=_as_str(_first(raw, "remediation", "fix")),
    )


# ---------------------------------------------------------------------------
# Derivation rules
# ---------------------------------------------------------------------------


def derive_risk_level(critical_count: int, error_count: int, comment_count: int) -> str:
    if critical_count > 0:
        return "critical"
    if error_count > _HIGH_RISK_ERROR_COUNT:
        return "high"
    if error_count > 0 or comment_count > _MEDIUM_RISK_COMMENT_COUNT:
        return "medium"
    return "low"


def derive_merge_readiness(critical_count: int, error_count: int) -> str:
    if critical_count > 0:
        return "blocked"
    if error_count > 0:
        return "needs-work"
    return "ready"


def derive_verdict(summary: str, critical_count: int, error_count: int) -> str:
    """The handler's own summary wins over the severity counts."""
    text = summary.lower()
    if "request changes" in text:
        return "request-changes"
    if "comment" in text:
        return "comment-only"
    if critical_count > 0 or error_count > _REQUEST_CHANGES_ERROR_COUNT:
        return "request-changes"
    return "approve"


def build_review_result(payload: dict, review_mode: str = "standard") -> ReviewResult:
    """Build a fully-populated ReviewResult from a recovered payload object."""
    score = _as_int(_first(payload, "quality_score", "qualityScore"), DEFAULT_QUALITY_SCORE)
    quality_score = max(0, min(100, score))

    comments = [_build_comment(c, i) for i, c in enumerate(_as_dict_list(payload.get("comments")))]
    findings = [
        _build_finding(f, i)
        for i, f in enumerate(_as_dict_list(_first(payload, "security_findings", "securityFindings")))
    ]

    critical_count = sum(1 for c in comments if c.severity == "critical") + sum(
        1 for f in findings if f.severity in ("critical", "high")
    )
    error_count = sum(1 for c in comments if c.severity == "error")

    summary_value = payload.get("summary")
    summary = _as_str(summary_value).strip() or "Review complete."
    # Verdict keywords are only read from a summary the handler actually wrote.
    verdict_source = _as_str(summary_value) if summary_value is not None else ""

    diff_stats = payload.get("diff_stats")
    if not isinstance(diff_stats, dict):
        diff_stats = {}

    return ReviewResult(
        health=HealthSummary(
            quality_score=quality_score,
            risk_level=derive_risk_level(critical_count, error_count, len(comments)),
            merge_readiness=derive_merge_readiness(critical_count, error_count),
            confidence=min(MAX_CONFIDENCE, quality_score + 10),
            verdict=derive_verdict(verdict_source, critical_count, error_count),
        ),
        diff_awareness=DiffAwareness(
            lines_added=_as_int(diff_stats.get("added"), 0),
            lines_removed=_as_int(diff_stats.get("removed"), 0),
            files_changed=_as_int(diff_stats.get("files"), 1) or 1,
            logic_changes=sum(1 for c in comments if c.category == "logic"),
            formatting_changes=sum(1 for c in comments if c.category == "style"),
            risky_deletions=_as_str_list(payload.get("risky_deletions")),
            behavior_altering_refactors=_as_str_list(payload.get("behavior_changes")),
        ),
        comments=comments,
        security_findings=findings,
        summary=summary,
        review_mode=review_mode,
    )


def normalize(raw: str, review_mode: str = "standard") -> ReviewResult | None:
    """Parse raw handler text into a ReviewResult, or None if no payload can be recovered."""
    payload = parse_review_payload(raw)
    if payload is None:
        logger.warning("Could not parse review result: %.200s", raw or "")
        return None
    return build_review_result(payload, review_mode)
