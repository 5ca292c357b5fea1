from ideflow_core.review.analytics import ReviewAnalytics
from ideflow_core.review.modes import REVIEW_MODES, build_review_prompt, get_mode
from ideflow_core.review.models import ReviewResult
from ideflow_core.review.normalizer import normalize, parse_review_payload

__all__ = [
    "REVIEW_MODES",
    "ReviewAnalytics",
    "ReviewResult",
    "build_review_prompt",
    "get_mode",
    "normalize",
    "parse_review_payload",
]
