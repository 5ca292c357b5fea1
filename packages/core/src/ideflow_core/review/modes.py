"""Review modes and the prompt prefix each one sends to the reviewer handler."""

from __future__ import annotations

from dataclasses import dataclass, field

FAST = "fast"
STANDARD = "standard"
STRICT = "strict"
PRE_MERGE = "pre-merge"


@dataclass(frozen=True)
class ReviewMode:
    key: str
    name: str
    description: str
    focus: tuple[str, ...] = field(default_factory=tuple)
    instruction: str = ""


REVIEW_MODES: dict[str, ReviewMode] = {
    FAST: ReviewMode(
        key=FAST,
        name="Fast",
        description="Critical issues only",
        focus=("bugs", "security-critical", "blockers"),
        instruction="Skip minor issues. Only report critical bugs, security vulnerabilities, and blockers.",
    ),
    STANDARD: ReviewMode(
        key=STANDARD,
        name="Standard",
        description="Quality + Security",
        focus=("bugs", "security", "performance", "maintainability"),
    ),
    STRICT: ReviewMode(
        key=STRICT,
        name="Strict",
        description="Architecture + Standards",
        focus=("architecture", "standards", "patterns", "naming", "documentation"),
        instruction=(
            "Apply strict standards. Check architecture patterns, naming conventions, "
            "and documentation completeness."
        ),
    ),
    PRE_MERGE: ReviewMode(
        key=PRE_MERGE,
        name="Pre-Merge",
        description="Blockers only",
        focus=("blockers", "breaking-changes", "regressions"),
        instruction="Focus only on merge blockers: breaking changes, regressions, and critical issues.",
    ),
}


def get_mode(key: str) -> ReviewMode:
    try:
        return REVIEW_MODES[key]
    except KeyError:
        raise ValueError(f"Unknown review mode: {key!r}. Choose one of: {', '.join(REVIEW_MODES)}.")


def build_review_prompt(mode_key: str, content: str) -> str:
    """Prefix the code or diff under review with the mode's focus instructions."""
    mode = get_mode(mode_key)
    lines = [
        f"REVIEW MODE: {mode.name.upper()}",
        f"FOCUS AREAS: {', '.join(mode.focus)}",
    ]
    if mode.instruction:
        lines.append(mode.instruction)
    lines.append("")
    lines.append("Analyze the following code/diff and provide a comprehensive PR review:")
    return "\n".join(lines) + "\n" + content
