"""Intent classification for free-form prompts.

The classifier is an ordered list of keyword rules. The first rule whose
pattern matches the lower-cased prompt decides the category; a prompt that
matches nothing is treated as a plain code request.

Rule order matters. The generic code verbs ("write", "create", "build")
appear in almost every prompt, so the specific categories are tested first
or they would never be reached.
"""

from __future__ import annotations

import re

CODE = "code"
REFACTOR = "refactor"
DEBUG = "debug"
REVIEW = "review"
DOCUMENTATION = "documentation"
TESTING = "testing"
ARCHITECTURE = "architecture"
ANALYSIS = "analysis"
SECURITY = "security"

INTENTS = (CODE, REFACTOR, DEBUG, REVIEW, DOCUMENTATION, TESTING, ARCHITECTURE, ANALYSIS, SECURITY)

DEFAULT_INTENT = CODE

# Intents whose responses are expected to be source code even without fences.
CODE_INTENTS = frozenset({CODE, REFACTOR, DEBUG})


def _words(*alternatives: str) -> re.Pattern[str]:
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b")


INTENT_RULES: list[tuple[str, re.Pattern[str]]] = [
    (REVIEW, _words(r"review", r"pr", r"pull request", r"analyze code", r"code review")),
    (SECURITY, _words(r"security", r"vulnerabilit(?:y|ies)", r"scan", r"audit", r"cve", r"injection")),
    (TESTING, _words(r"tests?", r"unit tests?", r"test cases?", r"testing", r"pytest", r"coverage")),
    (DOCUMENTATION, _words(r"document", r"documentation", r"docs", r"readme", r"explain", r"describe", r"docstrings?")),
    (ANALYSIS, _words(r"use cases?", r"requirements?", r"extract", r"analyze document", r"traceability")),
    (
        ARCHITECTURE,
        _words(r"architecture", r"design", r"microservices?", r"system", r"scale", r"scalability", r"infrastructure"),
    ),
    (REFACTOR, _words(r"refactor", r"improve", r"optimi[sz]e", r"clean(?: up)?", r"restructure", r"simplify")),
    (DEBUG, _words(r"fix", r"debug", r"error", r"bug", r"issue", r"problem", r"crash", r"exception", r"traceback")),
    (
        CODE,
        _words(r"write", r"create", r"generate", r"build", r"implement", r"code", r"program", r"function", r"class", r"api"),
    ),
]


def classify(prompt: str) -> str:
    """Return the intent category for a prompt. Never raises."""
    text = (prompt or "").lower()
    for intent, pattern in INTENT_RULES:
        if pattern.search(text):
            return intent
    return DEFAULT_INTENT
