"""Tests for intent classification and handler routing."""

import pytest

from ideflow_core.intent import INTENTS, classify
from ideflow_core.router import HANDLER_FOR_INTENT, HANDLERS, route


class TestClassify:
    @pytest.mark.parametrize(
        "prompt, expected",
        [
            ("Write a Python Fibonacci function", "code"),
            ("Review this pull request", "review"),
            ("Scan the login form for SQL injection", "security"),
            ("Write unit tests for the parser", "testing"),
            ("Explain how the cache works", "documentation"),
            ("Extract the requirements from this spec sheet", "analysis"),
            ("Design a scalable architecture for payments", "architecture"),
            ("Refactor this function", "refactor"),
            ("fix this bug", "debug"),
            ("Debug the crash in main", "debug"),
        ],
    )
    def test_categories(self, prompt, expected):
        assert classify(prompt) == expected

    def test_unmatched_prompt_defaults_to_code(self):
        assert classify("hello there") == "code"

    def test_empty_prompt_defaults_to_code(self):
        assert classify("") == "code"

    def test_case_insensitive(self):
        assert classify("REFACTOR THE MODULE") == "refactor"

    def test_specific_rule_beats_generic_code_verb(self):
        # "write" alone would mean code; the testing rule is checked first.
        assert classify("write tests for the api") == "testing"

    def test_testing_beats_refactor(self):
        assert classify("improve test coverage") == "testing"

    def test_matches_whole_words_only(self):
        # "pr" must not match inside "print" or "prompt".
        assert classify("print a greeting") == "code"

    def test_always_returns_known_intent(self):
        for prompt in ["", "???", "make it pop", "data pipeline"]:
            assert classify(prompt) in INTENTS


class TestRoute:
    def test_every_intent_has_a_handler(self):
        for intent in INTENTS:
            assert route(intent) in HANDLERS

    def test_review_goes_to_reviewer(self):
        assert route("review") == "reviewer"

    def test_code_goes_to_code_writer(self):
        assert route("code") == "code-writer"

    def test_architecture_and_analysis(self):
        assert route("architecture") == "microservices"
        assert route("analysis") == "sys-engineer"

    def test_unknown_intent_falls_back(self):
        assert route("not-an-intent") == "code-writer"

    def test_fallback_does_not_raise_for_none(self):
        assert route(None) == "code-writer"

    def test_table_covers_all_intents(self):
        assert set(HANDLER_FOR_INTENT) == set(INTENTS)

    def test_end_to_end_scenario(self):
        assert route(classify("Write a Python Fibonacci function")) == "code-writer"
