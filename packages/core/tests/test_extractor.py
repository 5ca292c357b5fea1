"""Tests for turning finished responses into artifacts."""

from dataclasses import asdict

import pytest

from ideflow_core.artifacts import ADDED, REMOVED, Artifact, CodeData, DiffData, DocumentData, TableData
from ideflow_core.extractor import extract


class TestCodeExtraction:
    def test_fibonacci_scenario(self):
        artifacts = extract("Here:\n```python\ndef fib(n): ...\n```", "code")
        assert len(artifacts) == 1
        assert artifacts[0].type == "code"
        assert artifacts[0].data.language == "python"
        assert artifacts[0].data.code == "def fib(n): ..."

    @pytest.mark.parametrize("n", [1, 2, 5])
    def test_n_fences_give_n_artifacts_in_order(self, n):
        text = "\n".join(f"Step {i}:\n```{'go' if i % 2 else ''}\nline {i}\n```" for i in range(n))
        artifacts = extract(text, "code")
        assert len(artifacts) == n
        assert [a.data.code for a in artifacts] == [f"line {i}" for i in range(n)]
        assert [a.data.language for a in artifacts] == ["go" if i % 2 else "plaintext" for i in range(n)]

    def test_unfenced_code_for_code_intents(self):
        artifacts = extract("Try this:\ndef add(a, b):\n    return a + b", "debug")
        assert len(artifacts) == 1
        assert artifacts[0].data.code.startswith("def add")
        assert artifacts[0].data.language == "python"

    def test_no_unfenced_fallback_for_other_intents(self):
        artifacts = extract("def add(a, b):\n    return a + b", "security")
        assert [a.type for a in artifacts] == ["document"]
        assert artifacts[0].data.title == "Response"

    def test_fenced_code_in_review_still_extracted(self):
        artifacts = extract("```diff\n+x\n```", "review")
        assert artifacts[0].type == "code"


class TestOtherArtifacts:
    def test_documentation(self):
        artifacts = extract("Intro\n## Setup\nInstall it.\n## Usage\nRun it.", "documentation")
        assert len(artifacts) == 1
        doc = artifacts[0].data
        assert isinstance(doc, DocumentData)
        assert doc.title == "Generated Documentation"
        assert [s.title for s in doc.sections] == ["Overview", "Setup", "Usage"]

    def test_documentation_with_code_skips_document(self):
        artifacts = extract("## Example\n```python\nprint(1)\n```", "documentation")
        assert [a.type for a in artifacts] == ["code"]

    def test_review_produces_diff(self):
        artifacts = extract("@@ -1,1 +1,1 @@\n-old\n+new", "review")
        assert [a.type for a in artifacts] == ["diff"]
        assert isinstance(artifacts[0].data, DiffData)

    def test_architecture_produces_table(self):
        text = "| Service | Owner |\n|---|---|\n| auth | team-a |"
        artifacts = extract(text, "architecture")
        assert [a.type for a in artifacts] == ["table"]
        assert isinstance(artifacts[0].data, TableData)

    def test_analysis_without_table_falls_back_to_response(self):
        artifacts = extract("No structured data here.", "analysis")
        assert artifacts[0].data.title == "Response"
        assert artifacts[0].data.sections[0].title == "Output"
        assert artifacts[0].data.sections[0].content == "No structured data here."


class TestExtractInvariants:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t\n"])
    def test_blank_text_yields_nothing(self, text):
        assert extract(text, "code") == []

    @pytest.mark.parametrize(
        "text, intent",
        [
            ("Here:\n```python\ndef fib(n): ...\n```", "code"),
            ("## A\nx\n## B\ny", "documentation"),
            ("@@ -1 +1 @@\n-a\n+b\n c", "review"),
            ("| a | b |\n|---|---|\n| 1 | 2 |", "analysis"),
            ("hello", "security"),
        ],
    )
    def test_idempotent(self, text, intent):
        first = extract(text, intent)
        second = extract(text, intent)
        assert [asdict(a.data) for a in first] == [asdict(a.data) for a in second]
        assert [a.type for a in first] == [a.type for a in second]

    @pytest.mark.parametrize(
        "text",
        ["-a\n+b\n+c", "@@ -3,2 +3,3 @@\n ctx\n-gone\n+new\n+newer\n--- header", "+only"],
    )
    def test_diff_stats_match_lines(self, text):
        (artifact,) = [a for a in extract(text, "review") if a.type == "diff"]
        lines = artifact.data.lines
        assert artifact.data.stats.additions == sum(1 for line in lines if line.kind == ADDED)
        assert artifact.data.stats.deletions == sum(1 for line in lines if line.kind == REMOVED)

    def test_non_blank_text_always_yields_something(self):
        for intent in ["code", "review", "documentation", "architecture", "testing"]:
            assert extract("ok", intent)


class TestArtifact:
    def test_type_derived_from_payload(self):
        assert Artifact.of(CodeData(code="x")).type == "code"

    def test_ids_are_unique(self):
        assert Artifact.of(CodeData(code="x")).id != Artifact.of(CodeData(code="x")).id

    def test_to_dict(self):
        d = Artifact.of(CodeData(code="x", language="go")).to_dict()
        assert d["type"] == "code"
        assert d["data"] == {"code": "x", "language": "go", "filename": None}
        assert "created_at" in d

    def test_text_of_table(self):
        artifact = extract("| a | b |\n|---|---|\n| 1 | 2 |", "analysis")[0]
        assert artifact.text == "| a | b |\n|---|---|\n| 1 | 2 |"

    def test_text_of_diff(self):
        artifact = extract("-a\n+b", "review")[0]
        assert artifact.text == "-a\n+b"
