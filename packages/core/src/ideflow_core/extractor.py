"""Turn a finished response into typed artifacts."""

from __future__ import annotations

import logging

from ideflow_core import intent as intents
from ideflow_core.artifacts import Artifact, DocumentData, Section
from ideflow_core.parsers import (
    parse_code_blocks,
    parse_diff,
    parse_document_sections,
    parse_table,
    parse_unfenced_code,
)

logger = logging.getLogger(__name__)


def extract(text: str, intent: str) -> list[Artifact]:
    """Extract artifacts from response text, biased by the prompt's intent.

    Parsers run in a fixed priority: fenced code (with an unfenced fallback
    for code-like intents), document sections, diff, table. If none of them
    produced anything the whole text becomes a single "Response" document,
    so non-empty input never yields an empty list.
    """
    if not text or not text.strip():
        return []

    artifacts = [Artifact.of(block) for block in parse_code_blocks(text)]
    has_code = bool(artifacts)

    if not has_code and intent in intents.CODE_INTENTS:
        unfenced = parse_unfenced_code(text)
        if unfenced is not None:
            artifacts.append(Artifact.of(unfenced))

    if intent == intents.DOCUMENTATION and not has_code:
        sections = parse_document_sections(text)
        artifacts.append(Artifact.of(DocumentData(title="Generated Documentation", sections=sections)))

    if intent == intents.REVIEW:
        diff = parse_diff(text)
        if diff is not None:
            artifacts.append(Artifact.of(diff))

    if intent in (intents.ARCHITECTURE, intents.ANALYSIS):
        table = parse_table(text)
        if table is not None:
            artifacts.append(Artifact.of(table))

    if not artifacts:
        artifacts.append(Artifact.of(DocumentData(title="Response", sections=[Section(title="Output", content=text)])))

    logger.debug("Extracted %d artifact(s) for intent %s", len(artifacts), intent)
    return artifacts
