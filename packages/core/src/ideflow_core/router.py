"""Map intent categories to the handler that serves them."""

from __future__ import annotations

import logging

from ideflow_core import intent as intents

logger = logging.getLogger(__name__)

CODE_WRITER = "code-writer"
REFACTOR = "refactor"
DEBUG = "debug"
REVIEWER = "reviewer"
DOCS = "docs"
API = "api"
MICROSERVICES = "microservices"
SYS_ENGINEER = "sys-engineer"

HANDLERS = (CODE_WRITER, REFACTOR, DEBUG, REVIEWER, DOCS, API, MICROSERVICES, SYS_ENGINEER)

DEFAULT_HANDLER = CODE_WRITER

HANDLER_FOR_INTENT: dict[str, str] = {
    intents.CODE: CODE_WRITER,
    intents.REFACTOR: REFACTOR,
    intents.DEBUG: DEBUG,
    intents.REVIEW: REVIEWER,
    intents.DOCUMENTATION: DOCS,
    intents.TESTING: CODE_WRITER,
    intents.ARCHITECTURE: MICROSERVICES,
    intents.ANALYSIS: SYS_ENGINEER,
    intents.SECURITY: CODE_WRITER,
}


def route(intent: str) -> str:
    """Return the handler id for an intent, falling back to the general code writer."""
    handler_id = HANDLER_FOR_INTENT.get(intent)
    if handler_id is None:
        logger.debug("No handler mapped for intent %r; using %s", intent, DEFAULT_HANDLER)
        return DEFAULT_HANDLER
    return handler_id
