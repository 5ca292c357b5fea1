"""No-op store for callers that want no history at all.

The CLI calls save_*() on whatever store it built, so selecting
`store: noop` needs no special casing anywhere else.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ideflow_store.base import BaseStore

if TYPE_CHECKING:
    from ideflow_store.models import ExecutionRecord, ReviewRecord


class NoOpStore(BaseStore):
    """Silently discards all records. Selected with `store: noop`."""

    def save_execution(self, record: ExecutionRecord) -> None:
        pass

    def list_executions(self, limit: int | None = None) -> list[ExecutionRecord]:
        return []

    def save_review(self, record: ReviewRecord) -> None:
        pass

    def list_reviews(self, limit: int | None = None) -> list[ReviewRecord]:
        return []
