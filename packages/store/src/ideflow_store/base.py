"""Abstract store interface.

The CLI depends on BaseStore, not on a concrete backend, so the history
backend can be swapped without touching CLI code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ideflow_store.models import ExecutionRecord, ReviewRecord


class BaseStore(ABC):
    """Pluggable history of executions and reviews for one session.

    Listing methods return records most recent first and never raise.
    """

    @abstractmethod
    def save_execution(self, record: ExecutionRecord) -> None:
        """Add an execution record to the history."""

    @abstractmethod
    def list_executions(self, limit: int | None = None) -> list[ExecutionRecord]:
        """Return execution records, newest first, optionally capped at limit."""

    @abstractmethod
    def save_review(self, record: ReviewRecord) -> None:
        """Add a completed review to the history."""

    @abstractmethod
    def list_reviews(self, limit: int | None = None) -> list[ReviewRecord]:
        """Return review records, newest first, optionally capped at limit."""

    def get_execution(self, record_id: str) -> ExecutionRecord | None:
        """Return the execution with the given id, or None."""
        for record in self.list_executions():
            if record.id == record_id:
                return record
        return None

    def close(self) -> None:
        """Release any resources held by the store.

        Backends holding connections or files override this; the in-memory
        and no-op stores have nothing to release.
        """
