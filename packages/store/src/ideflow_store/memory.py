"""MemoryStore: bounded history that lives as long as the process.

Nothing is written to disk. Each list keeps the newest `max_entries`
records; saving one more silently evicts the oldest.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import TYPE_CHECKING

from ideflow_store.base import BaseStore

if TYPE_CHECKING:
    from ideflow_store.models import ExecutionRecord, ReviewRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 50


class MemoryStore(BaseStore):
    """Keeps the most recent executions and reviews in memory, newest first."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._executions: deque[ExecutionRecord] = deque(maxlen=max_entries)
        self._reviews: deque[ReviewRecord] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def save_execution(self, record: ExecutionRecord) -> None:
        with self._lock:
            if len(self._executions) == self.max_entries:
                logger.debug("Execution history full; evicting %s", self._executions[-1].id)
            self._executions.appendleft(record)

    def list_executions(self, limit: int | None = None) -> list[ExecutionRecord]:
        with self._lock:
            records = list(self._executions)
        return records[:limit] if limit is not None else records

    def save_review(self, record: ReviewRecord) -> None:
        with self._lock:
            self._reviews.appendleft(record)

    def list_reviews(self, limit: int | None = None) -> list[ReviewRecord]:
        with self._lock:
            records = list(self._reviews)
        return records[:limit] if limit is not None else records
