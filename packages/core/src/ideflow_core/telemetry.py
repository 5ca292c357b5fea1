"""Per-handler session telemetry and the quality signals derived from it.

No explicit ratings are collected. Usefulness is inferred from what users do
with the output: retrying the same prompt is a bad sign, copying or
downloading an artifact is a good one. SessionTelemetry is a plain object
passed to whoever needs it; there is no module-level instance.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass
class SessionMetrics:
    handler_id: str
    request_count: int = 0
    token_count: int = 0
    success_count: int = 0
    error_count: int = 0
    retry_count: int = 0
    copy_actions: int = 0
    expand_actions: int = 0
    download_actions: int = 0
    manual_edits: int = 0
    avg_response_time: float = 0.0
    response_times: list[float] = field(default_factory=list)
    languages: Counter = field(default_factory=Counter)
    last_prompt: str | None = None
    last_request_time: datetime | None = None
    session_start: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class QualitySignals:
    retry_rate: float = 0.0  # lower is better
    download_rate: float = 0.0
    copy_rate: float = 0.0
    edit_rate: float = 0.0  # lower is better: output was usable as-is
    success_rate: float = 100.0
    avg_code_length: float = 0.0


def _percent(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return max(0.0, min(100.0, numerator / denominator * 100))


class SessionTelemetry:
    """Keyed map of handler id -> SessionMetrics, created lazily.

    Every mutation and every counter read holds the entry's lock, so
    concurrent executions against the same handler never lose an update and
    readers never see a half-applied one.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, SessionMetrics] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self.active_handler: str | None = None

    # ------------------------------------------------------------------ #
    # Session lifecycle                                                    #
    # ------------------------------------------------------------------ #

    def init_session(self, handler_id: str) -> SessionMetrics:
        with self._registry_lock:
            session = self._sessions.get(handler_id)
            if session is None:
                session = SessionMetrics(handler_id=handler_id)
                self._sessions[handler_id] = session
                self._locks[handler_id] = threading.Lock()
                logger.debug("Started telemetry session for %s", handler_id)
            return session

    def set_active_session(self, handler_id: str | None) -> None:
        self.active_handler = handler_id

    def handlers(self) -> list[str]:
        with self._registry_lock:
            return list(self._sessions)

    def get_session_metrics(self, handler_id: str) -> SessionMetrics | None:
        return self._lookup(handler_id)[0]

    def _update(self, handler_id: str):
        session = self.init_session(handler_id)
        return session, self._locks[handler_id]

    def _lookup(self, handler_id: str):
        with self._registry_lock:
            return self._sessions.get(handler_id), self._locks.get(handler_id)

    # ------------------------------------------------------------------ #
    # Mutations                                                           #
    # ------------------------------------------------------------------ #

    def track_request(self, handler_id: str) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.request_count += 1
            session.last_request_time = datetime.now(timezone.utc)

    def track_prompt(self, handler_id: str, prompt: str) -> bool:
        """Remember the prompt; count a retry if it repeats the previous one exactly.

        Byte-identical comparison only, no fuzzy matching. Returns True when
        the prompt was counted as a retry.
        """
        session, lock = self._update(handler_id)
        with lock:
            is_retry = session.last_prompt is not None and session.last_prompt == prompt
            session.last_prompt = prompt
        if is_retry:
            self.track_retry(handler_id)
        return is_retry

    def track_success(self, handler_id: str, response_time_ms: float, token_estimate: int) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.success_count += 1
            session.token_count += token_estimate
            session.response_times.append(response_time_ms)
            # Exact mean over the full history, recomputed on every success.
            session.avg_response_time = sum(session.response_times) / len(session.response_times)

    def track_error(self, handler_id: str) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.error_count += 1

    def track_retry(self, handler_id: str) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.retry_count += 1

    def track_copy(self, handler_id: str) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.copy_actions += 1

    def track_expand(self, handler_id: str) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.expand_actions += 1

    def track_download(self, handler_id: str) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.download_actions += 1

    def track_manual_edit(self, handler_id: str) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.manual_edits += 1

    def track_language(self, handler_id: str, language: str) -> None:
        session, lock = self._update(handler_id)
        with lock:
            session.languages[language] += 1

    # ------------------------------------------------------------------ #
    # Queries                                                             #
    # ------------------------------------------------------------------ #

    def get_quality_signals(self, handler_id: str) -> QualitySignals:
        """Derive quality signals from the current counters.

        A handler with no requests gets neutral defaults, including a 100%
        success rate rather than an alarming 0%.
        """
        session, lock = self._lookup(handler_id)
        if session is None:
            return QualitySignals()

        with lock:
            total = session.request_count
            if total == 0:
                return QualitySignals()
            success = session.success_count
            return QualitySignals(
                retry_rate=_percent(session.retry_count, total),
                download_rate=_percent(session.download_actions, max(success, 1)),
                copy_rate=_percent(session.copy_actions, max(success, 1)),
                edit_rate=_percent(session.manual_edits, max(success, 1)),
                success_rate=_percent(success, total),
                avg_code_length=session.token_count / max(success, 1),
            )

    def session_duration(self, handler_id: str) -> float:
        """Seconds since the handler's session started, 0 for unknown handlers."""
        session = self._sessions.get(handler_id)
        if session is None:
            return 0.0
        return max(0.0, time.time() - session.session_start.timestamp())
