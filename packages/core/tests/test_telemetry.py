"""Tests for session telemetry and derived quality signals."""

import threading

import pytest

from ideflow_core.telemetry import QualitySignals, SessionTelemetry


@pytest.fixture
def telemetry():
    return SessionTelemetry()


class TestQualitySignals:
    def test_unknown_handler_gets_neutral_defaults(self, telemetry):
        signals = telemetry.get_quality_signals("code-writer")
        assert signals == QualitySignals(
            retry_rate=0.0,
            download_rate=0.0,
            copy_rate=0.0,
            edit_rate=0.0,
            success_rate=100.0,
            avg_code_length=0.0,
        )

    def test_session_with_zero_requests_gets_defaults(self, telemetry):
        telemetry.init_session("docs")
        telemetry.track_copy("docs")
        assert telemetry.get_quality_signals("docs").success_rate == 100.0

    def test_rates(self, telemetry):
        for _ in range(4):
            telemetry.track_request("debug")
        for _ in range(2):
            telemetry.track_success("debug", 100.0, 50)
        telemetry.track_error("debug")
        telemetry.track_retry("debug")
        telemetry.track_copy("debug")
        telemetry.track_download("debug")
        telemetry.track_download("debug")
        telemetry.track_manual_edit("debug")

        signals = telemetry.get_quality_signals("debug")
        assert signals.success_rate == 50.0
        assert signals.retry_rate == 25.0
        assert signals.copy_rate == 50.0
        assert signals.download_rate == 100.0
        assert signals.edit_rate == 50.0
        assert signals.avg_code_length == 50.0

    def test_rates_clamped_to_100(self, telemetry):
        telemetry.track_request("api")
        telemetry.track_success("api", 10.0, 1)
        for _ in range(5):
            telemetry.track_copy("api")
        assert telemetry.get_quality_signals("api").copy_rate == 100.0


class TestTracking:
    def test_sessions_created_lazily(self, telemetry):
        assert telemetry.get_session_metrics("reviewer") is None
        telemetry.track_request("reviewer")
        assert telemetry.get_session_metrics("reviewer").request_count == 1
        assert telemetry.handlers() == ["reviewer"]

    def test_identical_prompt_counts_as_retry(self, telemetry):
        assert telemetry.track_prompt("debug", "fix this bug") is False
        assert telemetry.track_prompt("debug", "fix this bug") is True
        assert telemetry.get_session_metrics("debug").retry_count == 1

    def test_retry_is_byte_identical_only(self, telemetry):
        telemetry.track_prompt("debug", "fix this bug")
        assert telemetry.track_prompt("debug", "fix this bug ") is False
        assert telemetry.track_prompt("debug", "Fix this bug") is False

    def test_retry_is_per_handler(self, telemetry):
        telemetry.track_prompt("debug", "same")
        assert telemetry.track_prompt("docs", "same") is False

    def test_average_response_time_is_exact_mean(self, telemetry):
        for ms in (100.0, 200.0, 600.0):
            telemetry.track_success("docs", ms, 10)
        metrics = telemetry.get_session_metrics("docs")
        assert metrics.avg_response_time == pytest.approx(300.0)
        assert metrics.response_times == [100.0, 200.0, 600.0]
        assert metrics.token_count == 30

    def test_languages_counted(self, telemetry):
        telemetry.track_language("code-writer", "python")
        telemetry.track_language("code-writer", "python")
        telemetry.track_language("code-writer", "go")
        assert telemetry.get_session_metrics("code-writer").languages == {"python": 2, "go": 1}

    def test_expand_tracked(self, telemetry):
        telemetry.track_expand("docs")
        assert telemetry.get_session_metrics("docs").expand_actions == 1

    def test_active_session(self, telemetry):
        telemetry.set_active_session("docs")
        assert telemetry.active_handler == "docs"

    def test_session_duration(self, telemetry):
        assert telemetry.session_duration("nobody") == 0.0
        telemetry.init_session("docs")
        assert telemetry.session_duration("docs") >= 0.0

    def test_concurrent_updates_not_lost(self, telemetry):
        def work():
            for _ in range(200):
                telemetry.track_request("code-writer")
                telemetry.track_success("code-writer", 1.0, 1)

        threads = [threading.Thread(target=work) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        metrics = telemetry.get_session_metrics("code-writer")
        assert metrics.request_count == 1600
        assert metrics.success_count == 1600
        assert len(metrics.response_times) == 1600

    def test_signals_wait_for_in_flight_update(self, telemetry):
        telemetry.track_request("code-writer")
        lock = telemetry._locks["code-writer"]
        signals = []

        lock.acquire()
        try:
            reader = threading.Thread(target=lambda: signals.append(telemetry.get_quality_signals("code-writer")))
            reader.start()
            reader.join(timeout=0.1)
            assert reader.is_alive()
            metrics = telemetry.get_session_metrics("code-writer")
            metrics.success_count += 1
        finally:
            lock.release()

        reader.join(timeout=5)
        assert signals == [QualitySignals(success_rate=100.0)]
