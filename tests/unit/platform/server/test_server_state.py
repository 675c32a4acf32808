"""Unit tests for ServerState and the health report."""

from lm_gateway.platform.server.health import health_report
from lm_gateway.platform.server.state import ServerState
from lm_gateway.platform.upstream.messages import ChatModel


class TestServerState:
    """Tests for ServerState transitions."""

    def test_initially_stopped(self):
        """A new state is stopped with zero counters."""
        state = ServerState()
        assert state.is_running is False
        assert state.uptime_ms == 0
        assert (state.request_count, state.error_count) == (0, 0)

    def test_start_resets_counters(self):
        """Starting records the address and clears the counters."""
        state = ServerState(request_count=5, error_count=2)

        state.mark_started("127.0.0.1", 8099)

        assert state.is_running is True
        assert (state.host, state.port) == ("127.0.0.1", 8099)
        assert (state.request_count, state.error_count) == (0, 0)
        assert state.uptime_ms >= 0

    def test_stop_clears_address(self):
        """Stopping clears the address but keeps the counters."""
        state = ServerState()
        state.mark_started("127.0.0.1", 8099)
        state.request_count = 3

        state.mark_stopped()

        assert state.is_running is False
        assert state.port is None
        assert state.request_count == 3

    def test_snapshot_is_detached(self):
        """Later changes do not affect a snapshot."""
        state = ServerState()
        snapshot = state.snapshot()

        state.request_count += 1

        assert snapshot.request_count == 0


class TestHealthReport:
    """Tests for health_report()."""

    def test_report_fields(self):
        """The report carries status, counters, models and routes."""
        state = ServerState()
        state.mark_started("127.0.0.1", 8099)
        state.request_count = 4
        state.error_count = 1

        report = health_report(state, [ChatModel(id="gpt-4o")])

        assert report["status"] == "healthy"
        assert report["server"]["running"] is True
        assert report["server"]["requests"] == 4
        assert report["server"]["errors"] == 1
        assert report["languageModels"] == {"available": 1, "accessible": True}
        assert report["endpoints"] == {
            "openai": "/v1/chat/completions",
            "anthropic": "/v1/messages",
        }
        assert "T" in report["timestamp"]

    def test_no_models(self):
        """Zero models are reported as not accessible."""
        report = health_report(ServerState(), [])

        assert report["languageModels"] == {"available": 0, "accessible": False}
