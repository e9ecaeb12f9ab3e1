"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock, patch

from src.services.metrics import NAMESPACE, MetricsClient


def _make_client(*, enabled: bool = False) -> MetricsClient:
    with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}):
        with patch.object(MetricsClient, "_start_flush_thread"):
            return MetricsClient()


def _dim_map(metric: dict) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in metric["Dimensions"]}


class TestMetricsRecording:
    def test_record_success_appends_count_and_latency(self):
        client = _make_client(enabled=True)
        client.record_success("ollama", "chat", latency_ms=812.0)
        names = [m["MetricName"] for m in client._buffer]
        assert names == ["Dependency/RequestCount", "Dependency/Latency"]

    def test_record_failure_without_latency(self):
        client = _make_client(enabled=True)
        client.record_failure("tool", "get_weather", error_type="ToolResolutionError")
        names = {m["MetricName"] for m in client._buffer}
        assert names == {"Dependency/RequestCount", "Dependency/ErrorCount"}

    def test_record_failure_with_latency(self):
        client = _make_client(enabled=True)
        client.record_failure("ollama", "chat", error_type="ReadTimeout", latency_ms=120000.0)
        assert len(client._buffer) == 3

    def test_dimensions(self):
        client = _make_client(enabled=True)
        client.record_success("ollama", "list_models", latency_ms=5.0)
        client.record_failure("tool", "scrape_link", error_type="TimeoutError")

        count_metric = client._buffer[0]
        assert _dim_map(count_metric) == {"Service": "ollama", "Status": "success"}
        error_metric = next(
            m for m in client._buffer if m["MetricName"] == "Dependency/ErrorCount"
        )
        assert _dim_map(error_metric)["ErrorType"] == "TimeoutError"

    def test_record_count_has_no_dimensions(self):
        client = _make_client(enabled=True)
        client.record_count("Agent/ToolRounds", 3)
        (metric,) = client._buffer
        assert metric["MetricName"] == "Agent/ToolRounds"
        assert metric["Value"] == 3
        assert metric["Dimensions"] == []

    def test_disabled_client_does_not_buffer(self, caplog):
        client = _make_client()
        with caplog.at_level(logging.DEBUG, logger="src.services.metrics"):
            for _ in range(500):
                client.record_success("ollama", "chat", latency_ms=1.0)
                client.record_failure("tool", "get_weather", error_type="TimeoutError")
                client.record_count("Agent/ToolRounds")
        assert client._buffer == []
        assert any("Metric: ollama chat success" in r.getMessage() for r in caplog.records)


class TestMetricsFlush:
    def test_flush_when_disabled_sends_nothing(self):
        client = _make_client()
        client._cw_client = MagicMock()
        client.record_success("ollama", "chat", latency_ms=100.0)
        assert client.flush() == 0
        client._cw_client.put_metric_data.assert_not_called()

    def test_flush_when_enabled_calls_put_metric_data(self):
        client = _make_client(enabled=True)
        mock_cw = MagicMock()
        client._cw_client = mock_cw

        client.record_success("ollama", "chat", latency_ms=100.0)
        sent = client.flush()

        assert sent == 2
        kwargs = mock_cw.put_metric_data.call_args[1]
        assert kwargs["Namespace"] == NAMESPACE
        assert len(kwargs["MetricData"]) == 2

    def test_flush_failure_is_logged_not_raised(self):
        client = _make_client(enabled=True)
        client._cw_client = MagicMock()
        client._cw_client.put_metric_data.side_effect = RuntimeError("throttled")
        client.record_count("Agent/RecursionLimitHit")
        assert client.flush() == 0

    def test_flush_empty_buffer_returns_zero(self):
        assert _make_client(enabled=True).flush() == 0
