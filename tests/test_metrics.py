"""
Tests for in-process metrics collection.
"""

import pytest

from paramcast.metrics import MetricsCollector, get_metrics_collector, time_operation, timing_decorator


@pytest.fixture
def metrics():
    collector = get_metrics_collector()
    collector.reset()
    yield collector
    collector.reset()


class TestMetricsCollection:
    """Test metrics collection functionality."""

    def test_counter_increment(self, metrics):
        """Test counter metric increments."""
        metrics.increment_counter("test_counter", 1, test_label="value1")
        metrics.increment_counter("test_counter", 2, test_label="value1")

        metrics_data = metrics.get_metrics()
        assert metrics_data["counters"]["test_counter|test_label=value1"] == 3
        assert metrics.get_counter("test_counter", test_label="value1") == 3
        assert metrics.get_counter("test_counter", test_label="other") == 0

    def test_timing_recording(self, metrics):
        """Test timing summaries."""
        metrics.record_timing("test_timing", 100.0, op="a")
        metrics.record_timing("test_timing", 300.0, op="a")

        data = metrics.get_metrics()
        assert data["timings"]["test_timing|op=a"] == 2
        summary = data["summaries"]["test_timing|op=a"]
        assert summary["count"] == 2
        assert summary["min"] == 100.0
        assert summary["max"] == 300.0
        assert summary["avg"] == 200.0

    def test_prometheus_format(self, metrics):
        """Test Prometheus text output."""
        metrics.increment_counter("param_validations_total", status="success")
        metrics.increment_counter("plain_total")

        output = metrics.get_prometheus_metrics()
        assert 'param_validations_total{status="success"} 1' in output
        assert "plain_total 1" in output

    def test_prometheus_timing_series(self, metrics):
        """Test timings export count and sum series."""
        metrics.record_timing("request_validation_duration", 2.5, route="GET /")

        output = metrics.get_prometheus_metrics()
        assert 'request_validation_duration_count{route="GET /"} 1' in output
        assert 'request_validation_duration_sum{route="GET /"} 2.5' in output

    def test_record_validation(self, metrics):
        """Test the per-request validation counters."""
        metrics.record_validation(True)
        metrics.record_validation(False, ["MissingParameter", "InvalidArgument", "InvalidArgument"])

        assert metrics.get_counter("param_validations_total", status="success") == 1
        assert metrics.get_counter("param_validations_total", status="error") == 1
        assert metrics.get_counter("param_errors_total", kind="InvalidArgument") == 2

    def test_timing_summary(self, metrics):
        """Test looking up a single timing summary."""
        assert metrics.get_timing_summary("missing") is None
        metrics.record_timing("op", 4.0)
        assert metrics.get_timing_summary("op")["count"] == 1

    def test_old_samples_expire(self):
        """Test the retention window."""
        collector = MetricsCollector(retention_seconds=-1)
        collector.record_timing("op", 1.0)
        collector.record_timing("op", 1.0)
        assert collector.get_metrics()["timings"]["op"] == 0
        assert collector.get_timing_summary("op")["count"] == 2

    def test_reset(self, metrics):
        """Test clearing all metrics."""
        metrics.increment_counter("x")
        metrics.reset()
        assert metrics.get_metrics()["counters"] == {}

    def test_separate_collectors(self):
        """Test independent collector instances."""
        collector = MetricsCollector()
        collector.increment_counter("only_here")
        assert collector.get_counter("only_here") == 1
        assert get_metrics_collector().get_counter("only_here") == 0


class TestTimingHelpers:
    """Test timing decorator and context manager."""

    def test_timing_decorator_success(self, metrics):
        """Test successful calls are counted and timed."""
        @timing_decorator("test_operation")
        def operation(x):
            return x * 2

        assert operation(21) == 42
        assert metrics.get_counter("test_operation_total", status="success") == 1
        assert metrics.get_metrics()["timings"]["test_operation_duration"] == 1

    def test_timing_decorator_error(self, metrics):
        """Test failing calls are counted and re-raised."""
        @timing_decorator("failing_operation")
        def operation():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            operation()
        assert metrics.get_counter("failing_operation_total", status="error") == 1

    def test_time_operation(self, metrics):
        """Test the timing context manager."""
        with time_operation("block", route="GET /"):
            pass
        assert metrics.get_metrics()["timings"]["block_duration|route=GET /"] == 1

    def test_validate_params_is_timed(self, metrics):
        """Test the bulk validation entry point reports metrics."""
        from paramcast.types import ParameterSpec
        from paramcast.validator import validate_params

        validate_params([ParameterSpec(name="q")], {"q": "x"})
        assert metrics.get_counter("validate_params_total", status="success") == 1
