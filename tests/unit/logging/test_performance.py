"""Tests for performance logging module."""

from unittest.mock import MagicMock

import pytest

from querybridge.logging.performance import OperationStats, PerformanceLogger, Timing


def _timing(elapsed, error=None):
    timing = Timing("execute", started=0.0)
    timing.elapsed = elapsed
    timing.error = error
    return timing


class TestTiming:
    """Test cases for a single measurement."""

    def test_stop(self):
        """Test stopping records elapsed time and the error."""
        timing = Timing("execute")

        assert timing.elapsed_ms is None

        timing.stop(error="syntax error")

        assert timing.elapsed >= 0
        assert timing.failed
        assert timing.error == "syntax error"

    def test_elapsed_ms(self):
        assert _timing(0.0125).elapsed_ms == 12.5


class TestOperationStats:
    """Test cases for per-operation aggregation."""

    def test_record(self):
        """Test counts, extremes and mean."""
        stats = OperationStats("execute")
        stats.record(_timing(0.1))
        stats.record(_timing(0.3))
        stats.record(_timing(0.2, error="constraint failed"))

        assert stats.calls == 3
        assert stats.failures == 1
        assert stats.fastest == 0.1
        assert stats.slowest == 0.3
        assert stats.mean_seconds == pytest.approx(0.2)

    def test_unstopped_timing_ignored(self):
        stats = OperationStats("execute")
        stats.record(Timing("execute"))

        assert stats.calls == 0
        assert stats.mean_seconds is None

    def test_to_dict(self):
        data = OperationStats("connect").to_dict()

        assert data == {
            "operation": "connect",
            "calls": 0,
            "failures": 0,
            "total_seconds": 0.0,
            "min_seconds": None,
            "max_seconds": None,
            "mean_seconds": None,
        }


class TestPerformanceLogger:
    """Test cases for PerformanceLogger class."""

    def test_success_logs_debug(self):
        """Test a successful block logs at debug with its metadata."""
        logger = MagicMock()
        perf_logger = PerformanceLogger("engine.sqlite", logger=logger)

        with perf_logger.measure("inspect_schema", dialect="sqlite") as timer:
            pass

        assert timer.elapsed is not None
        logger.debug.assert_called_once()
        kwargs = logger.debug.call_args[1]
        assert kwargs["operation"] == "inspect_schema"
        assert kwargs["dialect"] == "sqlite"

    def test_failure_logs_warning_and_propagates(self):
        """Test a failing block logs a warning, is counted, and re-raises."""
        logger = MagicMock()
        perf_logger = PerformanceLogger("engine.sqlite", logger=logger)

        with pytest.raises(ValueError):
            with perf_logger.measure("execute") as timer:
                raise ValueError("no such table: users")

        assert timer.failed
        logger.warning.assert_called_once()
        assert logger.warning.call_args[1]["error"] == "no such table: users"
        assert perf_logger.get_metrics("execute")["execute"]["failures"] == 1

    def test_slow_operation_warns(self):
        """Test operations over the threshold log a slow-operation warning."""
        logger = MagicMock()
        perf_logger = PerformanceLogger("engine.sqlite", slow_threshold_ms=1, logger=logger)

        with perf_logger.measure("execute") as timer:
            timer.started -= 0.5

        logger.warning.assert_called_once()
        assert logger.warning.call_args[0][0] == "Slow operation"
        assert logger.warning.call_args[1]["threshold_ms"] == 1
        logger.debug.assert_not_called()

    def test_measure_tracks_metrics(self):
        """Test measurements are aggregated per operation."""
        perf_logger = PerformanceLogger("engine.sqlite", logger=MagicMock())

        with perf_logger.measure("execute"):
            pass
        with pytest.raises(RuntimeError):
            with perf_logger.measure("execute"):
                raise RuntimeError("failed")
        with perf_logger.measure("inspect_schema"):
            pass

        metrics = perf_logger.get_metrics()
        assert set(metrics) == {"execute", "inspect_schema"}
        assert metrics["execute"]["calls"] == 2
        assert metrics["execute"]["failures"] == 1

    def test_get_metrics_for_one_operation(self):
        perf_logger = PerformanceLogger("engine.sqlite", logger=MagicMock())
        with perf_logger.measure("execute"):
            pass

        assert list(perf_logger.get_metrics("execute")) == ["execute"]
        assert perf_logger.get_metrics("missing") == {}

    def test_auto_log_disabled(self):
        """Test auto_log=False measures without logging."""
        logger = MagicMock()
        perf_logger = PerformanceLogger("engine.sqlite", auto_log=False, logger=logger)

        with perf_logger.measure("execute"):
            pass

        logger.debug.assert_not_called()
        assert perf_logger.get_metrics("execute")["execute"]["calls"] == 1

    def test_track_metrics_disabled(self):
        perf_logger = PerformanceLogger("engine.sqlite", track_metrics=False, logger=MagicMock())

        with perf_logger.measure("execute"):
            pass

        assert perf_logger.get_metrics() == {}

    def test_reset_metrics(self):
        perf_logger = PerformanceLogger("engine.sqlite", logger=MagicMock())
        with perf_logger.measure("execute"):
            pass

        perf_logger.reset_metrics()

        assert perf_logger.get_metrics() == {}

    def test_default_logger_name(self):
        """Test the default structured logger is prefixed with perf."""
        perf_logger = PerformanceLogger("pool.sqlite")

        assert perf_logger.logger.name == "perf.pool.sqlite"
