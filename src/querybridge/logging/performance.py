"""Timing of engine operations.

Engines time ``execute`` and ``inspect_schema``; the SQLite pool times
``connect``. Each measurement is logged through a structured logger and
folded into per-operation statistics.

Example:
    >>> perf_logger = PerformanceLogger("engine.sqlite", slow_threshold_ms=500)
    >>> with perf_logger.measure("execute", dialect="sqlite") as timer:
    ...     rows = await engine.execute("SELECT 1")
    >>> timer.elapsed_ms
    0.41
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from .structured import StructuredLogger


@dataclass
class Timing:
    """One measured call; ``elapsed`` is in seconds once stopped."""
    operation: str
    started: float = field(default_factory=time.perf_counter)
    elapsed: Optional[float] = None
    error: Optional[str] = None

    def stop(self, error: Optional[str] = None) -> None:
        self.elapsed = time.perf_counter() - self.started
        self.error = error

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def elapsed_ms(self) -> Optional[float]:
        if self.elapsed is None:
            return None
        return round(self.elapsed * 1000, 3)


@dataclass
class OperationStats:
    """Running totals for one operation name."""
    operation: str
    calls: int = 0
    failures: int = 0
    total_seconds: float = 0.0
    fastest: Optional[float] = None
    slowest: Optional[float] = None

    def record(self, timing: Timing) -> None:
        if timing.elapsed is None:
            return
        self.calls += 1
        if timing.failed:
            self.failures += 1
        self.total_seconds += timing.elapsed
        self.fastest = timing.elapsed if self.fastest is None else min(self.fastest, timing.elapsed)
        self.slowest = timing.elapsed if self.slowest is None else max(self.slowest, timing.elapsed)

    @property
    def mean_seconds(self) -> Optional[float]:
        return self.total_seconds / self.calls if self.calls else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "calls": self.calls,
            "failures": self.failures,
            "total_seconds": self.total_seconds,
            "min_seconds": self.fastest,
            "max_seconds": self.slowest,
            "mean_seconds": self.mean_seconds,
        }


class PerformanceLogger:
    """Times operations and keeps statistics per operation name.

    Completed calls log at debug; calls slower than ``slow_threshold_ms``
    and failed calls log a warning.
    """

    def __init__(
        self,
        name: str,
        *,
        auto_log: bool = True,
        track_metrics: bool = True,
        slow_threshold_ms: Optional[float] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self.name = name
        self.auto_log = auto_log
        self.track_metrics = track_metrics
        self.slow_threshold_ms = slow_threshold_ms
        self.logger = logger or StructuredLogger(f"perf.{name}", enable_correlation=False)
        self._stats: Dict[str, OperationStats] = {}

    @contextmanager
    def measure(self, operation: str, **metadata: Any) -> Iterator[Timing]:
        """Time the enclosed block; exceptions propagate after being recorded."""
        timing = Timing(operation)
        try:
            yield timing
        except BaseException as e:
            timing.stop(error=str(e) or e.__class__.__name__)
            raise
        else:
            timing.stop()
        finally:
            if self.track_metrics:
                self._stats.setdefault(operation, OperationStats(operation)).record(timing)
            if self.auto_log:
                self._log(timing, metadata)

    def _log(self, timing: Timing, metadata: Dict[str, Any]) -> None:
        if timing.failed:
            self.logger.warning("Operation failed",
                                operation=timing.operation,
                                duration_ms=timing.elapsed_ms,
                                error=timing.error,
                                **metadata)
        elif self.slow_threshold_ms is not None and timing.elapsed_ms > self.slow_threshold_ms:
            self.logger.warning("Slow operation",
                                operation=timing.operation,
                                duration_ms=timing.elapsed_ms,
                                threshold_ms=self.slow_threshold_ms,
                                **metadata)
        else:
            self.logger.debug("Operation completed",
                              operation=timing.operation,
                              duration_ms=timing.elapsed_ms,
                              **metadata)

    def get_metrics(self, operation: Optional[str] = None) -> Dict[str, Dict[str, Any]]:
        """Statistics for one operation, or for all of them."""
        if operation is not None:
            stats = self._stats.get(operation)
            return {operation: stats.to_dict()} if stats else {}
        return {name: stats.to_dict() for name, stats in self._stats.items()}

    def reset_metrics(self) -> None:
        self._stats.clear()
