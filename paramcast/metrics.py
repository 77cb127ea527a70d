"""In-process metrics for validation runs.

Counters and timings are keyed by name plus sorted labels
(``param_errors_total|kind=MissingParameter``) and can be exported in the
Prometheus text format.
"""
from __future__ import annotations
import time, threading
from contextlib import contextmanager
from functools import wraps
from dataclasses import dataclass
from collections import defaultdict, deque
from datetime import datetime, UTC
from typing import Dict, Any, Callable, Iterable, Optional

# Samples older than this are dropped from the timing windows
RETENTION_SECONDS = 3600
MAX_SAMPLES = 5000


@dataclass
class TimingSample:
    recorded_at: float
    duration_ms: float


@dataclass
class Summary:
    count: int = 0
    total: float = 0.0
    low: Optional[float] = None
    high: Optional[float] = None
    updated_at: datetime | None = None

    def add(self, value: float) -> None:
        self.count += 1
        self.total += value
        self.low = value if self.low is None else min(self.low, value)
        self.high = value if self.high is None else max(self.high, value)
        self.updated_at = datetime.now(UTC)

    def as_dict(self) -> Dict[str, Any]:
        return {
            'count': self.count,
            'total': self.total,
            'min': self.low or 0,
            'max': self.high or 0,
            'avg': self.total / self.count if self.count else 0.0,
            'last_updated': self.updated_at.isoformat() if self.updated_at else None,
        }


def metric_key(name: str, labels: Dict[str, Any]) -> str:
    if not labels:
        return name
    return name + '|' + '|'.join(f'{k}={v}' for k, v in sorted(labels.items()))


class MetricsCollector:
    """Thread-safe counters and timings."""

    def __init__(self, retention_seconds: int = RETENTION_SECONDS):
        self._lock = threading.RLock()
        self._retention_seconds = retention_seconds
        self._counters: Dict[str, int] = defaultdict(int)
        self._timings: Dict[str, deque] = defaultdict(lambda: deque(maxlen=MAX_SAMPLES))
        self._summaries: Dict[str, Summary] = defaultdict(Summary)
        self._labels: Dict[str, Dict[str, Any]] = {}

    def increment_counter(self, name: str, value: int = 1, **labels) -> None:
        key = metric_key(name, labels)
        with self._lock:
            self._counters[key] += value
            self._labels[key] = labels

    def record_timing(self, name: str, duration_ms: float, **labels) -> None:
        key = metric_key(name, labels)
        now = time.time()
        with self._lock:
            window = self._timings[key]
            window.append(TimingSample(now, duration_ms))
            while window and window[0].recorded_at < now - self._retention_seconds:
                window.popleft()
            self._summaries[key].add(duration_ms)
            self._labels[key] = labels

    def record_validation(self, valid: bool, error_kinds: Iterable[str] = ()) -> None:
        """Count one request validation and the kinds of its errors."""
        with self._lock:
            self.increment_counter('param_validations_total', status='success' if valid else 'error')
            for kind in error_kinds:
                self.increment_counter('param_errors_total', kind=kind)

    def get_counter(self, name: str, **labels) -> int:
        with self._lock:
            return self._counters.get(metric_key(name, labels), 0)

    def get_timing_summary(self, name: str, **labels) -> Optional[Dict[str, Any]]:
        with self._lock:
            summary = self._summaries.get(metric_key(name, labels))
            return summary.as_dict() if summary else None

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'timestamp': datetime.now(UTC).isoformat(),
                'counters': dict(self._counters),
                'timings': {key: len(window) for key, window in self._timings.items()},
                'summaries': {key: summary.as_dict() for key, summary in self._summaries.items()},
            }

    def get_prometheus_metrics(self) -> str:
        def series(key: str, suffix: str = '') -> str:
            labels = self._labels.get(key, {})
            name = key.split('|')[0] + suffix
            if not labels:
                return name
            return name + '{' + ','.join(f'{k}="{v}"' for k, v in sorted(labels.items())) + '}'

        with self._lock:
            lines = [f'{series(key)} {value}' for key, value in self._counters.items()]
            for key, summary in self._summaries.items():
                lines.append(f'{series(key, "_count")} {summary.count}')
                lines.append(f'{series(key, "_sum")} {summary.total}')
            return '\n'.join(lines) + '\n'

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._timings.clear()
            self._summaries.clear()
            self._labels.clear()


_metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _metrics


@contextmanager
def time_operation(metric_name: str, **labels):
    """Record the duration of a block as ``{metric_name}_duration``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        _metrics.record_timing(f"{metric_name}_duration", (time.perf_counter() - start) * 1000, **labels)


def timing_decorator(metric_name: str, **labels):
    """Count calls by outcome (``{metric_name}_total``) and time them."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            status = "error"
            try:
                with time_operation(metric_name, **labels):
                    result = func(*args, **kwargs)
                status = "success"
                return result
            finally:
                _metrics.increment_counter(f"{metric_name}_total", status=status, **labels)
        return wrapper
    return decorator
