"""
Metrics collection utilities for the Mock MQ Manager.

This module provides in-process counters, gauges and timers with summary
statistics, fed by the queue store, the message handler and the API
middleware and exposed on ``GET /metrics``.
"""

import time
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Dict, List, Optional, Any, Union
from collections import defaultdict, deque
from threading import Lock
from enum import Enum

from .logging import get_logger, log_metrics


logger = get_logger(__name__)


class MetricType(str, Enum):
    """Types of metrics that can be collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMER = "timer"


@dataclass
class MetricValue:
    """Individual metric value with timestamp."""
    value: Union[int, float]
    timestamp: datetime
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class MetricSummary:
    """Summary statistics for a metric."""
    name: str
    metric_type: MetricType
    count: int
    sum: float
    min: float
    max: float
    avg: float
    p50: float
    p95: float
    last_value: float
    last_updated: datetime
    tags: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['metric_type'] = self.metric_type.value
        data['last_updated'] = self.last_updated.isoformat()
        return data


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MetricsCollector:
    """Thread-safe metrics collector with aggregation capabilities."""

    def __init__(self, max_values_per_metric: int = 1000, enabled: bool = True):
        self.max_values_per_metric = max_values_per_metric
        self.enabled = enabled
        self._metrics: Dict[str, deque] = defaultdict(lambda: deque(maxlen=max_values_per_metric))
        self._metric_types: Dict[str, MetricType] = {}
        self._lock = Lock()
        self._start_time = _utc_now()

    def counter(self, name: str, value: int = 1, tags: Dict[str, str] = None):
        """
        Record a counter metric (monotonically increasing).

        Args:
            name: Metric name
            value: Counter increment value
            tags: Optional tags for filtering
        """
        self._record_metric(name, MetricType.COUNTER, value, tags)

    def gauge(self, name: str, value: Union[int, float], tags: Dict[str, str] = None):
        """
        Record a gauge metric (point-in-time value).

        Args:
            name: Metric name
            value: Gauge value
            tags: Optional tags for filtering
        """
        self._record_metric(name, MetricType.GAUGE, value, tags)

    def timer(self, name: str, duration_ms: float, tags: Dict[str, str] = None):
        """
        Record a timer metric (duration measurement).

        Args:
            name: Metric name
            duration_ms: Duration in milliseconds
            tags: Optional tags for filtering
        """
        self._record_metric(name, MetricType.TIMER, duration_ms, tags)

    def _record_metric(self, name: str, metric_type: MetricType, value: Union[int, float], tags: Dict[str, str] = None):
        """Record a metric value with thread safety."""
        if not self.enabled:
            return

        with self._lock:
            if name not in self._metric_types:
                self._metric_types[name] = metric_type
            elif self._metric_types[name] != metric_type:
                logger.warning(f"Metric type mismatch for {name}: expected {self._metric_types[name]}, got {metric_type}")

            self._metrics[name].append(MetricValue(
                value=value,
                timestamp=_utc_now(),
                tags=tags or {}
            ))

        log_metrics(name, value, tags=tags, metric_type=metric_type.value)

    def get_metric_summary(self, name: str) -> Optional[MetricSummary]:
        """
        Get summary statistics for a metric.

        Args:
            name: Metric name

        Returns:
            Metric summary or None if metric doesn't exist
        """
        with self._lock:
            return self._summarize(name)

    def _summarize(self, name: str) -> Optional[MetricSummary]:
        values = list(self._metrics.get(name, ()))
        if not values:
            return None

        numeric_values = sorted(v.value for v in values)
        count = len(numeric_values)
        sum_val = sum(numeric_values)

        return MetricSummary(
            name=name,
            metric_type=self._metric_types[name],
            count=count,
            sum=sum_val,
            min=numeric_values[0],
            max=numeric_values[-1],
            avg=sum_val / count,
            p50=numeric_values[min(int(count * 0.5), count - 1)],
            p95=numeric_values[min(int(count * 0.95), count - 1)],
            last_value=values[-1].value,
            last_updated=values[-1].timestamp,
            tags=values[-1].tags
        )

    def get_all_metrics(self) -> Dict[str, MetricSummary]:
        """Get summary statistics for all metrics."""
        with self._lock:
            summaries = {}
            for name in list(self._metrics.keys()):
                summary = self._summarize(name)
                if summary:
                    summaries[name] = summary
            return summaries

    def get_metric_names(self) -> List[str]:
        """Get list of all metric names."""
        with self._lock:
            return list(self._metrics.keys())

    def clear_metrics(self, name: str = None):
        """
        Clear metrics data.

        Args:
            name: Specific metric name to clear, or None to clear all
        """
        with self._lock:
            if name:
                if name in self._metrics:
                    self._metrics[name].clear()
                    logger.info(f"Cleared metrics for: {name}")
            else:
                self._metrics.clear()
                self._metric_types.clear()
                logger.info("Cleared all metrics")

    def get_uptime_seconds(self) -> float:
        """Get uptime of this collector in seconds."""
        return (_utc_now() - self._start_time).total_seconds()

    def report(self) -> Dict[str, Any]:
        """Summaries of every metric in a JSON-ready document."""
        return {
            'uptime_seconds': round(self.get_uptime_seconds(), 3),
            'metrics': {name: summary.to_dict() for name, summary in self.get_all_metrics().items()},
            'generated_at': _utc_now().isoformat()
        }


class TimerContext:
    """Context manager for timing operations."""

    def __init__(self, collector: MetricsCollector, metric_name: str, tags: Dict[str, str] = None):
        self.collector = collector
        self.metric_name = metric_name
        self.tags = tags
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            duration_ms = (time.time() - self.start_time) * 1000
            self.collector.timer(self.metric_name, duration_ms, self.tags)


# Global metrics collector instance
metrics_collector = MetricsCollector()


def time_operation(name: str, tags: Dict[str, str] = None, collector: MetricsCollector = None):
    """Context manager for timing operations."""
    return TimerContext(collector or metrics_collector, name, tags)


def record_api_metrics(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    collector: MetricsCollector = None
):
    """
    Record API request metrics.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
        collector: Collector to record into, the global one by default
    """
    collector = collector or metrics_collector
    tags = {
        'method': method,
        'path': path,
        'status_code': str(status_code),
        'status_class': f"{status_code // 100}xx"
    }

    collector.counter('api.requests.total', 1, tags)
    collector.timer('api.requests.duration_ms', duration_ms, tags)

    if status_code >= 400:
        collector.counter('api.requests.errors', 1, tags)
        if status_code >= 500:
            collector.counter('api.requests.server_errors', 1, tags)
        else:
            collector.counter('api.requests.client_errors', 1, tags)
