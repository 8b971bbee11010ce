"""
Performance monitoring for analysis service calls and local requests.
"""
import time
import inspect
import logging
import threading
from collections import defaultdict
from functools import wraps
from typing import Dict, Optional, Any

logger = logging.getLogger(__name__)

MAX_SAMPLES_PER_METRIC = 1000

_metrics_lock = threading.Lock()
_metrics: Dict[str, list] = defaultdict(list)


class PerformanceMonitor:
    """Monitor and track performance metrics."""

    @staticmethod
    def record_metric(name: str, value: float, metadata: Optional[Dict[str, Any]] = None):
        """
        Record a performance metric.

        Args:
            name: Metric name (e.g., 'service_upload', 'request_duration')
            value: Metric value (usually duration in seconds)
            metadata: Optional metadata (status, path, ...)
        """
        with _metrics_lock:
            samples = _metrics[name]
            samples.append({
                'value': value,
                'timestamp': time.time(),
                'metadata': metadata or {}
            })
            if len(samples) > MAX_SAMPLES_PER_METRIC:
                del samples[:-MAX_SAMPLES_PER_METRIC]

    @staticmethod
    def get_stats(metric_name: str) -> Optional[Dict[str, float]]:
        """
        Get statistics for a metric.

        Returns:
            Dict with count, min, max, mean, p50, p95, or None if no data
        """
        with _metrics_lock:
            samples = _metrics.get(metric_name)
            if not samples:
                return None
            values = sorted(m['value'] for m in samples)
            errors = sum(1 for m in samples if m['metadata'].get('status') == 'error')

        return {
            'count': len(values),
            'errors': errors,
            'min': values[0],
            'max': values[-1],
            'mean': sum(values) / len(values),
            'p50': values[len(values) // 2],
            'p95': values[int(len(values) * 0.95)],
        }

    @staticmethod
    def get_all_metrics() -> Dict[str, Dict[str, float]]:
        """Get statistics for all metrics."""
        with _metrics_lock:
            names = list(_metrics.keys())
        return {name: PerformanceMonitor.get_stats(name) for name in names}

    @staticmethod
    def clear_metrics():
        """Clear all metrics (useful for testing)."""
        with _metrics_lock:
            _metrics.clear()


def track_performance(metric_name: str):
    """
    Decorator to track execution time of a sync or async callable.

    Usage:
        @track_performance("service_upload")
        async def upload(...):
            ...
    """
    def _record(start_time: float, error: Optional[BaseException]):
        duration = time.time() - start_time
        if error is None:
            PerformanceMonitor.record_metric(metric_name, duration, {'status': 'success'})
            logger.debug(
                f"{metric_name} completed in {duration:.3f}s",
                extra={'metric': metric_name, 'duration': duration}
            )
        else:
            PerformanceMonitor.record_metric(
                metric_name, duration, {'status': 'error', 'error': type(error).__name__}
            )
            logger.warning(
                f"{metric_name} failed after {duration:.3f}s: {error}",
                extra={'metric': metric_name, 'duration': duration}
            )

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _record(start_time, e)
                    raise
                _record(start_time, None)
                return result
            return async_wrapper

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _record(start_time, e)
                raise
            _record(start_time, None)
            return result
        return sync_wrapper

    return decorator
