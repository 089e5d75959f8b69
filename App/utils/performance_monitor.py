"""
Timing metrics for optimisation operations.

Operations decorated with :func:`performance_monitor` are timed, counted and
logged; slow ones are logged as warnings. The collected figures are exposed by
the ``/api/v2/optimization/metrics`` endpoint.
"""

import logging
import threading
import time
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class MetricsCollector:
    """In-process metrics store (per worker)"""

    def __init__(self):
        self._lock = threading.Lock()
        self.metrics: Dict[str, Dict[str, Any]] = {}

    def record_operation(self, operation: str, duration: float, success: bool = True):
        """Record operation metrics"""
        with self._lock:
            entry = self.metrics.setdefault(operation, {
                'count': 0,
                'total_duration': 0.0,
                'max_duration': 0.0,
                'success_count': 0,
                'error_count': 0,
                'avg_duration': 0.0,
                'last_executed': None,
            })
            entry['count'] += 1
            entry['total_duration'] += duration
            entry['max_duration'] = max(entry['max_duration'], duration)
            entry['avg_duration'] = entry['total_duration'] / entry['count']
            entry['last_executed'] = datetime.now(timezone.utc).isoformat()
            if success:
                entry['success_count'] += 1
            else:
                entry['error_count'] += 1

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {name: dict(entry) for name, entry in self.metrics.items()}

    def get_operation_metrics(self, operation: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self.metrics.get(operation)
            return dict(entry) if entry is not None else None

    def reset(self):
        with self._lock:
            self.metrics.clear()


metrics_collector = MetricsCollector()


def performance_monitor(operation_name: str, log_slow_threshold: float = 1.0):
    """
    Decorator to time an operation and log it when it is slow

    Args:
        operation_name: Name of the operation for metrics
        log_slow_threshold: Threshold in seconds to log as slow operation
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration = time.perf_counter() - start_time
                metrics_collector.record_operation(operation_name, duration, success)
                log = logger.warning if duration > log_slow_threshold else logger.debug
                log(
                    'Operation %s took %.3fs',
                    operation_name,
                    duration,
                    extra={
                        'event': 'operation_timed',
                        'operation': operation_name,
                        'duration_seconds': round(duration, 3),
                        'slow': duration > log_slow_threshold,
                        'success': success,
                    },
                )
        return wrapper
    return decorator


def get_performance_summary(slow_threshold: float = 2.0) -> Dict[str, Any]:
    """Summarise collected metrics"""
    all_metrics = metrics_collector.get_metrics()
    return {
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'total_operations': sum(entry['count'] for entry in all_metrics.values()),
        'operations': all_metrics,
        'slow_operations': sorted(
            name for name, entry in all_metrics.items() if entry['avg_duration'] > slow_threshold
        ),
        'error_operations': sorted(
            name for name, entry in all_metrics.items() if entry['error_count'] > 0
        ),
    }
