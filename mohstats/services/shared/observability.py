"""Observability utilities for mohstats.

This module provides lightweight instrumentation for service timing
without changing application behavior.
"""

import logging
import time
import functools
from mohstats.config import OBS_SERVICE_SLOW_MS

# Configure logger for observability warnings
_logger = logging.getLogger("mohstats.observability")
_logger.setLevel(logging.WARNING)  # Only log warnings/errors by default
if not _logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [OBSERVABILITY] %(levelname)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    _logger.addHandler(handler)

_service_stats = {}


def track_service(service_name, duration):
    """Accumulate call count and total time per service."""
    stats = _service_stats.setdefault(service_name, {"calls": 0, "total_ms": 0.0, "max_ms": 0.0})
    duration_ms = duration * 1000
    stats["calls"] += 1
    stats["total_ms"] += duration_ms
    stats["max_ms"] = max(stats["max_ms"], duration_ms)


def get_service_stats():
    result = {}
    for name, stats in list(_service_stats.items()):
        calls = stats["calls"]
        result[name] = {
            "calls": calls,
            "avg_ms": round(stats["total_ms"] / calls, 1) if calls else None,
            "max_ms": round(stats["max_ms"], 1),
        }
    return result


def instrument_service(service_name):
    """Decorator to instrument service functions (upstream calls, sweeps, queries).

    Tracks execution time and call counts.
    Logs warnings when execution exceeds threshold.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                return result
            finally:
                duration = time.time() - start_time
                duration_ms = duration * 1000

                # Track metrics
                track_service(service_name, duration)

                # Guardrail: Warn if execution exceeds threshold
                if duration_ms > OBS_SERVICE_SLOW_MS:
                    _logger.warning(
                        f"Service {service_name} exceeded threshold: {duration_ms:.1f}ms "
                        f"(threshold: {OBS_SERVICE_SLOW_MS}ms)"
                    )

        return wrapper

    return decorator
