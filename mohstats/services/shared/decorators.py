"""Decorators for mohstats Flask routes."""
import time
from functools import wraps
from flask import jsonify, request

import mohstats.core.app_state as state
from mohstats.config import THROTTLE_MAX_CALLS, THROTTLE_WINDOW


def throttle(max_calls=THROTTLE_MAX_CALLS, time_window=THROTTLE_WINDOW):
    """Per-client rate limit for operational POST routes.

    Calls are counted per endpoint and remote address over a sliding
    window. Over the limit the route answers 429 with a Retry-After header.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            now = time.time()
            bucket = f"{func.__name__}:{request.remote_addr or 'unknown'}"
            with state._throttle_lock:
                recent = [t for t in state._request_times[bucket] if now - t < time_window]
                if len(recent) >= max_calls:
                    state._request_times[bucket] = recent
                    state._metric_http_429 += 1
                    retry_after = max(1, int(time_window - (now - recent[0])))
                    resp = jsonify({"error": "Rate limit", "retry_after": retry_after})
                    resp.headers["Retry-After"] = str(retry_after)
                    return resp, 429
                recent.append(now)
                state._request_times[bucket] = recent
            return func(*args, **kwargs)
        return wrapper
    return decorator
