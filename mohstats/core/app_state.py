"""Centralized state management for the mohstats application.

Process-wide primitives live here: the shutdown event, the in-memory
application log buffer, background thread health and request counters.
Service components (cache, client, repository) are built in
mohstats.core.container and injected.
"""
import threading
import time
from collections import defaultdict, deque
from datetime import datetime

# ==================== Threading Primitives ====================
# Graceful shutdown event
_shutdown_event = threading.Event()

# ==================== Rate Limiting ====================
_throttle_lock = threading.Lock()
_request_times = defaultdict(list)
_metric_http_429 = 0

# ==================== Thread Management ====================
_snapshot_thread_started = False

# ==================== HTTP Request Tracking ====================
_http_lock = threading.Lock()
_http_inflight = {}
_http_stats = {"requests": 0, "errors": 0, "slow": 0}

# ==================== Application Log Buffer ====================
# In-memory buffer to capture recent application logs
_app_log_buffer = deque(maxlen=500)  # Keep last 500 log lines
_app_log_buffer_lock = threading.Lock()


def add_app_log(message, level='INFO'):
    """Add a log message to the in-memory buffer."""
    timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
    log_entry = f"[{timestamp}] [{level}] {message}"
    with _app_log_buffer_lock:
        _app_log_buffer.append(log_entry)


def get_app_logs(limit=100):
    if limit <= 0:
        return []
    with _app_log_buffer_lock:
        return list(_app_log_buffer)[-limit:]


def record_http_request_start(request_id):
    with _http_lock:
        _http_inflight[request_id] = time.time()


def record_http_request_end(request_id, status_code, slow=False):
    with _http_lock:
        _http_inflight.pop(request_id, None)
        _http_stats["requests"] += 1
        if slow:
            _http_stats["slow"] += 1
        if status_code >= 500:
            _http_stats["errors"] += 1


def get_http_stats():
    with _http_lock:
        return {"inflight": len(_http_inflight), "rate_limited": _metric_http_429, **_http_stats}


# ==================== Background Thread Health ====================
# Track health of each background thread for monitoring
_thread_health_lock = threading.Lock()
_thread_health = {
    'SnapshotThread': {
        'last_success': None,
        'last_error': None,
        'last_error_msg': None,
        'error_count': 0,
        'execution_count': 0,
        'skipped_count': 0,
        'execution_times_ms': deque(maxlen=20),
        'expected_interval_sec': 450,
        'status': 'unknown'
    },
    # On-demand sweeps via POST /api/snapshots/run; no schedule, so never lagging
    'ManualSnapshot': {
        'last_success': None,
        'last_error': None,
        'last_error_msg': None,
        'error_count': 0,
        'execution_count': 0,
        'skipped_count': 0,
        'execution_times_ms': deque(maxlen=20),
        'expected_interval_sec': 0,
        'status': 'unknown'
    },
}


def set_expected_interval(thread_name, interval_sec):
    with _thread_health_lock:
        if thread_name in _thread_health:
            _thread_health[thread_name]['expected_interval_sec'] = interval_sec


def update_thread_health(thread_name, success=True, execution_time_ms=None, error_msg=None, skipped=False):
    """Update thread health metrics after execution."""
    with _thread_health_lock:
        if thread_name not in _thread_health:
            return
        th = _thread_health[thread_name]
        now = time.time()
        if skipped:
            th['skipped_count'] += 1
            return
        th['execution_count'] += 1
        if execution_time_ms is not None:
            th['execution_times_ms'].append(execution_time_ms)
        if success:
            th['last_success'] = now
            th['status'] = 'healthy'
        else:
            th['last_error'] = now
            th['last_error_msg'] = error_msg
            th['error_count'] += 1
            th['status'] = 'errored'


def get_thread_health_status():
    """Get health status for all threads."""
    now = time.time()
    result = {}
    with _thread_health_lock:
        for name, th in _thread_health.items():
            status = th['status']
            # Check if thread is lagging (hasn't run in 3x expected interval)
            if th['last_success'] and th['expected_interval_sec'] > 0:
                age = now - th['last_success']
                if age > th['expected_interval_sec'] * 3:
                    status = 'lagging'
            exec_times = list(th['execution_times_ms'])
            avg_exec_ms = round(sum(exec_times) / len(exec_times), 1) if exec_times else None
            result[name] = {
                'status': status,
                'last_success': th['last_success'],
                'last_success_age_sec': round(now - th['last_success'], 1) if th['last_success'] else None,
                'last_error': th['last_error'],
                'last_error_msg': th['last_error_msg'],
                'error_count': th['error_count'],
                'execution_count': th['execution_count'],
                'skipped_count': th['skipped_count'],
                'avg_execution_ms': avg_exec_ms,
            }
    return result
