"""Core modules for the mohstats application."""
# State module exports
from .app_state import (
    # Threading
    _shutdown_event,
    # Rate Limiting
    _throttle_lock, _request_times,
    # Application Log Buffer
    add_app_log, get_app_logs,
    # Thread Health
    update_thread_health, get_thread_health_status,
)
