"""Background thread for the periodic snapshot sweep.

The first sweep runs after a startup grace delay, then every
SNAPSHOT_INTERVAL seconds. A tick that finds the previous sweep still
running is skipped, never queued.
"""
import threading
import time

# Import state module to modify thread flags
import mohstats.core.app_state as state
from mohstats.core.app_state import (
    _shutdown_event,
    add_app_log,
    set_expected_interval,
    update_thread_health,
)
from mohstats.config import SNAPSHOT_INITIAL_DELAY, SNAPSHOT_INTERVAL


def run_snapshot_tick(pipeline, source='SnapshotThread'):
    """Run one guarded sweep, recording health under source. Never raises."""
    label = "Manual snapshot sweep" if source == 'ManualSnapshot' else "Snapshot sweep"
    start_time = time.time()
    try:
        summary = pipeline.run()
        exec_time_ms = (time.time() - start_time) * 1000
        if summary is None:
            update_thread_health(source, skipped=True)
            add_app_log(f"{label} skipped: previous sweep still running", 'WARN')
            return None
        update_thread_health(source, success=True, execution_time_ms=exec_time_ms)
        add_app_log(
            f"{label} {summary.status.value}: {summary.servers_snapshotted}/"
            f"{summary.servers_listed} servers, {summary.players_recorded} players, "
            f"{summary.errors} errors",
            'WARN' if summary.errors else 'INFO',
        )
        return summary
    except Exception as e:
        exec_time_ms = (time.time() - start_time) * 1000
        update_thread_health(source, success=False, execution_time_ms=exec_time_ms, error_msg=str(e))
        add_app_log(f"Fatal error during {label}: {e}", 'ERROR')
        return None


def start_snapshot_thread(pipeline, interval=SNAPSHOT_INTERVAL, initial_delay=SNAPSHOT_INITIAL_DELAY):
    """Start the snapshot sweep thread (once per process)."""
    if state._snapshot_thread_started:
        return None
    state._snapshot_thread_started = True
    set_expected_interval('SnapshotThread', interval)

    def loop():
        # Use wait instead of sleep for faster shutdown
        if _shutdown_event.wait(timeout=initial_delay):
            return
        while not _shutdown_event.is_set():
            tick_start = time.time()
            # Sweeps may outlast the interval; the pipeline's own guard skips overlapping manual runs
            run_snapshot_tick(pipeline)
            elapsed = time.time() - tick_start
            _shutdown_event.wait(timeout=max(1, interval - elapsed))

    t = threading.Thread(target=loop, daemon=True, name='SnapshotThread')
    t.start()
    return t
