# Gunicorn configuration for mohstats
# Run with: gunicorn -c scripts/gunicorn_config.py "mohstats:create_app()"
# The snapshot thread is started in post_worker_init; the lock file keeps it
# to one worker even if the worker count is overridden on the command line

import os

bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8080")
# Single worker: the response cache and the sweep guard are process-local.
workers = 1
threads = 4
# Detail fetches to the upstream list can be slow
timeout = 60
keepalive = 5
preload_app = False  # Background threads must start inside the worker


def post_worker_init(worker):
    """Called just after a worker has initialized the application."""
    # Only the worker holding the lock runs the sweep; the others serve requests.
    import fcntl

    lock_file = os.getenv("MOHSTATS_THREAD_LOCK", "/tmp/mohstats_thread.lock")
    try:
        f = open(lock_file, "a")
    except OSError as e:
        worker.log.error(f"Cannot open snapshot lock file {lock_file}: {e}")
        return

    try:
        fcntl.flock(f, fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        f.close()
        worker.log.info(f"Worker (pid {os.getpid()}) skipped snapshot thread (running in another worker)")
        return

    # Held for the life of the worker
    worker._snapshot_lock_file = f
    worker.log.info("Worker acquired snapshot lock. Starting snapshot thread...")

    from mohstats.config import SNAPSHOT_ENABLED
    if not SNAPSHOT_ENABLED:
        worker.log.info("Snapshot thread disabled (SNAPSHOT_ENABLED=false)")
        return
    try:
        from mohstats.core.background import start_snapshot_thread
        from mohstats.core.container import get_services
        start_snapshot_thread(get_services().pipeline)
    except Exception as e:
        worker.log.error(f"Error starting snapshot thread: {e}")


def worker_exit(server, worker):
    from mohstats.core.app_state import _shutdown_event
    _shutdown_event.set()
