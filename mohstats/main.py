"""Main entry point for the mohstats service.

Starts the snapshot thread and runs the Flask development server.
"""

import os
import sys
import atexit
import signal

from mohstats.core.app_state import _shutdown_event, add_app_log
from mohstats.config import APP_NAME, APP_VERSION, DEBUG_MODE, SNAPSHOT_ENABLED
from mohstats.core.background import start_snapshot_thread
from mohstats.core.container import get_services


def main():
    from mohstats import create_app

    services = get_services()
    app = create_app(services)

    startup_msg = f"{APP_NAME} {APP_VERSION}"
    print(startup_msg)
    add_app_log(startup_msg, "INFO")

    # Graceful shutdown handler
    def shutdown_handler(signum=None, frame=None):
        if _shutdown_event.is_set():
            return
        shutdown_msg = "[Shutdown] Stopping background services..."
        print(shutdown_msg)
        add_app_log(shutdown_msg, "INFO")
        _shutdown_event.set()
        if signum is not None:
            sys.exit(0)

    atexit.register(shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    if SNAPSHOT_ENABLED:
        start_snapshot_thread(services.pipeline)
        add_app_log("Snapshot thread started", "INFO")
    else:
        add_app_log("Snapshot thread disabled (SNAPSHOT_ENABLED=false)", "WARN")

    host = os.environ.get("FLASK_HOST", "0.0.0.0")
    port = int(os.environ.get("FLASK_PORT", 8080))
    server_msg = f"Starting server on {host}:{port} (debug={DEBUG_MODE})"
    print(server_msg)
    add_app_log(server_msg, "INFO")
    # The reloader would fork a second snapshot thread
    app.run(host=host, port=port, threaded=True, debug=DEBUG_MODE, use_reloader=False)


if __name__ == "__main__":
    main()
