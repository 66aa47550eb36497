from flask import jsonify, request

from . import bp, get_app_services
from mohstats.config import APP_NAME, APP_VERSION
from mohstats.core.app_state import get_app_logs, get_http_stats, get_thread_health_status
from mohstats.services.shared.observability import get_service_stats


@bp.route("/api/status")
def api_status():
    services = get_app_services()
    last = services.pipeline.last_summary
    return jsonify({
        "app": APP_NAME,
        "version": APP_VERSION,
        "cache": services.cache.stats(),
        "snapshot": {
            "state": services.pipeline.state.value,
            "last_run": last.to_dict() if last else None,
        },
        "threads": get_thread_health_status(),
        "services": get_service_stats(),
        "http": get_http_stats(),
        "credits": "Server data provided by 333networks (https://www.333networks.com)",
    })


@bp.route("/api/status/logs")
def api_status_logs():
    try:
        limit = min(int(request.args.get("limit", 100)), 500)
    except (TypeError, ValueError):
        limit = 100
    return jsonify({"logs": get_app_logs(max(0, limit))})
