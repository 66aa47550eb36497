import math
import time
from datetime import datetime, timezone

from flask import jsonify, request

from . import bp, get_app_services
from mohstats.config import DEFAULT_RANGE_MAP, HISTORY_BUCKET_SECONDS, HISTORY_DEFAULT_RANGE, HISTORY_MAX_RANGE
from mohstats.core.background import run_snapshot_tick
from mohstats.services.networks.client import validate_game
from mohstats.services.shared.decorators import throttle
from mohstats.services.shared.dns import resolve_to_ip
from mohstats.services.shared.errors import ServerNotFound
from mohstats.services.snapshots.model import iso_ts


def parse_ts(value):
    """Epoch seconds or ISO-8601 (naive values are UTC) -> epoch seconds."""
    value = value.strip()
    try:
        ts = float(value)
    except ValueError:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(value)
        except ValueError:
            raise ValueError(f"Invalid timestamp: {value}")
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.timestamp()

    if not math.isfinite(ts):
        raise ValueError(f"Invalid timestamp: {value}")
    return _representable(ts)


def _representable(ts):
    """Reject epochs that cannot be rendered as a UTC date."""
    try:
        datetime.fromtimestamp(ts, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise ValueError(f"Timestamp out of range: {ts}")
    return ts


def _history_window():
    now = time.time()
    end_arg = request.args.get("end")
    start_arg = request.args.get("start")
    end_ts = parse_ts(end_arg) if end_arg else now
    if start_arg:
        start_ts = parse_ts(start_arg)
    else:
        range_key = request.args.get("range")
        start_ts = _representable(end_ts - DEFAULT_RANGE_MAP.get(range_key, HISTORY_DEFAULT_RANGE))
    try:
        bucket = int(request.args.get("bucket", HISTORY_BUCKET_SECONDS))
    except (TypeError, ValueError):
        raise ValueError("Invalid bucket size")
    if end_ts <= start_ts:
        raise ValueError("end must be after start")
    if end_ts - start_ts > HISTORY_MAX_RANGE:
        raise ValueError("Requested range too large")
    if bucket <= 0:
        raise ValueError("bucket must be positive")
    return start_ts, end_ts, bucket


@bp.route("/api/snapshots/run", methods=["POST"])
@throttle()
def api_snapshots_run():
    pipeline = get_app_services().pipeline
    if pipeline.is_running:
        return jsonify({"error": "Snapshot already running"}), 409
    summary = run_snapshot_tick(pipeline, source="ManualSnapshot")
    if summary is None:
        return jsonify({"error": "Snapshot did not complete", "state": pipeline.state.value}), 409
    return jsonify(summary.to_dict())


@bp.route("/api/snapshots/status")
def api_snapshots_status():
    pipeline = get_app_services().pipeline
    last = pipeline.last_summary
    return jsonify({
        "state": pipeline.state.value,
        "last_run": last.to_dict() if last else None,
    })


@bp.route("/api/servers/<game>/<host>/<int:port>/history")
def api_server_history(game, host, port):
    try:
        validate_game(game)
        start_ts, end_ts, bucket = _history_window()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    ip = resolve_to_ip(host)
    server, points = get_app_services().history.get_history_for_address(
        ip, port, start_ts, end_ts, bucket, game=game
    )
    return jsonify({
        "server": server.to_dict(),
        "start": iso_ts(start_ts),
        "end": iso_ts(end_ts),
        "bucket_seconds": bucket,
        "points": [p.to_dict() for p in points],
    })


@bp.route("/api/servers/<host>/<int:port>/latest")
def api_server_latest(host, port):
    ip = resolve_to_ip(host)
    services = get_app_services()
    server = services.repository.find_latest_server_by_address(ip, port)
    if server is None:
        raise ServerNotFound(ip, port)
    snapshot = services.repository.find_latest_snapshot(server.id)
    if snapshot is None:
        return jsonify({"error": "No snapshots recorded", "server": server.to_dict()}), 404
    return jsonify({"server": server.to_dict(), "snapshot": snapshot.to_dict()})
