from flask import jsonify, request

from . import bp, get_app_services
from mohstats.services.networks.model import ServerListQuery
from mohstats.services.shared.decorators import throttle
from mohstats.services.shared.dns import resolve_to_ip


def _int_arg(name):
    value = request.args.get(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid integer for '{name}': {value}")


def _query_from_args():
    return ServerListQuery(
        sort_by=request.args.get("sortBy"),
        order=request.args.get("order"),
        results=_int_arg("results"),
        page=_int_arg("page"),
        query=request.args.get("query"),
        gametype=request.args.get("gametype"),
        hostname=request.args.get("hostname"),
        mapname=request.args.get("mapname"),
        country=request.args.get("country"),
    )


@bp.route("/api/servers/<game>/motd")
def api_server_motd(game):
    try:
        motd = get_app_services().client.fetch_motd(game)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(motd.to_dict())


@bp.route("/api/servers/<game>")
def api_server_list(game):
    try:
        query = _query_from_args()
        server_list = get_app_services().client.fetch_server_list(game, query)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(server_list.to_dict())


@bp.route("/api/servers/mohaa/all")
def api_all_moh_servers():
    try:
        query = _query_from_args()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    lists = get_app_services().client.fetch_all_moh_servers(query)
    return jsonify({game: server_list.to_dict() for game, server_list in lists.items()})


@bp.route("/api/servers/<game>/<host>/<int:port>")
def api_server_details(game, host, port):
    ip = resolve_to_ip(host)
    try:
        details = get_app_services().client.fetch_server_details(game, ip, port)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(details.to_dict())


@bp.route("/api/servers/cache/clear", methods=["POST"])
@throttle()
def api_clear_cache():
    key = request.args.get("key") or None
    removed = get_app_services().client.clear_cache(key)
    return jsonify({"message": "Cache cleared successfully", "key": key, "removed": removed})
