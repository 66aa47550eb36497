from flask import jsonify

from . import bp, get_app_services


@bp.route("/api/v1/statistics/most-played-maps")
def api_most_played_maps():
    result = get_app_services().statistics.most_played_maps_24h()
    return jsonify({game: (freq.to_dict() if freq else None) for game, freq in result.items()})
