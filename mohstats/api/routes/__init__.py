from flask import Blueprint, current_app, jsonify

from mohstats.services.shared.errors import (
    PersistenceError,
    ResolutionError,
    ServerNotFound,
    UpstreamError,
)
from mohstats.services.shared.observability import _logger

# Combined Blueprint for all decomposed routes
bp = Blueprint("routes", __name__)


def get_app_services():
    return current_app.extensions["mohstats"]


@bp.app_errorhandler(UpstreamError)
def _handle_upstream_error(e):
    return jsonify(e.to_dict()), 502


@bp.app_errorhandler(ResolutionError)
def _handle_resolution_error(e):
    return jsonify(e.to_dict()), 400


@bp.app_errorhandler(ServerNotFound)
def _handle_not_found(e):
    return jsonify(e.to_dict()), 404


@bp.app_errorhandler(PersistenceError)
def _handle_persistence_error(e):
    _logger.error(f"Persistence failure: {e}")
    return jsonify({"error": "PersistenceError", "message": "Storage unavailable"}), 500


# Import routes to register them with the blueprint
# These imports happen after bp is defined to avoid circular dependency
from . import servers
from . import snapshots
from . import statistics
from . import system
