"""Flask application factory for mohstats.

This module creates and configures the Flask application instance.
"""
import time
import uuid
from flask import Flask, request, g

from mohstats.config import OBS_ROUTE_SLOW_MS, OBS_ROUTE_SLOW_WARN_MS
from mohstats.services.shared.observability import _logger
from mohstats.core.app_state import record_http_request_start, record_http_request_end


def create_app(services=None):
    """Create and configure the Flask application.

    Args:
        services: a mohstats.core.container.Services instance; the
            process-wide one is used when omitted.
    """
    app = Flask(__name__)
    app.config['JSON_SORT_KEYS'] = False

    if services is None:
        from mohstats.core.container import get_services
        services = get_services()
    app.extensions["mohstats"] = services

    # Register blueprints
    from mohstats.api.routes import bp as routes_bp
    app.register_blueprint(routes_bp)

    # Setup middleware
    @app.before_request
    def track_request_start():
        """OBSERVABILITY: Track request start time."""
        g.request_start_time = time.time()
        g.request_id = str(uuid.uuid4())[:8]
        record_http_request_start(g.request_id)

    @app.after_request
    def apply_server_policies(response):
        """Unified after_request handler for performance tracking and security headers."""
        try:
            path = request.path
            endpoint = request.endpoint or 'unknown'
            if hasattr(g, 'request_start_time'):
                duration_ms = (time.time() - g.request_start_time) * 1000
                if hasattr(g, 'request_id'):
                    record_http_request_end(g.request_id, response.status_code, slow=duration_ms > OBS_ROUTE_SLOW_MS)
                if duration_ms > OBS_ROUTE_SLOW_WARN_MS:
                    _logger.warning(f"Slow route: {endpoint} ({duration_ms:.1f}ms) - {path}")

            # Security Headers
            response.headers['X-Content-Type-Options'] = 'nosniff'
            response.headers['X-Frame-Options'] = 'SAMEORIGIN'

            # API Cache Control
            if path.startswith('/api/'):
                response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'

            return response
        except Exception as e:
            _logger.error(f"Error in apply_server_policies: {e}")
            return response

    return app
