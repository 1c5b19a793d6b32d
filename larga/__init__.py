"""
Main Flask application factory.
"""
import logging
import os

from flask import Flask, request
from flask_socketio import SocketIO

from larga.config import Config
from larga.errors import register_error_handlers
from larga.live_feed import live_feed
from larga.services import init_cache_service, route_catalog, supabase_service, trip_tracker

# Auto-detect async mode:
# - 'eventlet' for production (Gunicorn with eventlet workers)
# - 'threading' for local development and tests
# - SOCKETIO_ASYNC_MODE overrides both
is_production = (
    os.environ.get('GUNICORN_CMD_ARGS') is not None or
    os.environ.get('SERVER_SOFTWARE', '').startswith('gunicorn') or
    os.environ.get('PORT') is not None
)

if os.environ.get('SOCKETIO_ASYNC_MODE'):
    async_mode = os.environ.get('SOCKETIO_ASYNC_MODE')
elif is_production:
    async_mode = 'eventlet'
else:
    async_mode = 'threading'

socketio = SocketIO(cors_allowed_origins="*", async_mode=async_mode)


def create_app(config_class=Config):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    from larga.routes.main import main_bp
    from larga.routes.api import api_bp
    from larga.routes.admin import admin_bp
    from larga.routes.driver import driver_bp
    from larga.routes.live_routes import live_bp
    from larga.cli import register_commands

    # Socket.IO handlers must be registered before init_app so every new server gets them
    socketio.init_app(app, cors_allowed_origins=app.config['CORS_ALLOWED_ORIGINS'])

    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(driver_bp)
    app.register_blueprint(live_bp)

    register_error_handlers(app)
    register_commands(app)
    _register_cors(app)

    # Service layer
    supabase_service.init_app(app.config)
    init_cache_service(app.config)
    trip_tracker.configure(app.config)
    route_catalog.configure(app.config['ROUTE_CACHE_TTL'])
    live_feed.configure(app.config['LIVE_DEDUP_WINDOW_SECONDS'])

    if not supabase_service.is_configured():
        logging.error("=" * 60)
        logging.error("[Server] Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY in environment.")
        logging.error("Set them in a .env file or environment variables before starting the server.")
        logging.error("Supabase-backed endpoints will answer 503 until then.")
        logging.error("=" * 60)
    elif app.config.get('START_BACKGROUND_THREADS'):
        try:
            route_catalog.start()
        except Exception as e:
            # Let the app start; route lookups retry at request time
            logging.error(f"Error during route catalog initialization: {e}", exc_info=True)

    if app.config.get('START_BACKGROUND_THREADS'):
        _start_live_cleanup_thread(app)

    return app


def _register_cors(app):
    """Open the JSON API to the static frontend (served from another origin)."""
    allowed = app.config.get('CORS_ALLOWED_ORIGINS', '*')

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get('Origin')
        if allowed == '*':
            response.headers['Access-Control-Allow-Origin'] = '*'
        elif origin and origin in [o.strip() for o in allowed.split(',')]:
            response.headers['Access-Control-Allow-Origin'] = origin
            response.headers['Vary'] = 'Origin'
        response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization, X-Admin-Secret'
        response.headers['Access-Control-Allow-Methods'] = 'GET, POST, DELETE, OPTIONS'
        return response


def _start_live_cleanup_thread(app):
    """Start background thread that drops silent jeepneys and idle trip state."""
    import threading
    import time

    stale_seconds = app.config['JEEP_STALE_SECONDS']
    interval = app.config['LIVE_CLEANUP_INTERVAL_SECONDS']
    trip_idle_seconds = app.config['TRIP_IDLE_SECONDS']

    def cleanup_loop():
        while True:
            try:
                time.sleep(interval)
                removed = live_feed.cleanup_stale(stale_seconds, socketio)
                if removed:
                    logging.info(f"[Live] Removed {removed} stale jeepneys")
                pruned = trip_tracker.prune_idle(trip_idle_seconds)
                if pruned:
                    logging.info(f"[Driver] Dropped {pruned} idle trip entries")
            except Exception as e:
                logging.error(f"Error in live cleanup loop: {e}")

    cleanup_thread = threading.Thread(target=cleanup_loop, daemon=True, name="Live-Cleanup")
    cleanup_thread.start()
