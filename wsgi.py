"""
WSGI entry point for production (``gunicorn -c gunicorn.conf.py wsgi:app``).
"""
import logging
import os
import sys

# One stdout stream for the host's log viewer; LOG_LEVEL=DEBUG shows dedup/throttle skips
logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    stream=sys.stdout
)
logger = logging.getLogger('larga')

try:
    from larga import async_mode, create_app, socketio
    app = create_app()
    logger.info(f"[Server] Larga API ready (async_mode={async_mode})")
except Exception as e:
    logger.error("=" * 60)
    logger.error("FATAL ERROR: Failed to create Larga application")
    logger.error("=" * 60)
    logger.error(f"Error: {e}", exc_info=True)
    logger.error("=" * 60)
    # Re-raise so Gunicorn sees the error
    raise


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 3000))
    debug = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'
    socketio.run(app, host="0.0.0.0", port=port, debug=debug, allow_unsafe_werkzeug=True)
