"""
Application configuration.
"""
import os

from dotenv import load_dotenv
load_dotenv()


def _env_float(name, default):
    value = os.environ.get(name)
    if value in (None, ''):
        return default
    return float(value)


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'
    TESTING = False

    # Supabase (service role key is server-side only)
    SUPABASE_URL = os.environ.get('SUPABASE_URL', '')
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get('SUPABASE_SERVICE_ROLE_KEY', '')

    # Shared secret for /api/admin/* (X-Admin-Secret header)
    ADMIN_SECRET = os.environ.get('ADMIN_SECRET', '')

    # reCAPTCHA
    RECAPTCHA_SECRET_KEY = os.environ.get('RECAPTCHA_SECRET_KEY', '')
    RECAPTCHA_VERIFY_URL = os.environ.get(
        'RECAPTCHA_VERIFY_URL', 'https://www.google.com/recaptcha/api/siteverify'
    )
    RECAPTCHA_TIMEOUT = _env_float('RECAPTCHA_TIMEOUT', 10.0)

    # Redis (optional driver lookup cache)
    REDIS_URL = os.environ.get('REDIS_URL', '')
    REDIS_SOCKET_CONNECT_TIMEOUT = _env_float('REDIS_SOCKET_CONNECT_TIMEOUT', 2.0)
    REDIS_SOCKET_TIMEOUT = _env_float('REDIS_SOCKET_TIMEOUT', 2.0)
    DRIVER_CACHE_TTL_SECONDS = int(os.environ.get('DRIVER_CACHE_TTL_SECONDS', '600'))

    # Frontend runtime config
    API_BASE = os.environ.get('API_BASE') or os.environ.get('NEXT_PUBLIC_API_BASE') or ''

    # Socket.IO (SOCKETIO_ASYNC_MODE is read at import time in larga/__init__.py)
    CORS_ALLOWED_ORIGINS = os.environ.get('CORS_ALLOWED_ORIGINS', '*')

    # Tracking
    JEEP_STALE_SECONDS = _env_float('JEEP_STALE_SECONDS', 60.0)
    FALLBACK_SPEED_KMH = _env_float('FALLBACK_SPEED_KMH', 18.0)
    MIN_GPS_SPEED_MPS = _env_float('MIN_GPS_SPEED_MPS', 0.8)
    GPS_MIN_MOVE_METERS = _env_float('GPS_MIN_MOVE_METERS', 20.0)
    GPS_MIN_INTERVAL_SECONDS = _env_float('GPS_MIN_INTERVAL_SECONDS', 10.0)
    ARRIVAL_RADIUS_METERS = _env_float('ARRIVAL_RADIUS_METERS', 60.0)
    COMMUTER_WINDOW_SECONDS = int(os.environ.get('COMMUTER_WINDOW_SECONDS', '300'))
    LIVE_DEDUP_WINDOW_SECONDS = _env_float('LIVE_DEDUP_WINDOW_SECONDS', 5.0)
    LIVE_CLEANUP_INTERVAL_SECONDS = _env_float('LIVE_CLEANUP_INTERVAL_SECONDS', 30.0)
    # Driver trip state with no activity for this long is forgotten
    TRIP_IDLE_SECONDS = _env_float('TRIP_IDLE_SECONDS', 600.0)

    # Route catalog cache
    ROUTE_CACHE_TTL = int(os.environ.get('ROUTE_CACHE_TTL', '300'))

    # Admin proxy
    ADMIN_USERS_PER_PAGE = int(os.environ.get('ADMIN_USERS_PER_PAGE', '50'))
    ADMIN_USERS_MAX_PER_PAGE = 1000

    # Background threads (route refresh, live cleanup)
    START_BACKGROUND_THREADS = os.environ.get('START_BACKGROUND_THREADS', 'True').lower() == 'true'
