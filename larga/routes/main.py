"""
Service routes (no HTML rendering).
"""
from datetime import datetime, timezone

from flask import Blueprint, jsonify

from larga.live_feed import live_feed
from larga.services.supabase_service import supabase_service

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Health check endpoint for uptime monitoring."""
    return jsonify({
        'status': 'ok',
        'service': 'larga',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'supabase_configured': supabase_service.is_configured(),
        'live': live_feed.get_stats(),
    }), 200
