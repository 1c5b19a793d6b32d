"""
Public API routes: reCAPTCHA verification, live jeepneys, routes.
"""
import logging
from datetime import datetime, timedelta, timezone

from flask import Blueprint, current_app, jsonify, request

from larga.services.jeepney_service import list_active_jeepneys
from larga.services.recaptcha_service import summarize_result, verify_recaptcha
from larga.services.route_catalog import route_catalog
from larga.services.supabase_service import supabase_service
from larga.utils import geo
from larga.utils.validators import normalize_id, parse_id_arg, parse_point_args

api_bp = Blueprint('api', __name__, url_prefix='/api')


@api_bp.route('/verify-recaptcha', methods=['POST'])
def verify_recaptcha_token():
    """
    Verify a reCAPTCHA token before the browser signs in.

    Body: ``{"token": "..."}``
    """
    secret_key = current_app.config.get('RECAPTCHA_SECRET_KEY')
    if not secret_key:
        return jsonify({'success': False, 'error': 'RECAPTCHA_SECRET_KEY not configured on server'}), 500

    payload = request.get_json(silent=True)
    token = payload.get('token') if isinstance(payload, dict) else None
    if not token or not isinstance(token, str):
        return jsonify({'success': False, 'error': 'Missing reCAPTCHA token'}), 400

    try:
        result = verify_recaptcha(
            token,
            secret_key,
            current_app.config.get('RECAPTCHA_VERIFY_URL'),
            timeout=current_app.config.get('RECAPTCHA_TIMEOUT', 10.0),
            remote_ip=request.remote_addr,
        )
        if not result.get('success'):
            logging.warning(f"[reCAPTCHA] Verification failed: {result.get('error-codes')}")
        return jsonify(summarize_result(result)), 200
    except Exception as e:
        logging.error(f"[reCAPTCHA] Unexpected error: {e}", exc_info=True)
        return jsonify({'success': False, 'error': 'Unexpected reCAPTCHA error'}), 500


@api_bp.route('/jeepneys')
def jeepneys():
    """
    Active jeepneys, newest first.

    Query: optional ``lat``/``lng`` of the commuter (enables distance + ETA)
    and ``route_id`` to narrow to one route.
    """
    commuter = parse_point_args(request.args)
    route_id, error = parse_id_arg(request.args.get('route_id'), 'route_id')
    if error:
        return jsonify({'error': error}), 400
    rows = list_active_jeepneys(commuter=commuter, route_id=route_id, config=current_app.config)
    return jsonify({'count': len(rows), 'jeepneys': rows}), 200


@api_bp.route('/routes')
def routes():
    """List routes with their origin and destination terminals."""
    entries = route_catalog.list_routes()
    return jsonify({'count': len(entries), 'routes': entries}), 200


@api_bp.route('/routes/<route_id>/match')
def match_route(route_id):
    """Nearest point on a route line to the given ``lat``/``lng``."""
    point = parse_point_args(request.args)
    if point is None:
        return jsonify({'error': 'lat and lng must be valid numbers'}), 400

    normalized = normalize_id(route_id)
    if normalized is None:
        return jsonify({'error': 'route_id must be an integer'}), 400
    polyline = route_catalog.get_polyline(normalized)
    if not polyline:
        return jsonify({'error': 'Route not found or has no terminals'}), 404

    nearest = geo.nearest_point_on_polyline(point, polyline)
    return jsonify({
        'route_id': normalized,
        'route_name': route_catalog.route_name(normalized),
        'nearest': nearest.to_dict(),
        'distance_text': geo.format_distance(nearest.distance_m),
    }), 200


@api_bp.route('/routes/<route_id>/commuters')
def route_commuters(route_id):
    """Commuters who shared a position on this route recently."""
    normalized = normalize_id(route_id)
    if normalized is None:
        return jsonify({'error': 'route_id must be an integer'}), 400

    window = current_app.config.get('COMMUTER_WINDOW_SECONDS', 300)
    since = (datetime.now(timezone.utc) - timedelta(seconds=window)).isoformat()
    rows = supabase_service.list_commuters_on_route(normalized, since)
    commuters = [
        row for row in rows
        if row.get('commuter_id') is not None
        and geo.is_finite_number(row.get('lat'))
        and geo.is_finite_number(row.get('lng'))
    ]
    return jsonify({'count': len(commuters), 'commuters': commuters}), 200
