"""
Driver routes: GPS location broadcast and trip guidance.
"""
import logging
from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify, request

from larga import socketio
from larga.errors import LargaError, SupabaseRequestError
from larga.live_feed import live_feed
from larga.services.route_catalog import route_catalog
from larga.services.supabase_service import supabase_service
from larga.services.trip_tracker import trip_tracker
from larga.utils import geo
from larga.utils.validators import normalize_id, validate_location_data

driver_bp = Blueprint('driver', __name__, url_prefix='/api/driver')


def _guidance_for(location):
    route_id = location.get('route_id')
    if route_id is None:
        return None
    try:
        endpoints = route_catalog.get_endpoints(route_id)
    except SupabaseRequestError:
        logging.warning(f"[Driver] Route metadata unavailable for route_id {route_id}")
        return None
    return trip_tracker.guidance(
        location['driver_id'],
        (location['lat'], location['lng']),
        location.get('speed'),
        endpoints,
        fallback_kmh=current_app.config.get('FALLBACK_SPEED_KMH', geo.FALLBACK_SPEED_KMH),
        min_speed_mps=current_app.config.get('MIN_GPS_SPEED_MPS', geo.MIN_GPS_SPEED_MPS),
    )


@driver_bp.route('/location', methods=['POST'])
def update_location():
    """
    Save a driver's GPS fix into jeepney_locations.

    Body: ``{driver_id, route_id?, lat, lng, speed?, heading?}``
    """
    location, error = validate_location_data(request.get_json(silent=True), 'driver_id')
    if error:
        return jsonify({'error': error}), 400

    driver_id = location['driver_id']
    trip_tracker.select_route(driver_id, location['route_id'])
    guidance = _guidance_for(location)

    point = (location['lat'], location['lng'])
    if not trip_tracker.should_upload(driver_id, point):
        return jsonify({'success': True, 'skipped': True, 'guidance': guidance}), 200

    row = dict(location, updated_at=datetime.now(timezone.utc).isoformat())
    try:
        saved = supabase_service.upsert_jeepney_location(row)
    except LargaError:
        # Drop state created for a driver whose first fix was never saved
        trip_tracker.discard_unused(driver_id)
        raise
    trip_tracker.record_upload(driver_id, point)
    live_feed.broadcast_update(saved or row, socketio)

    return jsonify({'success': True, 'row': saved, 'guidance': guidance}), 200


@driver_bp.route('/trips', methods=['POST'])
def start_trip():
    """Start navigating a route. Body: ``{driver_id, route_id}``"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        data = {}
    driver_id = normalize_id(data.get('driver_id'))
    route_id = normalize_id(data.get('route_id'))
    if driver_id is None or route_id is None:
        return jsonify({'error': 'driver_id and route_id are required'}), 400

    trip = trip_tracker.start_trip(driver_id, route_id)
    logging.info(f"[Driver] Trip started for driver_id {driver_id} on route_id {route_id}")
    return jsonify({'success': True, 'trip': trip}), 201


@driver_bp.route('/trips/<driver_id>', methods=['GET'])
def get_trip(driver_id):
    trip = trip_tracker.get_trip(normalize_id(driver_id))
    if not trip:
        return jsonify({'error': 'No active trip for driver'}), 404
    return jsonify({'trip': trip}), 200


@driver_bp.route('/trips/<driver_id>', methods=['DELETE'])
def stop_trip(driver_id):
    """Stop sharing the live location: forget the trip and clear the row."""
    normalized = normalize_id(driver_id)
    if normalized is None:
        return jsonify({'error': 'driver_id is required'}), 400

    trip = trip_tracker.stop_trip(normalized)
    supabase_service.delete_jeepney_location(normalized)
    live_feed.broadcast_removal(normalized, socketio)
    logging.info(f"[Driver] Trip stopped for driver_id {normalized}")
    return jsonify({'success': True, 'trip': trip}), 200
