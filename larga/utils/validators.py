"""
Validation utilities for incoming location data.
"""
import math

from larga.utils.geo import is_finite_number

MAX_BIGINT = 2 ** 63 - 1


def is_valid_coordinate(value):
    """Finite JSON number (booleans are rejected)."""
    return is_finite_number(value)


def normalize_id(raw_id):
    """
    Normalize a row identifier (driver_id, commuter_id, route_id).

    These columns are Postgres bigints, so only non-negative integers (or their
    decimal string form) are accepted.
    """
    if raw_id is None or isinstance(raw_id, bool):
        return None
    if isinstance(raw_id, str):
        value = raw_id.strip()
        if not (value.isascii() and value.isdigit()):
            return None
        raw_id = int(value)
    if isinstance(raw_id, int) and 0 <= raw_id <= MAX_BIGINT:
        return raw_id
    return None


def parse_id_arg(raw_value, name):
    """
    Read an optional id from a query string or URL segment.

    Returns:
        (value, error): both None when the argument is absent
    """
    if raw_value is None or raw_value == '':
        return None, None
    value = normalize_id(raw_value)
    if value is None:
        return None, f'{name} must be an integer'
    return value, None


def parse_optional_float(raw_value):
    """Parse a query-string number; returns None when missing or invalid."""
    if raw_value is None or raw_value == '':
        return None
    try:
        value = float(raw_value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def parse_point_args(args):
    """
    Read an optional ``lat``/``lng`` pair from query args.

    Returns:
        ``(lat, lng)`` when both are present and in range, otherwise None
    """
    lat = parse_optional_float(args.get('lat'))
    lng = parse_optional_float(args.get('lng'))
    if lat is None or lng is None:
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def validate_location_data(data, id_field):
    """
    Validate and normalize an incoming GPS fix.

    Args:
        data: JSON body of the request
        id_field: name of the owner id field (``driver_id``)

    Returns:
        (location, error) where exactly one is None
    """
    if not data or not isinstance(data, dict):
        return None, f'{id_field} is required'

    owner_id = normalize_id(data.get(id_field))
    if owner_id is None:
        return None, f'{id_field} is required'

    lat, lng = data.get('lat'), data.get('lng')
    if not is_valid_coordinate(lat) or not is_valid_coordinate(lng):
        return None, 'lat and lng must be valid numbers'
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None, 'lat and lng are out of range'

    route_id, error = parse_id_arg(data.get('route_id'), 'route_id')
    if error:
        return None, error

    location = {
        id_field: owner_id,
        'route_id': route_id,
        'lat': float(lat),
        'lng': float(lng),
    }

    speed = data.get('speed')
    location['speed'] = float(speed) if is_valid_coordinate(speed) else None
    heading = data.get('heading')
    location['heading'] = float(heading) if is_valid_coordinate(heading) else None

    return location, None
