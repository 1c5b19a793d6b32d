"""
Geometry helpers for jeepney tracking: distances, ETA, route matching.

Points are ``(lat, lng)`` tuples in decimal degrees. Speeds are metres per
second, as reported by the browser Geolocation API.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

Point = Tuple[float, float]

EARTH_RADIUS_M = 6371000.0
FALLBACK_SPEED_KMH = 18.0
MIN_GPS_SPEED_MPS = 0.8
ARRIVAL_RADIUS_METERS = 60.0
PLACEHOLDER = '—'

LEG_TO_ORIGIN = 'TO_ORIGIN'
LEG_TO_DEST = 'TO_DEST'


def is_finite_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _js_round(value: float) -> int:
    # Half-up rounding, as the browser pages display it.
    return int(math.floor(value + 0.5))


def distance_meters(a: Point, b: Point) -> float:
    """Haversine great-circle distance in metres."""
    lat1, lng1 = a
    lat2, lng2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(h)))


def cumulative_distances(polyline: Sequence[Point]) -> List[float]:
    """Cumulative metres along the polyline, starting at 0."""
    dists = [0.0] if polyline else []
    for i in range(1, len(polyline)):
        dists.append(dists[-1] + distance_meters(polyline[i - 1], polyline[i]))
    return dists


def format_distance(meters) -> str:
    if not is_finite_number(meters):
        return PLACEHOLDER
    if meters < 1000:
        return f"{_js_round(meters)} m"
    return f"{meters / 1000:.2f} km"


def format_eta_minutes(minutes) -> str:
    if not is_finite_number(minutes):
        return PLACEHOLDER
    if minutes < 1:
        return '< 1 min'
    if minutes < 60:
        return f"{_js_round(minutes)} min"
    hours = int(minutes // 60)
    rest = _js_round(minutes % 60)
    if rest == 60:
        hours, rest = hours + 1, 0
    return f"{hours}h {rest}m"


def format_speed(speed_mps) -> str:
    """Display text for a GPS speed; the fallback speed is never shown."""
    if not is_finite_number(speed_mps) or speed_mps < 0:
        return PLACEHOLDER
    kmh = speed_mps * 3.6
    if kmh < 1:
        return '0.0 km/h'
    return f"{kmh:.1f} km/h"


def effective_speed_mps(
    speed_mps,
    fallback_kmh: float = FALLBACK_SPEED_KMH,
    min_speed_mps: float = MIN_GPS_SPEED_MPS,
) -> float:
    if is_finite_number(speed_mps) and speed_mps > min_speed_mps:
        return float(speed_mps)
    return fallback_kmh * 1000.0 / 3600.0


def eta_minutes(
    distance_m: float,
    speed_mps=None,
    fallback_kmh: float = FALLBACK_SPEED_KMH,
    min_speed_mps: float = MIN_GPS_SPEED_MPS,
) -> float:
    speed = effective_speed_mps(speed_mps, fallback_kmh, min_speed_mps)
    return distance_m / speed / 60.0


@dataclass(frozen=True)
class NearestPoint:
    lat: float
    lng: float
    distance_m: float
    segment_index: int
    along_m: float

    def to_dict(self) -> dict:
        return {
            'lat': self.lat,
            'lng': self.lng,
            'distance_m': self.distance_m,
            'segment_index': self.segment_index,
            'along_m': self.along_m,
        }


def _to_xy(lat: float, lng: float, ref_lat: float, ref_lng: float) -> Tuple[float, float]:
    # Local equirectangular plane around the reference point, metres.
    kx = 111320.0 * math.cos(math.radians((lat + ref_lat) * 0.5))
    ky = 110540.0
    return (lng - ref_lng) * kx, (lat - ref_lat) * ky


def nearest_point_on_polyline(point: Point, polyline: Sequence[Point]) -> NearestPoint:
    """
    Project ``point`` onto every segment of ``polyline`` and return the closest hit.

    Raises:
        ValueError: if the polyline is empty.
    """
    if not polyline:
        raise ValueError("polyline must contain at least one point")

    if len(polyline) == 1:
        lat, lng = polyline[0]
        return NearestPoint(lat, lng, distance_meters(point, polyline[0]), 0, 0.0)

    cum = cumulative_distances(polyline)
    best: Optional[NearestPoint] = None
    for i in range(len(polyline) - 1):
        a_lat, a_lng = polyline[i]
        b_lat, b_lng = polyline[i + 1]
        bx, by = _to_xy(b_lat, b_lng, a_lat, a_lng)
        px, py = _to_xy(point[0], point[1], a_lat, a_lng)
        vv = bx * bx + by * by
        t = 0.0 if vv <= 0 else max(0.0, min(1.0, (px * bx + py * by) / vv))
        proj = (a_lat + t * (b_lat - a_lat), a_lng + t * (b_lng - a_lng))
        dist = distance_meters(point, proj)
        if best is None or dist < best.distance_m:
            along = cum[i] + t * (cum[i + 1] - cum[i])
            best = NearestPoint(proj[0], proj[1], dist, i, along)
    return best


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as returned by PostgREST; naive values are UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_stale(updated_at, now: Optional[datetime] = None, stale_seconds: float = 60.0) -> bool:
    """True when the row was last updated more than ``stale_seconds`` ago."""
    parsed = parse_timestamp(updated_at)
    if parsed is None:
        return False
    now = now or datetime.now(timezone.utc)
    return (now - parsed).total_seconds() > stale_seconds


def should_send(
    last: Optional[Point],
    last_at: Optional[float],
    current: Point,
    now: float,
    min_move_m: float = 20.0,
    min_interval_s: float = 10.0,
) -> bool:
    """GPS write throttle: send when moved far enough or enough time passed."""
    if last is None or last_at is None:
        return True
    moved = distance_meters(last, current)
    return not (moved < min_move_m and (now - last_at) < min_interval_s)


def jeep_stats(
    row: dict,
    commuter: Optional[Point],
    fallback_kmh: float = FALLBACK_SPEED_KMH,
    min_speed_mps: float = MIN_GPS_SPEED_MPS,
) -> dict:
    """Distance, ETA and speed display values for a jeepney row seen from a commuter."""
    speed = row.get('speed')
    stats = {
        'distance_m': None,
        'eta_minutes': None,
        'distance_text': PLACEHOLDER,
        'eta_text': PLACEHOLDER,
        'speed_text': format_speed(speed),
    }
    lat, lng = row.get('lat'), row.get('lng')
    if commuter is None or not is_finite_number(lat) or not is_finite_number(lng):
        return stats
    if not is_finite_number(commuter[0]) or not is_finite_number(commuter[1]):
        return stats

    distance = distance_meters(commuter, (lat, lng))
    eta = eta_minutes(distance, speed, fallback_kmh, min_speed_mps)
    stats.update(
        distance_m=distance,
        eta_minutes=eta,
        distance_text=format_distance(distance),
        eta_text=format_eta_minutes(eta),
    )
    return stats


def next_leg(leg: str, distance_to_origin_m: float, arrival_radius_m: float = ARRIVAL_RADIUS_METERS) -> str:
    """Switch to the destination leg once the origin terminal is reached."""
    if leg == LEG_TO_ORIGIN and distance_to_origin_m <= arrival_radius_m:
        return LEG_TO_DEST
    return leg


def guidance(
    here: Point,
    origin: dict,
    dest: dict,
    leg: str = LEG_TO_ORIGIN,
    speed_mps=None,
    arrival_radius_m: float = ARRIVAL_RADIUS_METERS,
    fallback_kmh: float = FALLBACK_SPEED_KMH,
    min_speed_mps: float = MIN_GPS_SPEED_MPS,
) -> dict:
    """
    Next-terminal guidance for a driver on a route.

    ``origin`` and ``dest`` are terminal dicts with ``name``, ``lat`` and ``lng``.
    """
    to_origin = distance_meters(here, (origin['lat'], origin['lng']))
    to_dest = distance_meters(here, (dest['lat'], dest['lng']))
    leg = next_leg(leg, to_origin, arrival_radius_m)

    target, dist = (dest, to_dest) if leg == LEG_TO_DEST else (origin, to_origin)
    eta = eta_minutes(dist, speed_mps, fallback_kmh, min_speed_mps)
    return {
        'leg': leg,
        'next_terminal': target.get('name'),
        'distance_m': dist,
        'distance_text': format_distance(dist),
        'eta_minutes': eta,
        'eta_text': format_eta_minutes(eta),
    }
