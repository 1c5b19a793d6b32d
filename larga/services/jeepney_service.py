"""
Commuter-facing view of live jeepneys.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from larga.errors import SupabaseRequestError
from larga.services.cache_service import get_cache_service
from larga.services.route_catalog import route_catalog
from larga.services.supabase_service import supabase_service
from larga.utils import geo


def lookup_drivers(driver_ids: Iterable) -> Dict:
    """
    Driver rows (plate numbers) for the given ids, Redis first then Supabase.

    A failed Supabase lookup only costs the plate number, so it is logged and
    an empty mapping is returned for the misses.
    """
    ids = [d for d in dict.fromkeys(driver_ids) if d is not None]
    if not ids:
        return {}

    cache = get_cache_service()
    found = cache.get_drivers(ids) if cache else {}
    missing = [d for d in ids if d not in found]
    if not missing:
        return found

    try:
        fetched = supabase_service.get_drivers(missing)
    except SupabaseRequestError:
        logging.error("[Jeepneys] Failed to load driver info for popups")
        return found

    if cache and fetched:
        cache.set_drivers(fetched)
    found.update(fetched)
    return found


def _route_name(route_id) -> Optional[str]:
    if route_id is None:
        return None
    try:
        return route_catalog.route_name(route_id)
    except SupabaseRequestError:
        return f"Route {route_id}"


def list_active_jeepneys(
    commuter: Optional[tuple] = None,
    route_id=None,
    config=None,
    now: Optional[datetime] = None,
) -> List[dict]:
    """
    Fresh jeepney rows, newest first, decorated with display stats.

    Rows without coordinates or last updated before the stale window are hidden.
    """
    config = config or {}
    stale_seconds = config.get('JEEP_STALE_SECONDS', 60.0)
    fallback_kmh = config.get('FALLBACK_SPEED_KMH', geo.FALLBACK_SPEED_KMH)
    min_speed = config.get('MIN_GPS_SPEED_MPS', geo.MIN_GPS_SPEED_MPS)
    now = now or datetime.now(timezone.utc)

    rows = supabase_service.list_jeepney_locations(route_id=route_id)
    visible = [
        row for row in rows
        if row.get('driver_id') is not None
        and geo.is_finite_number(row.get('lat'))
        and geo.is_finite_number(row.get('lng'))
        and not geo.is_stale(row.get('updated_at'), now, stale_seconds)
    ]

    drivers = lookup_drivers(row['driver_id'] for row in visible)
    jeepneys = []
    for row in visible:
        driver = drivers.get(row['driver_id']) or {}
        jeepneys.append({
            **row,
            'status': 'Active',
            'route_name': _route_name(row.get('route_id')),
            'plate_number': driver.get('plate_number'),
            'stats': geo.jeep_stats(row, commuter, fallback_kmh, min_speed),
        })
    return jeepneys
