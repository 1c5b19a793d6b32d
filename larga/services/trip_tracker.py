"""
Per-driver trip state: GPS upload throttle and terminal guidance legs.
"""
from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Dict, Optional

from larga.utils import geo

PHASE_IDLE = 'IDLE'
PHASE_ROUTE_SELECTED = 'ROUTE_SELECTED'
PHASE_NAVIGATING = 'NAVIGATING'


class TripTracker:
    """Keeps the in-process state of every driver currently sending fixes."""

    def __init__(self, min_move_m: float = 20.0, min_interval_s: float = 10.0,
                 arrival_radius_m: float = geo.ARRIVAL_RADIUS_METERS):
        self._trips: Dict = {}
        self._lock = threading.Lock()
        self.min_move_m = min_move_m
        self.min_interval_s = min_interval_s
        self.arrival_radius_m = arrival_radius_m

    def configure(self, config) -> None:
        self.min_move_m = config.get('GPS_MIN_MOVE_METERS', self.min_move_m)
        self.min_interval_s = config.get('GPS_MIN_INTERVAL_SECONDS', self.min_interval_s)
        self.arrival_radius_m = config.get('ARRIVAL_RADIUS_METERS', self.arrival_radius_m)

    def _entry(self, driver_id) -> dict:
        entry = self._trips.get(driver_id)
        if entry is not None:
            entry['touched_at'] = time.time()
        else:
            entry = {
                'driver_id': driver_id,
                'route_id': None,
                'phase': PHASE_IDLE,
                'leg': geo.LEG_TO_ORIGIN,
                'last_sent': None,
                'last_sent_at': None,
                'started_at': None,
                'touched_at': time.time(),
            }
            self._trips[driver_id] = entry
        return entry

    def start_trip(self, driver_id, route_id) -> dict:
        """Begin navigating a route; the first leg heads to the origin terminal."""
        with self._lock:
            entry = self._entry(driver_id)
            entry.update(
                route_id=route_id,
                phase=PHASE_NAVIGATING,
                leg=geo.LEG_TO_ORIGIN,
                last_sent=None,
                last_sent_at=None,
                started_at=datetime.now(timezone.utc).isoformat(),
            )
            return self._public(entry)

    def stop_trip(self, driver_id) -> Optional[dict]:
        with self._lock:
            entry = self._trips.pop(driver_id, None)
            return self._public(entry) if entry else None

    def clear(self) -> None:
        with self._lock:
            self._trips.clear()

    def get_trip(self, driver_id) -> Optional[dict]:
        with self._lock:
            entry = self._trips.get(driver_id)
            return self._public(entry) if entry else None

    def should_upload(self, driver_id, point, now: Optional[float] = None) -> bool:
        """
        Apply the GPS write throttle. Nothing is recorded until ``record_upload``.
        """
        now = time.time() if now is None else now
        with self._lock:
            entry = self._trips.get(driver_id)
            if entry is None:
                return True
            return geo.should_send(entry['last_sent'], entry['last_sent_at'], point, now,
                                   self.min_move_m, self.min_interval_s)

    def record_upload(self, driver_id, point, now: Optional[float] = None) -> None:
        """Remember a fix that was written, so close follow-ups are throttled."""
        now = time.time() if now is None else now
        with self._lock:
            entry = self._entry(driver_id)
            entry['last_sent'] = point
            entry['last_sent_at'] = now

    def discard_unused(self, driver_id) -> bool:
        """
        Forget a driver that never had a fix written and is not on a trip.
        """
        with self._lock:
            entry = self._trips.get(driver_id)
            if entry is None or entry['last_sent'] is not None or entry['phase'] == PHASE_NAVIGATING:
                return False
            del self._trips[driver_id]
            return True

    def prune_idle(self, idle_seconds: float, now: Optional[float] = None) -> int:
        """
        Drop drivers with no activity within ``idle_seconds``.

        Returns:
            Number of entries removed
        """
        cutoff = (time.time() if now is None else now) - idle_seconds
        with self._lock:
            idle = [d for d, entry in self._trips.items() if entry['touched_at'] < cutoff]
            for driver_id in idle:
                del self._trips[driver_id]
        return len(idle)

    def select_route(self, driver_id, route_id) -> None:
        with self._lock:
            entry = self._entry(driver_id)
            if entry['route_id'] != route_id:
                entry['route_id'] = route_id
                entry['leg'] = geo.LEG_TO_ORIGIN
                if entry['phase'] == PHASE_IDLE and route_id is not None:
                    entry['phase'] = PHASE_ROUTE_SELECTED

    def guidance(self, driver_id, point, speed_mps, endpoints, fallback_kmh=geo.FALLBACK_SPEED_KMH,
                 min_speed_mps=geo.MIN_GPS_SPEED_MPS) -> Optional[dict]:
        """
        Next-terminal guidance for a fix, advancing the driver's leg on arrival.
        """
        if not endpoints:
            return None
        with self._lock:
            entry = self._entry(driver_id)
            result = geo.guidance(
                point,
                endpoints['origin'],
                endpoints['dest'],
                leg=entry['leg'],
                speed_mps=speed_mps,
                arrival_radius_m=self.arrival_radius_m,
                fallback_kmh=fallback_kmh,
                min_speed_mps=min_speed_mps,
            )
            entry['leg'] = result['leg']
            return result

    def _public(self, entry: dict) -> dict:
        data = {k: v for k, v in entry.items() if k not in ('last_sent', 'last_sent_at', 'touched_at')}
        data['last_sent'] = list(entry['last_sent']) if entry['last_sent'] else None
        return data


trip_tracker = TripTracker()
