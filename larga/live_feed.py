"""
Live jeepney position fan-out over Socket.IO.
"""
import hashlib
import logging
import threading
import time
from datetime import datetime, timezone
from typing import Optional

LIVE_NAMESPACE = '/live'
ALL_JEEPNEYS_ROOM = 'jeepneys'


def route_room(route_id) -> str:
    return f"route:{route_id}"


class LiveFeed:
    """Tracks connected clients and the last broadcast fix of every jeepney."""

    def __init__(self, deduplication_window_seconds: float = 5):
        self.clients = {}  # {sid: {'routes': set, 'connected_at': datetime}}
        self.positions = {}  # {driver_id: {'row': dict, 'seen_at': float}}
        self._lock = threading.Lock()

        # Deduplication: {fix_hash: timestamp}
        self._recent_fixes: dict[str, float] = {}
        self._deduplication_window = deduplication_window_seconds

    def configure(self, deduplication_window_seconds: float) -> None:
        self._deduplication_window = deduplication_window_seconds

    def add_client(self, sid):
        with self._lock:
            self.clients[sid] = {
                'routes': set(),
                'connected_at': datetime.now(timezone.utc),
            }

    def remove_client(self, sid):
        with self._lock:
            self.clients.pop(sid, None)

    def subscribe_route(self, sid, route_id) -> bool:
        with self._lock:
            client = self.clients.get(sid)
            if not client:
                return False
            client['routes'].add(route_id)
            return True

    def unsubscribe_route(self, sid, route_id) -> bool:
        with self._lock:
            client = self.clients.get(sid)
            if not client:
                return False
            client['routes'].discard(route_id)
            return True

    def get_client(self, sid) -> Optional[dict]:
        return self.clients.get(sid)

    def get_client_count(self):
        return len(self.clients)

    def _fix_hash(self, row: dict) -> str:
        key = f"{row.get('driver_id')}|{row.get('route_id')}|{row.get('lat')}|{row.get('lng')}"
        return hashlib.sha256(key.encode('utf-8')).hexdigest()

    def _cleanup_old_fixes(self, current_time: float):
        cutoff_time = current_time - self._deduplication_window
        expired_keys = [
            fix_hash for fix_hash, timestamp in self._recent_fixes.items()
            if timestamp < cutoff_time
        ]
        for key in expired_keys:
            del self._recent_fixes[key]

    def _rooms(self, route_id) -> list:
        # One emit per fix: a client in several of these rooms still gets it once
        if route_id is None:
            return [ALL_JEEPNEYS_ROOM]
        return [ALL_JEEPNEYS_ROOM, route_room(route_id)]

    def is_duplicate(self, row: dict) -> bool:
        """
        Check whether the same fix was broadcast within the deduplication window.
        Expired entries are dropped on every check.
        """
        fix_hash = self._fix_hash(row)
        current_time = time.time()

        with self._lock:
            self._cleanup_old_fixes(current_time)
            last = self._recent_fixes.get(fix_hash)
            if last is not None and current_time - last < self._deduplication_window:
                return True
            self._recent_fixes[fix_hash] = current_time
            return False

    def broadcast_update(self, row: dict, socketio_instance=None) -> bool:
        """
        Record a jeepney fix and emit it to live subscribers.

        Returns:
            bool: True if the fix was broadcast, False if it was a duplicate
        """
        driver_id = row.get('driver_id')
        if driver_id is None:
            return False

        if self.is_duplicate(row):
            logging.debug(f"[Live] Duplicate fix skipped for driver_id {driver_id}")
            return False

        with self._lock:
            previous = self.positions.get(driver_id)
            self.positions[driver_id] = {'row': dict(row), 'seen_at': time.time()}

        if socketio_instance:
            route_id = row.get('route_id')
            socketio_instance.emit('jeepney_update', row, to=self._rooms(route_id), namespace=LIVE_NAMESPACE)
            previous_route = previous['row'].get('route_id') if previous else None
            if previous_route is not None and previous_route != route_id:
                # The old route's subscribers lose sight of this jeepney
                socketio_instance.emit('jeepney_removed', {'driver_id': driver_id},
                                       to=route_room(previous_route), namespace=LIVE_NAMESPACE)
        return True

    def broadcast_removal(self, driver_id, socketio_instance=None) -> None:
        with self._lock:
            entry = self.positions.pop(driver_id, None)

        if socketio_instance:
            route_id = entry['row'].get('route_id') if entry else None
            socketio_instance.emit('jeepney_removed', {'driver_id': driver_id},
                                   to=self._rooms(route_id), namespace=LIVE_NAMESPACE)

    def cleanup_stale(self, stale_seconds: float, socketio_instance=None) -> int:
        """
        Drop jeepneys that have not reported within ``stale_seconds``.

        Returns:
            Number of jeepneys removed
        """
        cutoff = time.time() - stale_seconds
        with self._lock:
            stale = [d for d, entry in self.positions.items() if entry['seen_at'] < cutoff]

        for driver_id in stale:
            self.broadcast_removal(driver_id, socketio_instance)
        return len(stale)

    def snapshot(self, route_id=None) -> list:
        with self._lock:
            rows = [entry['row'] for entry in self.positions.values()]
        if route_id is not None:
            rows = [row for row in rows if row.get('route_id') == route_id]
        return rows

    def clear(self) -> None:
        with self._lock:
            self.clients.clear()
            self.positions.clear()
            self._recent_fixes.clear()

    def get_stats(self) -> dict:
        with self._lock:
            return {
                'connected_clients': len(self.clients),
                'tracked_jeepneys': len(self.positions),
            }


# Global instance
live_feed = LiveFeed()
