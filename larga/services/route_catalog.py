"""
Route + terminal metadata cache backed by Supabase.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Dict, List, Optional

from larga.services.supabase_service import supabase_service


class RouteCatalog:
    """
    Thread-safe in-memory cache of routes and their terminals with periodic refresh.
    """

    def __init__(self, ttl: int = 300):
        self._routes: Dict = {}
        self._terminals: Dict = {}
        # Regular Lock for eventlet compatibility
        self._lock = threading.Lock()
        self._start_lock = threading.Lock()
        self._ttl = ttl
        self._expires_at = 0.0
        self._background_thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._last_error_log = 0.0

    def configure(self, ttl: int) -> None:
        self._ttl = ttl

    def start(self) -> None:
        """
        Warm the cache and start the periodic refresh thread.
        """
        with self._start_lock:
            if self._background_thread and self._background_thread.is_alive():
                return

            try:
                self.refresh()
            except Exception as e:
                logging.warning(f"[RouteCatalog] Initial refresh failed (will retry): {e}")

            self._stop_event.clear()
            self._background_thread = threading.Thread(
                target=self._refresh_loop, name="route-catalog-refresh", daemon=True
            )
            self._background_thread.start()

    def stop(self) -> None:
        """
        Stop the background refresh thread (used by tests/shutdown).
        """
        if not self._background_thread:
            return
        self._stop_event.set()
        self._background_thread.join(timeout=5)
        self._background_thread = None

    def refresh(self) -> None:
        """
        Reload every route and the terminals they reference.
        """
        routes = supabase_service.list_routes()
        terminal_ids = set()
        for route in routes:
            for key in ('origin_terminal_id', 'destination_terminal_id'):
                if route.get(key) is not None:
                    terminal_ids.add(route[key])

        terminals = supabase_service.list_terminals(terminal_ids) if terminal_ids else []
        new_terminals = {
            t['terminal_id']: t
            for t in terminals
            if isinstance(t.get('lat'), (int, float)) and isinstance(t.get('lng'), (int, float))
        }

        with self._lock:
            self._routes = {route['route_id']: route for route in routes}
            self._terminals = new_terminals
            self._expires_at = time.time() + self._ttl

        logging.info(f"[RouteCatalog] Loaded {len(routes)} routes, {len(new_terminals)} terminals")

    def invalidate(self) -> None:
        with self._lock:
            self._expires_at = 0.0

    def clear(self) -> None:
        """Forget every cached route (used by tests)."""
        with self._lock:
            self._routes = {}
            self._terminals = {}
            self._expires_at = 0.0

    def list_routes(self) -> List[dict]:
        """All routes, each with its origin/destination terminal attached."""
        self._ensure_fresh()
        with self._lock:
            routes = sorted(self._routes.values(), key=lambda r: str(r.get('name') or ''))
            return [self._with_terminals(route) for route in routes]

    def get_route(self, route_id) -> Optional[dict]:
        self._ensure_fresh()
        with self._lock:
            route = self._routes.get(route_id)
            return self._with_terminals(route) if route else None

    def route_name(self, route_id) -> Optional[str]:
        if route_id is None:
            return None
        route = self.get_route(route_id)
        if route and route.get('name'):
            return route['name']
        return f"Route {route_id}"

    def get_endpoints(self, route_id) -> Optional[dict]:
        """
        Origin and destination terminals of a route, or None if either is unknown.
        """
        route = self.get_route(route_id)
        if not route or not route.get('origin') or not route.get('destination'):
            return None
        return {'origin': route['origin'], 'dest': route['destination']}

    def get_polyline(self, route_id) -> Optional[list]:
        endpoints = self.get_endpoints(route_id)
        if not endpoints:
            return None
        origin, dest = endpoints['origin'], endpoints['dest']
        return [(origin['lat'], origin['lng']), (dest['lat'], dest['lng'])]

    # Internal helpers -------------------------------------------------

    def _refresh_loop(self) -> None:
        while not self._stop_event.wait(self._ttl):
            self._safe_refresh()

    def _safe_refresh(self) -> None:
        try:
            self.refresh()
        except Exception as exc:
            # Log at most once per 5 minutes
            if time.time() - self._last_error_log > 300:
                logging.warning(f"[RouteCatalog] Refresh failed -> {exc}")
                self._last_error_log = time.time()

    def _ensure_fresh(self) -> None:
        if self._expires_at >= time.time():
            return
        if self._routes:
            # Soft-expired: serve the old entries if the reload fails
            self._safe_refresh()
        else:
            self.refresh()

    def _with_terminals(self, route: dict) -> dict:
        entry = dict(route)
        entry['name'] = route.get('name') or f"Route {route['route_id']}"
        entry['origin'] = self._terminal(route.get('origin_terminal_id'), 'Origin terminal')
        entry['destination'] = self._terminal(route.get('destination_terminal_id'), 'Destination terminal')
        return entry

    def _terminal(self, terminal_id, default_name: str) -> Optional[dict]:
        terminal = self._terminals.get(terminal_id)
        if not terminal:
            return None
        return {
            'id': terminal_id,
            'name': terminal.get('name') or default_name,
            'lat': terminal['lat'],
            'lng': terminal['lng'],
        }


route_catalog = RouteCatalog()
