"""
Supabase access with the service role key.

Every table read/write the server performs goes through this module so that
errors are logged once and surfaced as ``SupabaseRequestError``.
"""
from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, List, Optional

from supabase import Client, ClientOptions, create_client

from larga.errors import SupabaseNotConfigured, SupabaseRequestError

JEEPNEY_COLUMNS = 'driver_id, route_id, lat, lng, speed, heading, updated_at'
ROUTE_COLUMNS = 'route_id, name, color, origin_terminal_id, destination_terminal_id'
TERMINAL_COLUMNS = 'terminal_id, name, lat, lng'
PROFILE_COLUMNS = 'id, email, username, role, is_active, is_verified'


def serialize_user(user) -> dict:
    """Convert a supabase-auth ``User`` model into a JSON-ready dict."""
    if isinstance(user, dict):
        return user
    return user.model_dump(mode='json')


class SupabaseService:
    """Lazily-connected Supabase client wrapper."""

    def __init__(self):
        self._url = ''
        self._key = ''
        self._client: Optional[Client] = None
        self._lock = threading.Lock()

    def init_app(self, config) -> None:
        """Read credentials from a Flask config mapping."""
        self._url = config.get('SUPABASE_URL') or ''
        self._key = config.get('SUPABASE_SERVICE_ROLE_KEY') or ''
        with self._lock:
            self._client = None

    def is_configured(self) -> bool:
        return bool(self._url and self._key)

    @property
    def client(self) -> Client:
        if self._client is not None:
            return self._client
        if not self.is_configured():
            raise SupabaseNotConfigured()
        with self._lock:
            if self._client is None:
                self._client = create_client(
                    self._url,
                    self._key,
                    options=ClientOptions(auto_refresh_token=False, persist_session=False),
                )
        return self._client

    def _execute(self, action: str, query) -> list:
        try:
            response = query.execute()
        except Exception as exc:
            logging.error(f"[Supabase] Failed to {action}: {exc}")
            raise SupabaseRequestError(f'Failed to {action}') from exc
        data = response.data
        if data is None:
            return []
        return data if isinstance(data, list) else [data]

    # Auth admin -------------------------------------------------------

    def list_users(self, page: int = 1, per_page: int = 50) -> List[dict]:
        try:
            users = self.client.auth.admin.list_users(page=page, per_page=per_page)
        except SupabaseNotConfigured:
            raise
        except Exception as exc:
            logging.error(f"[Admin] listUsers error: {exc}")
            raise SupabaseRequestError('Failed to list users') from exc
        return [serialize_user(user) for user in users or []]

    def get_user(self, user_id: str) -> Optional[dict]:
        try:
            response = self.client.auth.admin.get_user_by_id(user_id)
        except SupabaseNotConfigured:
            raise
        except Exception as exc:
            if getattr(exc, 'status', None) == 404:
                return None
            logging.error(f"[Admin] getUserById error for '{user_id}': {exc}")
            raise SupabaseRequestError('Failed to load user') from exc
        if response is None or response.user is None:
            return None
        return serialize_user(response.user)

    def get_user_for_token(self, access_token: str) -> Optional[dict]:
        """Resolve a browser access token (JWT) to its auth user, or None if invalid."""
        try:
            response = self.client.auth.get_user(access_token)
        except SupabaseNotConfigured:
            raise
        except Exception as exc:
            logging.warning(f"[Auth] Access token rejected: {exc}")
            return None
        if response is None or response.user is None:
            return None
        return serialize_user(response.user)

    # Profiles ---------------------------------------------------------

    def get_profile(self, user_id: str) -> Optional[dict]:
        rows = self._execute(
            'load profile',
            self.client.table('profiles').select(PROFILE_COLUMNS).eq('id', user_id).limit(1),
        )
        return rows[0] if rows else None

    def list_profiles(self) -> List[dict]:
        return self._execute(
            'load profiles',
            self.client.table('profiles').select(PROFILE_COLUMNS).order('created_at'),
        )

    # Jeepney locations ------------------------------------------------

    def list_jeepney_locations(self, route_id=None) -> List[dict]:
        query = self.client.table('jeepney_locations').select(JEEPNEY_COLUMNS)
        if route_id is not None:
            query = query.eq('route_id', route_id)
        return self._execute('load jeepney locations', query.order('updated_at', desc=True))

    def upsert_jeepney_location(self, row: dict) -> Optional[dict]:
        rows = self._execute(
            'save driver location',
            self.client.table('jeepney_locations').upsert(row),
        )
        return rows[0] if rows else None

    def delete_jeepney_location(self, driver_id) -> None:
        self._execute(
            'delete driver location',
            self.client.table('jeepney_locations').delete().eq('driver_id', driver_id),
        )

    # Drivers / commuters ----------------------------------------------

    def get_drivers(self, driver_ids: Iterable) -> Dict:
        ids = list(dict.fromkeys(driver_ids))
        if not ids:
            return {}
        rows = self._execute(
            'load drivers',
            self.client.table('drivers').select('driver_id, plate_number').in_('driver_id', ids),
        )
        return {row['driver_id']: row for row in rows}

    def list_commuters_on_route(self, route_id, since_iso: str) -> List[dict]:
        return self._execute(
            'load commuter locations',
            self.client.table('commuter_locations')
            .select('commuter_id, lat, lng, updated_at')
            .eq('route_id', route_id)
            .gte('updated_at', since_iso),
        )

    # Routes -----------------------------------------------------------

    def list_routes(self) -> List[dict]:
        return self._execute(
            'load routes',
            self.client.table('routes').select(ROUTE_COLUMNS).order('route_id'),
        )

    def list_terminals(self, terminal_ids: Iterable) -> List[dict]:
        ids = list(dict.fromkeys(terminal_ids))
        if not ids:
            return []
        return self._execute(
            'load jeepney terminals',
            self.client.table('jeepney_terminals').select(TERMINAL_COLUMNS).in_('terminal_id', ids),
        )


supabase_service = SupabaseService()
