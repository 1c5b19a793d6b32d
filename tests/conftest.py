"""
Shared fixtures: an app wired for tests and an in-memory Supabase stand-in.
"""
from datetime import datetime, timedelta, timezone

import pytest

from larga import create_app, socketio
from larga.config import Config
from larga.errors import SupabaseRequestError
from larga.live_feed import live_feed
from larga.services.route_catalog import route_catalog
from larga.services.supabase_service import supabase_service
from larga.services.trip_tracker import trip_tracker

TEST_ADMIN_SECRET = 'admin-secret'

ORIGIN_TERMINAL = {'terminal_id': 10, 'name': 'Sta. Maria Terminal', 'lat': 14.8181, 'lng': 120.9573}
DEST_TERMINAL = {'terminal_id': 11, 'name': 'Angat Terminal', 'lat': 14.9286, 'lng': 121.0292}
ROUTE = {
    'route_id': 1,
    'name': 'Sta. Maria - Angat',
    'color': '#ff6600',
    'origin_terminal_id': 10,
    'destination_terminal_id': 11,
}


class TestingConfig(Config):
    __test__ = False

    TESTING = True
    SUPABASE_URL = 'https://example.supabase.co'
    SUPABASE_SERVICE_ROLE_KEY = 'service-role-key'
    ADMIN_SECRET = TEST_ADMIN_SECRET
    RECAPTCHA_SECRET_KEY = 'recaptcha-secret'
    REDIS_URL = ''
    CORS_ALLOWED_ORIGINS = '*'
    START_BACKGROUND_THREADS = False


def iso_ago(seconds):
    return (datetime.now(timezone.utc) - timedelta(seconds=seconds)).isoformat()


class FakeSupabase:
    """In-memory replacement for the SupabaseService table methods."""

    METHODS = (
        'list_users', 'get_user', 'get_user_for_token', 'get_profile', 'list_profiles',
        'list_jeepney_locations', 'upsert_jeepney_location', 'delete_jeepney_location',
        'get_drivers', 'list_commuters_on_route', 'list_routes', 'list_terminals',
    )

    def __init__(self):
        self.users = []
        self.tokens = {}
        self.profiles = {}
        self.jeepney_locations = []
        self.drivers = {}
        self.commuter_locations = []
        self.routes = []
        self.terminals = []
        self.upserts = []
        self.deleted = []
        self.failing = set()
        self.calls = []

    def _call(self, name, *args):
        self.calls.append((name, args))
        if name in self.failing:
            raise SupabaseRequestError(f'Failed to {name}')

    def list_users(self, page=1, per_page=50):
        self._call('list_users', page, per_page)
        start = (page - 1) * per_page
        return self.users[start:start + per_page]

    def get_user(self, user_id):
        self._call('get_user', user_id)
        return next((u for u in self.users if u['id'] == user_id), None)

    def get_user_for_token(self, token):
        self._call('get_user_for_token', token)
        return self.tokens.get(token)

    def get_profile(self, user_id):
        self._call('get_profile', user_id)
        return self.profiles.get(user_id)

    def list_profiles(self):
        self._call('list_profiles')
        return list(self.profiles.values())

    def list_jeepney_locations(self, route_id=None):
        self._call('list_jeepney_locations', route_id)
        rows = [r for r in self.jeepney_locations if route_id is None or r.get('route_id') == route_id]
        return sorted(rows, key=lambda r: r.get('updated_at') or '', reverse=True)

    def upsert_jeepney_location(self, row):
        self._call('upsert_jeepney_location', row)
        self.upserts.append(row)
        self.jeepney_locations = [
            r for r in self.jeepney_locations if r.get('driver_id') != row['driver_id']
        ] + [dict(row)]
        return dict(row)

    def delete_jeepney_location(self, driver_id):
        self._call('delete_jeepney_location', driver_id)
        self.deleted.append(driver_id)
        self.jeepney_locations = [r for r in self.jeepney_locations if r.get('driver_id') != driver_id]

    def get_drivers(self, ids):
        self._call('get_drivers', list(ids))
        return {d: self.drivers[d] for d in ids if d in self.drivers}

    def list_commuters_on_route(self, route_id, since_iso):
        self._call('list_commuters_on_route', route_id, since_iso)
        return [
            r for r in self.commuter_locations
            if r.get('route_id') == route_id and r.get('updated_at', '') >= since_iso
        ]

    def list_routes(self):
        self._call('list_routes')
        return list(self.routes)

    def list_terminals(self, ids):
        self._call('list_terminals', set(ids))
        return [t for t in self.terminals if t['terminal_id'] in ids]


@pytest.fixture(autouse=True)
def reset_state():
    trip_tracker.clear()
    live_feed.clear()
    route_catalog.clear()
    yield
    trip_tracker.clear()
    live_feed.clear()
    route_catalog.clear()


@pytest.fixture
def app():
    return create_app(TestingConfig)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_supabase(monkeypatch):
    fake = FakeSupabase()
    for name in FakeSupabase.METHODS:
        monkeypatch.setattr(supabase_service, name, getattr(fake, name))
    return fake


@pytest.fixture
def seeded_routes(fake_supabase):
    fake_supabase.routes = [dict(ROUTE)]
    fake_supabase.terminals = [dict(ORIGIN_TERMINAL), dict(DEST_TERMINAL)]
    return fake_supabase


@pytest.fixture
def admin_headers():
    return {'X-Admin-Secret': TEST_ADMIN_SECRET}


@pytest.fixture
def live_client(app, client):
    socket_client = socketio.test_client(app, namespace='/live', flask_test_client=client)
    yield socket_client
    if socket_client.is_connected('/live'):
        socket_client.disconnect(namespace='/live')
