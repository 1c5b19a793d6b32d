import pytest

from larga.live_feed import live_feed
from larga.services.trip_tracker import PHASE_NAVIGATING, PHASE_ROUTE_SELECTED, trip_tracker
from larga.utils import geo

ON_THE_ROAD = {'driver_id': 7, 'route_id': 1, 'lat': 14.85, 'lng': 120.99, 'speed': 8.0}


def test_location_requires_driver_id(client, fake_supabase):
    response = client.post('/api/driver/location', json={'lat': 14.8, 'lng': 120.9})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'driver_id is required'}
    assert fake_supabase.upserts == []


@pytest.mark.parametrize('body, message', [
    ({'driver_id': 7, 'lat': 'x', 'lng': 120.9}, 'lat and lng must be valid numbers'),
    ({'driver_id': 7, 'lat': 14.8, 'lng': 200}, 'lat and lng are out of range'),
])
def test_location_rejects_bad_coordinates(client, fake_supabase, body, message):
    response = client.post('/api/driver/location', json=body)
    assert response.status_code == 400
    assert response.get_json() == {'error': message}


def test_location_is_saved_and_broadcast(client, seeded_routes):
    response = client.post('/api/driver/location', json=ON_THE_ROAD)
    assert response.status_code == 200
    body = response.get_json()

    assert body['success'] is True
    saved = seeded_routes.upserts[0]
    assert saved['driver_id'] == 7
    assert saved['route_id'] == 1
    assert saved['speed'] == 8.0
    assert 'updated_at' in saved
    assert body['row']['driver_id'] == 7

    assert [row['driver_id'] for row in live_feed.snapshot()] == [7]

    guidance = body['guidance']
    assert guidance['leg'] == geo.LEG_TO_ORIGIN
    assert guidance['next_terminal'] == 'Sta. Maria Terminal'
    assert guidance['distance_m'] == pytest.approx(
        geo.distance_meters((14.85, 120.99), (14.8181, 120.9573))
    )
    assert trip_tracker.get_trip(7)['phase'] == PHASE_ROUTE_SELECTED


def test_location_without_route_has_no_guidance(client, fake_supabase):
    body = client.post('/api/driver/location', json={'driver_id': 8, 'lat': 14.8, 'lng': 120.9}).get_json()
    assert body['success'] is True
    assert body['guidance'] is None
    assert fake_supabase.upserts[0]['route_id'] is None


def test_close_fixes_are_throttled(client, seeded_routes):
    client.post('/api/driver/location', json=ON_THE_ROAD)
    nudged = dict(ON_THE_ROAD, lat=ON_THE_ROAD['lat'] + 0.00005)
    response = client.post('/api/driver/location', json=nudged)

    assert response.status_code == 200
    body = response.get_json()
    assert body['skipped'] is True
    assert body['guidance']['next_terminal'] == 'Sta. Maria Terminal'
    assert len(seeded_routes.upserts) == 1


def test_far_fix_is_not_throttled(client, seeded_routes):
    client.post('/api/driver/location', json=ON_THE_ROAD)
    moved = dict(ON_THE_ROAD, lat=ON_THE_ROAD['lat'] + 0.001)
    body = client.post('/api/driver/location', json=moved).get_json()
    assert 'skipped' not in body
    assert len(seeded_routes.upserts) == 2


def test_arrival_at_origin_switches_guidance(client, seeded_routes):
    at_origin = dict(ON_THE_ROAD, lat=14.8182, lng=120.9573)
    body = client.post('/api/driver/location', json=at_origin).get_json()
    assert body['guidance']['leg'] == geo.LEG_TO_DEST
    assert body['guidance']['next_terminal'] == 'Angat Terminal'

    # Driving away from the origin keeps heading to the destination
    later = dict(ON_THE_ROAD, lat=14.83, lng=120.96)
    body = client.post('/api/driver/location', json=later).get_json()
    assert body['guidance']['leg'] == geo.LEG_TO_DEST


def test_save_failure_is_reported(client, seeded_routes):
    seeded_routes.failing.add('upsert_jeepney_location')
    response = client.post('/api/driver/location', json=ON_THE_ROAD)
    assert response.status_code == 500
    assert live_feed.snapshot() == []


def test_retry_after_failed_save_is_written(client, seeded_routes):
    seeded_routes.failing.add('upsert_jeepney_location')
    assert client.post('/api/driver/location', json=ON_THE_ROAD).status_code == 500

    seeded_routes.failing.clear()
    response = client.post('/api/driver/location', json=ON_THE_ROAD)
    assert response.status_code == 200
    body = response.get_json()
    assert 'skipped' not in body
    assert body['row']['driver_id'] == 7
    assert len(seeded_routes.upserts) == 1


def test_failed_saves_leave_no_driver_state(client, fake_supabase):
    fake_supabase.failing.add('upsert_jeepney_location')
    for driver_id in range(1000, 1050):
        response = client.post('/api/driver/location',
                               json={'driver_id': driver_id, 'route_id': 1, 'lat': 14.8, 'lng': 120.9})
        assert response.status_code == 500
    assert all(trip_tracker.get_trip(d) is None for d in range(1000, 1050))


def test_failed_save_keeps_started_trip(client, fake_supabase):
    client.post('/api/driver/trips', json={'driver_id': 7, 'route_id': 1})
    fake_supabase.failing.add('upsert_jeepney_location')
    client.post('/api/driver/location', json=ON_THE_ROAD)
    assert trip_tracker.get_trip(7)['phase'] == PHASE_NAVIGATING


def test_location_rejects_non_numeric_route(client, fake_supabase):
    response = client.post('/api/driver/location', json=dict(ON_THE_ROAD, route_id='abc'))
    assert response.status_code == 400
    assert response.get_json() == {'error': 'route_id must be an integer'}
    assert fake_supabase.upserts == []


def test_trip_lifecycle(client, seeded_routes):
    response = client.post('/api/driver/trips', json={'driver_id': 7, 'route_id': 1})
    assert response.status_code == 201
    trip = response.get_json()['trip']
    assert trip['phase'] == PHASE_NAVIGATING
    assert trip['leg'] == geo.LEG_TO_ORIGIN
    assert trip['started_at']

    client.post('/api/driver/location', json=ON_THE_ROAD)
    fetched = client.get('/api/driver/trips/7').get_json()['trip']
    assert fetched['route_id'] == 1
    assert fetched['last_sent'] == [14.85, 120.99]

    stopped = client.delete('/api/driver/trips/7')
    assert stopped.status_code == 200
    assert stopped.get_json()['trip']['driver_id'] == 7
    assert seeded_routes.deleted == [7]
    assert seeded_routes.jeepney_locations == []
    assert live_feed.snapshot() == []

    assert client.get('/api/driver/trips/7').status_code == 404


def test_start_trip_requires_ids(client):
    response = client.post('/api/driver/trips', json={'driver_id': 7})
    assert response.status_code == 400
    assert response.get_json() == {'error': 'driver_id and route_id are required'}


def test_stop_unknown_trip_still_clears_row(client, fake_supabase):
    response = client.delete('/api/driver/trips/42')
    assert response.status_code == 200
    assert response.get_json()['trip'] is None
    assert fake_supabase.deleted == [42]


def test_new_trip_resets_throttle(client, seeded_routes):
    client.post('/api/driver/location', json=ON_THE_ROAD)
    client.post('/api/driver/trips', json={'driver_id': 7, 'route_id': 1})
    body = client.post('/api/driver/location', json=ON_THE_ROAD).get_json()
    assert 'skipped' not in body
    assert len(seeded_routes.upserts) == 2
