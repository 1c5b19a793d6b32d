import pytest

from larga import create_app
from conftest import TestingConfig


@pytest.fixture
def users(fake_supabase):
    fake_supabase.users = [
        {'id': f'user-{i}', 'email': f'user{i}@example.com'} for i in range(1, 6)
    ]
    fake_supabase.profiles = {
        'user-1': {'id': 'user-1', 'role': 'admin', 'is_active': True, 'is_verified': True},
        'user-2': {'id': 'user-2', 'role': 'Driver', 'is_active': True, 'is_verified': True},
        'user-3': {'id': 'user-3', 'role': 'commuter', 'is_active': False, 'is_verified': False},
        'user-4': {'id': 'user-4', 'role': 'commuter', 'is_active': None, 'is_verified': None},
    }
    fake_supabase.tokens = {
        'admin-jwt': fake_supabase.users[0],
        'driver-jwt': fake_supabase.users[1],
    }
    return fake_supabase


def test_requires_credentials(client, users):
    response = client.get('/api/admin/users')
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized: invalid admin secret'}
    assert users.calls == []


def test_rejects_wrong_secret(client, users):
    response = client.get('/api/admin/users', headers={'X-Admin-Secret': 'guess'})
    assert response.status_code == 401


def test_missing_server_secret():
    class NoAdminConfig(TestingConfig):
        ADMIN_SECRET = ''

    client = create_app(NoAdminConfig).test_client()
    response = client.get('/api/admin/users', headers={'X-Admin-Secret': 'anything'})
    assert response.status_code == 500
    assert response.get_json() == {'error': 'ADMIN_SECRET not configured on server'}


def test_list_users(client, users, admin_headers):
    response = client.get('/api/admin/users?per_page=2&page=2', headers=admin_headers)
    assert response.status_code == 200
    body = response.get_json()
    assert body['page'] == 2
    assert body['per_page'] == 2
    assert [u['id'] for u in body['users']] == ['user-3', 'user-4']
    assert body['count'] == 2


def test_list_users_clamps_paging(client, users, admin_headers):
    body = client.get('/api/admin/users?per_page=5000&page=0', headers=admin_headers).get_json()
    assert body['per_page'] == 1000
    assert body['page'] == 1

    body = client.get('/api/admin/users?per_page=abc', headers=admin_headers).get_json()
    assert body['per_page'] == 50


def test_list_users_failure(client, users, admin_headers):
    users.failing.add('list_users')
    response = client.get('/api/admin/users', headers=admin_headers)
    assert response.status_code == 500
    assert 'error' in response.get_json()


def test_get_user(client, users, admin_headers):
    response = client.get('/api/admin/users/user-2', headers=admin_headers)
    assert response.status_code == 200
    assert response.get_json()['user']['email'] == 'user2@example.com'

    missing = client.get('/api/admin/users/nobody', headers=admin_headers)
    assert missing.status_code == 404
    assert missing.get_json() == {'error': 'User not found'}


def test_stats(client, users, admin_headers):
    body = client.get('/api/admin/stats', headers=admin_headers).get_json()
    assert body == {
        'total_users': 4,
        'active_users': 3,
        'verified_ids': 2,
        'pending_ids': 2,
        'by_role': {'admin': 1, 'driver': 1, 'commuter': 2},
    }


def test_bearer_token_of_admin(client, users):
    response = client.get('/api/admin/users', headers={'Authorization': 'Bearer admin-jwt'})
    assert response.status_code == 200
    assert response.get_json()['count'] == 5


def test_bearer_token_without_admin_role(client, users):
    response = client.get('/api/admin/users', headers={'Authorization': 'Bearer driver-jwt'})
    assert response.status_code == 403
    assert response.get_json() == {'error': 'Forbidden: admin role required'}


def test_invalid_bearer_token(client, users):
    response = client.get('/api/admin/stats', headers={'Authorization': 'Bearer expired'})
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized: invalid access token'}


def test_secret_header_wins_over_token(client, users):
    response = client.get(
        '/api/admin/users',
        headers={'Authorization': 'Bearer admin-jwt', 'X-Admin-Secret': 'wrong'},
    )
    assert response.status_code == 401
    assert response.get_json() == {'error': 'Unauthorized: invalid admin secret'}
