import pytest

from conftest import login


def test_default_admin_login_sets_session_and_cookie(client):
    r = login(client, 'Admin@Example.com', 'admin')
    body = r.get_json()
    assert body['success'] is True
    assert body['user']['email'] == 'admin@example.com'
    assert body['user']['role'] == 'admin'
    assert any('userRole=admin' in c for c in r.headers.getlist('Set-Cookie'))

    me = client.get('/api/auth/me')
    assert me.status_code == 200
    assert me.get_json()['role'] == 'admin'


@pytest.mark.parametrize('payload,status,error', [
    ({'email': '', 'password': 'x', 'role': 'admin'}, 400, 'Email and password are required'),
    ({'email': 'a@b.c', 'password': 'x', 'role': 'owner'}, 400, 'Valid role (admin or moderator) is required'),
    ({'email': 'admin@example.com', 'password': 'wrong', 'role': 'admin'}, 401, 'Invalid email or password'),
    ({'email': 'admin@example.com', 'password': 'admin123', 'role': 'moderator'}, 401, 'Invalid email or password'),
    ({'email': 'stranger@example.com', 'password': 'admin123', 'role': 'admin'}, 401, 'Invalid email or password'),
    ({'email': 123, 'password': 'admin123', 'role': 'admin'}, 400, 'email must be a string'),
    ({'email': 'admin@example.com', 'password': ['admin123'], 'role': 'admin'}, 400, 'password must be a string'),
    ({'email': 'admin@example.com', 'password': 'admin123', 'role': ['admin']}, 400, 'role must be a string'),
])
def test_login_failures(client, payload, status, error):
    r = client.post('/api/auth/login', json=payload)
    assert r.status_code == status
    assert r.get_json()['error'] == error


def test_role_must_match_existing_account(client):
    login(client, 'moderator@example.com', 'moderator')
    r = client.post('/api/auth/login', json={
        'email': 'moderator@example.com', 'password': 'admin123', 'role': 'admin'
    })
    assert r.status_code == 401


def test_password_is_stored_hashed(client, container):
    login(client, 'admin@example.com', 'admin')
    user = container.user_repo.get_user('admin@example.com')
    assert user.password_hash != 'admin123'


def test_logout_clears_session(admin_client):
    r = admin_client.post('/api/auth/logout')
    assert r.status_code == 200
    assert admin_client.get('/api/auth/me').status_code == 401


def test_protected_routes_require_login(client):
    r = client.get('/api/orders')
    assert r.status_code == 401
    assert r.get_json() == {'error': 'Authentication required'}


@pytest.mark.parametrize('method,url', [
    ('delete', '/api/products/1'),
    ('post', '/api/batches'),
    ('delete', '/api/batches/1'),
    ('put', '/api/settings'),
    ('get', '/api/audit'),
])
def test_admin_only_routes(moderator_client, method, url):
    r = getattr(moderator_client, method)(url, json={})
    assert r.status_code == 403


def test_login_is_audited(admin_client, container):
    logs = container.audit_service.search_logs(query='admin@example.com')
    assert any(log['message'] == 'Login: admin@example.com' for log in logs)


def test_security_headers(client):
    r = client.get('/api/auth/me')
    assert r.headers['X-Frame-Options'] == 'DENY'
    assert r.headers['X-Content-Type-Options'] == 'nosniff'


def test_unknown_route_is_json(client):
    r = client.get('/api/nothing-here')
    assert r.status_code == 404
    assert 'error' in r.get_json()
