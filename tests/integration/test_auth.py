"""
Integration tests for authentication.
"""

from flask import session as flask_session


class TestLogin:
    """Test JSON login flow."""

    def test_login_success(self, client, user):
        with client:
            response = client.post('/auth/login', json={'username': 'admin', 'password': 'password123'})
            assert response.status_code == 200
            assert response.get_json()['user']['role'] == 'ADMIN'
            assert flask_session['user_id'] == user.id

    def test_login_wrong_password(self, client, user):
        response = client.post('/auth/login', json={'username': 'admin', 'password': 'fel'})
        assert response.status_code == 401

    def test_login_missing_fields(self, client):
        response = client.post('/auth/login', json={'username': 'admin'})
        assert response.status_code == 400

    def test_inactive_user_cannot_login(self, client, session, user):
        user.active = False
        session.commit()
        response = client.post('/auth/login', json={'username': 'admin', 'password': 'password123'})
        assert response.status_code == 401


class TestSession:

    def test_anonymous_session(self, client):
        data = client.get('/auth/session').get_json()
        assert data['authenticated'] is False
        assert data['user'] is None
        assert data['csrf_token']

    def test_authenticated_session(self, authenticated_client):
        data = authenticated_client.get('/auth/session').get_json()
        assert data['authenticated'] is True
        assert data['user']['username'] == 'admin'

    def test_logout(self, authenticated_client):
        assert authenticated_client.post('/auth/logout').status_code == 200
        assert authenticated_client.get('/work-orders/').status_code == 401
