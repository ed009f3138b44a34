"""
Integration tests for staff user administration.
"""

import pytest

from app.exceptions import BusinessLogicError, ConflictError, UnauthorizedError
from app.models import AppUser, UserRole, WorkOrder
from app.services.user_service import create_user, deactivate_user, list_users, update_user
from app.services.work_order_service import create_work_order


@pytest.fixture
def supervisor(session):
    """Supervisor (arbetsledare) staff user."""
    user = AppUser(
        username='ledare',
        first_name='Lena',
        last_name='Ledare',
        role=UserRole.SUPERVISOR.value,
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture
def supervisor_client(client, supervisor):
    with client.session_transaction() as sess:
        sess['user_id'] = supervisor.id
    return client


def new_user_payload(**overrides):
    data = {
        'username': 'nisse',
        'password': 'hemligt1',
        'first_name': 'Nils',
        'last_name': 'Nilsson',
        'email': 'nils@example.se',
    }
    data.update(overrides)
    return data


class TestCreateUser:

    def test_admin_creates_any_role(self, session, user):
        created = create_user(session, new_user_payload(role='arbetsledare'), user)
        assert created.role == 'ARBETSLEDARE'
        assert created.active is True
        assert created.check_password('hemligt1')

    def test_defaults_to_technician(self, session, supervisor):
        created = create_user(session, new_user_payload(), supervisor)
        assert created.role == 'TEKNIKER'

    def test_supervisor_cannot_create_admin(self, session, supervisor):
        with pytest.raises(UnauthorizedError):
            create_user(session, new_user_payload(role='ADMIN'), supervisor)

    def test_duplicate_username(self, session, user):
        with pytest.raises(ConflictError):
            create_user(session, new_user_payload(username='admin'), user)

    @pytest.mark.parametrize('overrides', [
        {'password': 'kort'},
        {'first_name': ''},
        {'username': '  '},
        {'role': 'CHEF'},
    ])
    def test_invalid_payload(self, session, user, overrides):
        with pytest.raises(BusinessLogicError):
            create_user(session, new_user_payload(**overrides), user)


class TestUpdateUser:

    def test_technician_edits_own_profile(self, session, technician):
        updated = update_user(session, technician.id, {'phone': '070-111 22 33'}, technician)
        assert updated.phone == '070-111 22 33'

    def test_technician_cannot_change_own_role(self, session, technician):
        with pytest.raises(UnauthorizedError):
            update_user(session, technician.id, {'role': 'ADMIN'}, technician)

    def test_technician_cannot_edit_others(self, session, technician, user):
        with pytest.raises(UnauthorizedError):
            update_user(session, user.id, {'phone': '1'}, technician)

    def test_supervisor_promotes_technician(self, session, supervisor, technician):
        updated = update_user(session, technician.id, {'role': 'ARBETSLEDARE'}, supervisor)
        assert updated.role == 'ARBETSLEDARE'

    def test_supervisor_cannot_grant_admin(self, session, supervisor, technician):
        with pytest.raises(UnauthorizedError):
            update_user(session, technician.id, {'role': 'ADMIN'}, supervisor)

    def test_supervisor_cannot_edit_admin(self, session, supervisor, user):
        with pytest.raises(UnauthorizedError):
            update_user(session, user.id, {'last_name': 'X'}, supervisor)

    def test_only_admin_changes_active(self, session, supervisor, technician):
        with pytest.raises(UnauthorizedError):
            update_user(session, technician.id, {'active': False}, supervisor)

    def test_duplicate_email(self, session, user, technician):
        user.email = 'admin@example.se'
        session.commit()
        with pytest.raises(ConflictError):
            update_user(session, technician.id, {'email': 'admin@example.se'}, technician)

    def test_password_change(self, session, technician):
        update_user(session, technician.id, {'password': 'nyttlosen'}, technician)
        assert session.get(AppUser, technician.id).check_password('nyttlosen')


class TestDeactivateUser:

    def test_deactivated_user_hidden_from_default_list(self, session, user, technician):
        deactivate_user(session, technician.id, user)
        assert [u.username for u in list_users(session)] == ['admin']
        assert len(list_users(session, include_inactive=True)) == 2

    def test_cannot_deactivate_self(self, session, user):
        with pytest.raises(BusinessLogicError):
            deactivate_user(session, user.id, user)

    def test_work_orders_keep_technician(self, session, user, technician, customer, unit_item):
        order = create_work_order(session, {
            'customer_id': customer.id,
            'technician_id': technician.id,
            'lines': [{'catalog_item_id': unit_item.id}],
        }, user.id)
        deactivate_user(session, technician.id, user)
        assert session.get(WorkOrder, order.id).technician_id == technician.id


class TestUserEndpoints:
    """HTTP tests for /users."""

    def test_list_requires_supervisor(self, technician_client):
        assert technician_client.get('/users/').status_code == 403

    def test_list(self, authenticated_client, technician):
        data = authenticated_client.get('/users/').get_json()
        assert {u['username'] for u in data['users']} == {'admin', 'tekniker'}

    def test_assignable_open_to_technicians(self, technician_client, user):
        data = technician_client.get('/users/assignable').get_json()
        assert {u['full_name'] for u in data['users']} == {'Admin Användare', 'Test Tekniker'}

    def test_technician_sees_only_self(self, technician_client, technician, user):
        own_id, admin_id = technician.id, user.id
        assert technician_client.get(f'/users/{own_id}').status_code == 200
        assert technician_client.get(f'/users/{admin_id}').status_code == 403

    def test_created_user_can_be_assigned(self, supervisor_client, customer, unit_item):
        customer_id, item_id = customer.id, unit_item.id
        response = supervisor_client.post('/users/', json=new_user_payload())
        assert response.status_code == 201
        new_id = response.get_json()['id']
        assert 'password_hash' not in response.get_json()

        response = supervisor_client.post('/work-orders/', json={
            'customer_id': customer_id,
            'technician_id': new_id,
            'lines': [{'catalog_item_id': item_id}],
        })
        assert response.status_code == 201

    def test_supervisor_cannot_create_admin(self, supervisor_client):
        response = supervisor_client.post('/users/', json=new_user_payload(role='ADMIN'))
        assert response.status_code == 403

    def test_update(self, authenticated_client, technician):
        response = authenticated_client.put(f'/users/{technician.id}', json={'role': 'ARBETSLEDARE'})
        assert response.status_code == 200
        assert response.get_json()['role'] == 'ARBETSLEDARE'

    def test_deactivate_requires_admin(self, supervisor_client, technician):
        assert supervisor_client.delete(f'/users/{technician.id}').status_code == 403

    def test_deactivated_user_cannot_log_in(self, authenticated_client, technician):
        response = authenticated_client.delete(f'/users/{technician.id}')
        assert response.status_code == 200
        assert response.get_json()['active'] is False

        response = authenticated_client.post('/auth/login', json={
            'username': 'tekniker', 'password': 'password123',
        })
        assert response.status_code == 401
