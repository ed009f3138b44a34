"""
User management blueprint.
Supervisors and admins manage staff; everyone can read the assignable technicians.
"""

from flask import Blueprint, request, jsonify, g
from app.database import get_session
from app.models import AppUser, UserRole
from app.services.user_service import (
    create_user,
    deactivate_user,
    get_user,
    list_users,
    update_user,
)
from app.middleware import require_login, require_role
from app.exceptions import UnauthorizedError

users_bp = Blueprint('users', __name__, url_prefix='/users')


def serialize_staff(user: AppUser) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'full_name': user.full_name,
        'email': user.email,
        'phone': user.phone,
        'role': user.role,
        'active': user.active,
        'created_at': user.created_at.isoformat() if user.created_at else None,
    }


@users_bp.route('/', methods=['GET'])
@require_login
@require_role(UserRole.SUPERVISOR.value)
def list_all():
    """List staff; ?include_inactive=1 also returns deactivated users."""
    users = list_users(
        get_session(),
        search=request.args.get('q', '').strip(),
        include_inactive=request.args.get('include_inactive', '').lower() in ('1', 'true'),
    )
    return jsonify({'users': [serialize_staff(u) for u in users]})


@users_bp.route('/assignable', methods=['GET'])
@require_login
def assignable():
    """Active staff that can be set as technician on a work order."""
    users = list_users(get_session(), search=request.args.get('q', '').strip())
    return jsonify({'users': [
        {'id': u.id, 'full_name': u.full_name, 'role': u.role} for u in users
    ]})


@users_bp.route('/<int:user_id>', methods=['GET'])
@require_login
def detail(user_id):
    """Supervisors and admins see anyone; technicians only themselves."""
    if g.user.role == UserRole.TECHNICIAN.value and g.user.id != user_id:
        raise UnauthorizedError('Behörighet saknas.')
    return jsonify(serialize_staff(get_user(get_session(), user_id)))


@users_bp.route('/', methods=['POST'])
@require_login
@require_role(UserRole.SUPERVISOR.value)
def create():
    user = create_user(get_session(), request.get_json(silent=True) or {}, g.user)
    return jsonify(serialize_staff(user)), 201


@users_bp.route('/<int:user_id>', methods=['PUT'])
@require_login
def update(user_id):
    user = update_user(get_session(), user_id, request.get_json(silent=True) or {}, g.user)
    return jsonify(serialize_staff(user))


@users_bp.route('/<int:user_id>', methods=['DELETE'])
@require_login
@require_role(UserRole.ADMIN.value)
def deactivate(user_id):
    """Deactivate a user (staff are never hard-deleted)."""
    user = deactivate_user(get_session(), user_id, g.user)
    return jsonify({'status': 'ok', 'id': user.id, 'active': user.active})
