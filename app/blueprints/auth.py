"""
Authentication blueprint.
JSON login, logout and session info for the order form client.
"""

from flask import Blueprint, request, session, g, jsonify
from flask_wtf.csrf import generate_csrf
from app.database import get_session
from app.models import AppUser
from app.middleware import require_login
import logging
from app.exceptions import BusinessLogicError

logger = logging.getLogger(__name__)


auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


def serialize_user(user: AppUser) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'first_name': user.first_name,
        'last_name': user.last_name,
        'full_name': user.full_name,
        'email': user.email,
        'role': user.role,
    }


@auth_bp.route('/login', methods=['POST'])
def login():
    """Validate username + password and start a session."""
    data = request.get_json(silent=True) or request.form
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''

    if not username or not password:
        raise BusinessLogicError('Användarnamn och lösenord krävs.')

    user = get_session().query(AppUser).filter_by(username=username).first()
    if not user or not user.active or not user.check_password(password):
        logger.warning(f"Failed login for username={username!r}")
        return jsonify({'status': 'error', 'message': 'Felaktigt användarnamn eller lösenord.'}), 401

    session.clear()
    session['user_id'] = user.id
    session.permanent = True
    logger.info(f"User logged in: id={user.id}")

    return jsonify({'status': 'ok', 'user': serialize_user(user), 'csrf_token': generate_csrf()})


@auth_bp.route('/logout', methods=['POST'])
@require_login
def logout():
    session.clear()
    return jsonify({'status': 'ok'})


@auth_bp.route('/session', methods=['GET'])
def current_session():
    """Current user (or null) and a fresh CSRF token for mutating calls."""
    user = g.get('user')
    return jsonify({
        'authenticated': user is not None,
        'user': serialize_user(user) if user else None,
        'csrf_token': generate_csrf(),
    })
