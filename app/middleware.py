"""Middleware for authentication and role checks."""
from functools import wraps
from flask import session, g, jsonify, current_app
from app.database import get_session
from app.models import AppUser, UserRole


def load_user():
    """
    Load current user into g (Flask's per-request global).

    Called before each request. Sets g.user and g.user_role if the session
    points to an active user.
    """
    g.user = None
    g.user_role = None

    try:
        user_id = session.get('user_id')
        if user_id:
            user = get_session().query(AppUser).filter_by(id=user_id, active=True).first()
            if user:
                g.user = user
                g.user_role = user.role
            else:
                # Deactivated or deleted user: drop the stale session
                session.pop('user_id', None)
    except Exception as e:
        current_app.logger.error(f"Error in load_user: {e}")


def require_login(f):
    """Decorator: require a logged-in user; JSON 401 otherwise."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return jsonify({'status': 'error', 'message': 'Du måste logga in.'}), 401
        return f(*args, **kwargs)
    return decorated_function


ROLE_HIERARCHY = {
    UserRole.ADMIN.value: 3,
    UserRole.SUPERVISOR.value: 2,
    UserRole.TECHNICIAN.value: 1,
}


def require_role(min_role=UserRole.TECHNICIAN.value):
    """
    Decorator: require a minimum role.

    Roles hierarchy: ADMIN > ARBETSLEDARE > TEKNIKER

    Must be used AFTER require_login.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_level = ROLE_HIERARCHY.get(g.get('user_role'), 0)
            if user_level < ROLE_HIERARCHY.get(min_role, 1):
                return jsonify({'status': 'error', 'message': 'Behörighet saknas.'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator
