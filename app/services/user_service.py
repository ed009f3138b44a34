"""User service: staff accounts, roles and deactivation."""
import logging
from typing import Any, List, Mapping

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.models import AppUser, UserRole
from app.exceptions import BusinessLogicError, ConflictError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
PROFILE_FIELDS = ('first_name', 'last_name', 'email', 'phone')


def _clean(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_role(value) -> str:
    try:
        return UserRole(str(value).strip().upper()).value
    except ValueError:
        raise BusinessLogicError(f'Ogiltig roll: {value}')


def _is_admin(actor: AppUser) -> bool:
    return actor.role == UserRole.ADMIN.value


def _is_supervisor(actor: AppUser) -> bool:
    return actor.role == UserRole.SUPERVISOR.value


def _set_password(user: AppUser, password) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise BusinessLogicError(f'Lösenordet måste vara minst {MIN_PASSWORD_LENGTH} tecken.')
    user.set_password(password)


def _ensure_unique(session: Session, user: AppUser) -> None:
    with session.no_autoflush:
        query = session.query(AppUser)
        if user.id is not None:
            query = query.filter(AppUser.id != user.id)
        if query.filter(AppUser.username == user.username).first():
            raise ConflictError('Användarnamnet används redan.')
        if user.email and query.filter(AppUser.email == user.email).first():
            raise ConflictError('E-postadressen används redan.')


def get_user(session: Session, user_id: int) -> AppUser:
    user = session.query(AppUser).filter(AppUser.id == user_id).first()
    if not user:
        raise NotFoundError('Användaren hittades inte.')
    return user


def list_users(session: Session, search: str = '', include_inactive: bool = False) -> List[AppUser]:
    """Staff ordered by first name; inactive users only on request."""
    query = session.query(AppUser)
    if not include_inactive:
        query = query.filter(AppUser.active.is_(True))
    if search:
        pattern = f'%{search}%'
        query = query.filter(
            or_(
                AppUser.first_name.ilike(pattern),
                AppUser.last_name.ilike(pattern),
                AppUser.email.ilike(pattern),
                AppUser.username.ilike(pattern),
            )
        )
    return query.order_by(AppUser.first_name.asc(), AppUser.id.asc()).all()


def create_user(session: Session, data: Mapping[str, Any], actor: AppUser) -> AppUser:
    """
    Create a staff user.

    Supervisors may only create technicians; admins may create any role.
    """
    try:
        role = _parse_role(data.get('role') or UserRole.TECHNICIAN.value)
        if not _is_admin(actor) and role != UserRole.TECHNICIAN.value:
            raise UnauthorizedError('Arbetsledare kan bara skapa tekniker.')

        user = AppUser(
            username=_clean(data.get('username')),
            first_name=_clean(data.get('first_name')),
            last_name=_clean(data.get('last_name')),
            email=_clean(data.get('email')),
            phone=_clean(data.get('phone')),
            role=role,
            active=True,
        )
        if not (user.username and user.first_name and user.last_name):
            raise BusinessLogicError('Användarnamn, förnamn och efternamn är obligatoriska.')
        _set_password(user, data.get('password'))
        _ensure_unique(session, user)

        session.add(user)
        session.commit()
        logger.info(f"User created: id={user.id} role={user.role} by={actor.id}")
        return user
    except Exception:
        session.rollback()
        raise


def update_user(session: Session, user_id: int, data: Mapping[str, Any], actor: AppUser) -> AppUser:
    """
    Update a staff user.

    - Everyone may edit their own profile and password
    - Supervisors may also edit technicians, and never grant ADMIN
    - Only admins change roles of non-technicians and the active flag
    """
    try:
        user = get_user(session, user_id)
        is_self = user.id == actor.id
        manages_user = _is_admin(actor) or (_is_supervisor(actor) and user.role == UserRole.TECHNICIAN.value)
        if not (is_self or manages_user):
            raise UnauthorizedError('Behörighet saknas för att ändra denna användare.')

        for field in PROFILE_FIELDS:
            if field in data:
                setattr(user, field, _clean(data.get(field)))
        if not (user.first_name and user.last_name):
            raise BusinessLogicError('Förnamn och efternamn är obligatoriska.')

        if 'username' in data:
            user.username = _clean(data.get('username'))
            if not user.username:
                raise BusinessLogicError('Användarnamn är obligatoriskt.')
        if data.get('password'):
            _set_password(user, data.get('password'))

        if 'role' in data:
            role = _parse_role(data.get('role'))
            if role != user.role:
                if not manages_user or is_self:
                    raise UnauthorizedError('Du kan inte ändra din egen roll.' if is_self else 'Behörighet saknas.')
                if not _is_admin(actor) and role == UserRole.ADMIN.value:
                    raise UnauthorizedError('Arbetsledare kan inte göra någon till administratör.')
                user.role = role

        if 'active' in data and bool(data.get('active')) != user.active:
            if not _is_admin(actor):
                raise UnauthorizedError('Endast administratörer kan aktivera eller inaktivera användare.')
            if is_self:
                raise BusinessLogicError('Du kan inte inaktivera ditt eget konto.')
            user.active = bool(data.get('active'))

        _ensure_unique(session, user)
        session.commit()
        logger.info(f"User updated: id={user.id} by={actor.id}")
        return user
    except Exception:
        session.rollback()
        raise


def deactivate_user(session: Session, user_id: int, actor: AppUser) -> AppUser:
    """Deactivate a user; work orders keep their references."""
    try:
        user = get_user(session, user_id)
        if user.id == actor.id:
            raise BusinessLogicError('Du kan inte inaktivera ditt eget konto.')
        user.active = False
        session.commit()
        logger.info(f"User deactivated: id={user.id} by={actor.id}")
        return user
    except Exception:
        session.rollback()
        raise
