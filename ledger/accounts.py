"""
Account service: credential checks, password rotation, profiles and the
admin-facing user management operations.

All lookups of usernames and emails are case-insensitive; both are stored
lowercase.
"""

import logging
from datetime import datetime

from sqlalchemy import func, or_
from werkzeug.security import check_password_hash, generate_password_hash

from models import db, User
from ledger.errors import (
    Conflict,
    InvalidCredentials,
    InvalidCurrentPassword,
    NotFound,
    ValidationError,
    WeakPassword,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 5
ADMIN_USERNAME = 'admin'
ADMIN_EMAIL = 'admin@ghouenzen.com'


def landing_page(user):
    """Where a freshly authenticated user should be sent."""
    if user.must_change_password:
        return '/change-password'
    return '/admin' if user.is_admin else '/dashboard'


def check_password_strength(password):
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPassword()


def find_by_identifier(identifier):
    ident = identifier.strip().lower()
    return User.query.filter(
        or_(func.lower(User.username) == ident, func.lower(User.email) == ident)
    ).first()


def authenticate(identifier, password):
    user = find_by_identifier(identifier)
    if not user or not check_password_hash(user.password_hash, password):
        logger.info('Failed login attempt for %r', identifier)
        raise InvalidCredentials()
    user.last_login = datetime.utcnow()
    db.session.commit()
    logger.info('Login successful: %s', user.username)
    return user


def change_password(user, current_password, new_password):
    check_password_strength(new_password)
    if not check_password_hash(user.password_hash, current_password or ''):
        raise InvalidCurrentPassword()
    _set_password(user, new_password)


def force_change_password(user, new_password):
    """First-login rotation: no current password is asked for."""
    check_password_strength(new_password)
    _set_password(user, new_password)


def _set_password(user, new_password):
    user.password_hash = generate_password_hash(new_password)
    user.must_change_password = False
    db.session.commit()
    logger.info('Password changed for user %s', user.id)


def update_profile(user, data):
    user.full_name = data.full_name
    user.phone = data.phone or ''
    user.address = data.address or ''
    db.session.commit()
    return user


# ---------------------- Admin ----------------------

def list_users():
    return User.query.order_by(User.id).all()


def get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User')
    return user


def _ensure_unique(username=None, email=None, exclude_id=None):
    clauses = []
    if username is not None:
        clauses.append(func.lower(User.username) == username.lower())
    if email is not None:
        clauses.append(func.lower(User.email) == email.lower())
    q = User.query.filter(or_(*clauses))
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first():
        raise Conflict()


def create_user(data, default_password):
    """Accounts created by an admin always start with a pending password change."""
    username = data.username.strip().lower()
    email = data.email.strip().lower()
    full_name = data.full_name.strip()
    if not username or not email or not full_name:
        raise ValidationError('Username, email and full name are required')
    _ensure_unique(username=username, email=email)
    user = User(
        username=username,
        email=email,
        password_hash=generate_password_hash(data.password or default_password),
        full_name=full_name,
        phone=(data.phone or '').strip(),
        address=(data.address or '').strip(),
        is_admin=data.is_admin,
        must_change_password=True,
    )
    db.session.add(user)
    db.session.commit()
    logger.info('User created: %s (admin=%s)', user.username, user.is_admin)
    return user


def update_user(user_id, data, acting_user_id):
    user = get_user(user_id)
    if user.id == acting_user_id and user.is_admin and not data.is_admin:
        raise ValidationError('Cannot remove your own admin rights')
    _ensure_unique(email=data.email, exclude_id=user.id)
    user.full_name = data.full_name
    user.email = data.email.lower()
    user.phone = data.phone or ''
    user.address = data.address or ''
    user.is_admin = data.is_admin
    db.session.commit()
    logger.info('User updated: %s', user.username)
    return user


def delete_user(user_id, acting_user_id):
    if user_id == acting_user_id:
        raise ValidationError('Cannot delete yourself')
    user = get_user(user_id)
    db.session.delete(user)
    db.session.commit()
    logger.info('User deleted: %s', user_id)


def reset_password(user_id, default_password):
    user = get_user(user_id)
    user.password_hash = generate_password_hash(default_password)
    user.must_change_password = True
    db.session.commit()
    logger.info('Password reset for user %s', user_id)
    return user


def ensure_admin_account(default_password):
    """Create the bootstrap admin, or force it to rotate a password still at the default.

    With no admin left but an 'admin' row still present, that row is promoted
    back rather than inserted again.
    """
    if not User.query.filter_by(is_admin=True).first():
        existing = User.query.filter_by(username=ADMIN_USERNAME).first()
        if existing is not None:
            existing.is_admin = True
            existing.must_change_password = True
            db.session.commit()
            logger.warning('No admin found; restored admin rights to %s', ADMIN_USERNAME)
            return existing
        admin = User(
            username=ADMIN_USERNAME,
            email=ADMIN_EMAIL,
            password_hash=generate_password_hash(default_password),
            full_name='Administrator',
            is_admin=True,
            must_change_password=True,
        )
        db.session.add(admin)
        db.session.commit()
        logger.info('Admin account created (%s)', ADMIN_USERNAME)
        return admin

    admin = User.query.filter_by(username=ADMIN_USERNAME).first()
    if admin and not admin.must_change_password and check_password_hash(admin.password_hash, default_password):
        admin.must_change_password = True
        db.session.commit()
        logger.info('Admin must change password')
    return admin
