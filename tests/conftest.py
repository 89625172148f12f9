"""
Shared fixtures: an app bound to in-memory SQLite, user factories and
logged-in test clients.
"""

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from models import db, User
from tests.utils import DEFAULT_TEST_PASSWORD, login


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SECRET_KEY': 'test-secret',
        'DEFAULT_PASSWORD': '12345',
    })
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(username, password=DEFAULT_TEST_PASSWORD, is_admin=False,
                   must_change_password=False, full_name=None):
        with app.app_context():
            user = User(
                username=username.lower(),
                email=f'{username.lower()}@example.com',
                password_hash=generate_password_hash(password),
                full_name=full_name or username.title(),
                is_admin=is_admin,
                must_change_password=must_change_password,
            )
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make_user


@pytest.fixture
def user_client(app, make_user):
    """Create a user and return a test client already logged in as them."""
    def _user_client(username, password=DEFAULT_TEST_PASSWORD, **kwargs):
        make_user(username, password=password, **kwargs)
        c = app.test_client()
        resp = login(c, username, password)
        assert resp.status_code == 200
        return c
    return _user_client


@pytest.fixture
def admin_client(app):
    """The bootstrap admin, logged in with its password already rotated."""
    c = app.test_client()
    assert login(c, 'admin', '12345').status_code == 200
    resp = c.put('/api/auth/force-password-change', json={'newPassword': 'adminpass'})
    assert resp.status_code == 200
    return c
