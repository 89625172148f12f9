"""
Admin user management.
"""

from app import create_app
from ledger.accounts import ensure_admin_account
from models import db, Creditor, CreditorItem, Payment, User
from tests.utils import login, sample_items


def _create(admin_client, **overrides):
    payload = {
        'username': 'Kofi',
        'email': 'Kofi@Example.com',
        'full_name': 'Kofi Mensah',
        'phone': '+233 20',
    }
    payload.update(overrides)
    return admin_client.post('/api/admin/users', json=payload)


def test_list_users_includes_bootstrap_admin(admin_client):
    users = admin_client.get('/api/admin/users').get_json()
    assert [u['username'] for u in users] == ['admin']
    assert users[0]['is_admin'] is True
    assert 'password_hash' not in users[0]


def test_created_user_is_lowercased_and_must_rotate(app, admin_client):
    resp = _create(admin_client)
    assert resp.status_code == 200
    new_id = resp.get_json()['id']

    users = {u['id']: u for u in admin_client.get('/api/admin/users').get_json()}
    assert users[new_id]['username'] == 'kofi'
    assert users[new_id]['email'] == 'kofi@example.com'
    assert users[new_id]['must_change_password'] is True

    c = app.test_client()
    data = login(c, 'kofi', '12345').get_json()
    assert data['redirect'] == '/change-password'


def test_created_user_with_explicit_password(app, admin_client):
    _create(admin_client, password='chosen-pass')
    c = app.test_client()
    assert login(c, 'kofi', '12345').status_code == 401
    assert login(c, 'kofi', 'chosen-pass').status_code == 200


def test_duplicate_username_or_email_conflicts(admin_client):
    _create(admin_client)
    resp = _create(admin_client, email='other@example.com', username='KOFI')
    assert resp.status_code == 409
    resp = _create(admin_client, username='kofi2', email='kofi@example.com')
    assert resp.status_code == 409


def test_create_user_requires_fields(admin_client):
    resp = admin_client.post('/api/admin/users', json={'username': 'x'})
    assert resp.status_code == 400


def test_update_user(admin_client):
    new_id = _create(admin_client).get_json()['id']
    resp = admin_client.put(f'/api/admin/users/{new_id}', json={
        'full_name': 'Kofi A. Mensah',
        'email': 'KOFI.M@example.com',
        'phone': '',
        'address': 'Accra',
        'is_admin': True,
    })
    assert resp.get_json() == {'success': True}
    user = {u['id']: u for u in admin_client.get('/api/admin/users').get_json()}[new_id]
    assert user['full_name'] == 'Kofi A. Mensah'
    assert user['email'] == 'kofi.m@example.com'
    assert user['address'] == 'Accra'
    assert user['is_admin'] is True


def test_update_email_collision_conflicts(admin_client):
    _create(admin_client)
    other_id = _create(admin_client, username='ama', email='ama@example.com').get_json()['id']
    resp = admin_client.put(f'/api/admin/users/{other_id}', json={
        'full_name': 'Ama Owusu',
        'email': 'KOFI@example.com',
    })
    assert resp.status_code == 409
    assert resp.get_json()['success'] is False


def test_admin_cannot_remove_own_admin_flag(app, admin_client):
    with app.app_context():
        admin_id = User.query.filter_by(username='admin').first().id
    resp = admin_client.put(f'/api/admin/users/{admin_id}', json={
        'full_name': 'Administrator',
        'email': 'admin@ghouenzen.com',
    })
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Cannot remove your own admin rights'
    with app.app_context():
        assert db.session.get(User, admin_id).is_admin is True

    # keeping the flag is still allowed
    resp = admin_client.put(f'/api/admin/users/{admin_id}', json={
        'full_name': 'Site Admin',
        'email': 'admin@ghouenzen.com',
        'is_admin': True,
    })
    assert resp.get_json() == {'success': True}


def test_update_unknown_user_is_not_found(admin_client):
    resp = admin_client.put('/api/admin/users/999', json={'full_name': 'X', 'email': 'x@example.com'})
    assert resp.status_code == 404
    assert resp.get_json()['error'] == 'User not found'


def test_reset_password_forces_rotation_on_next_login(app, admin_client, user_client):
    c = user_client('amina', password='amina-pass')
    with app.app_context():
        amina_id = User.query.filter_by(username='amina').first().id

    resp = admin_client.put(f'/api/admin/users/{amina_id}/reset-password')
    assert resp.get_json() == {'success': True}

    # the live session sees the flag on its next request
    assert c.get('/api/auth/status').get_json()['mustChangePassword'] is True
    assert c.get('/api/creditors').status_code == 403

    fresh = app.test_client()
    assert login(fresh, 'amina', 'amina-pass').status_code == 401
    data = login(fresh, 'amina', '12345').get_json()
    assert data['user']['must_change_password'] is True
    assert data['redirect'] == '/change-password'


def test_reset_password_unknown_user(admin_client):
    assert admin_client.put('/api/admin/users/999/reset-password').status_code == 404


def test_admin_cannot_delete_self(app, admin_client):
    with app.app_context():
        admin_id = User.query.filter_by(username='admin').first().id
    resp = admin_client.delete(f'/api/admin/users/{admin_id}')
    assert resp.status_code == 400
    assert resp.get_json()['error'] == 'Cannot delete yourself'


def test_delete_user_cascades_their_records(app, admin_client, user_client):
    c = user_client('amina')
    c.post('/api/creditors', json={'full_name': 'Bank', 'items': sample_items()})
    c.post('/api/payments', json={'type': 'paid', 'amount': 100})
    with app.app_context():
        amina_id = User.query.filter_by(username='amina').first().id

    assert admin_client.delete(f'/api/admin/users/{amina_id}').get_json() == {'success': True}
    with app.app_context():
        assert db.session.get(User, amina_id) is None
        assert Creditor.query.count() == 0
        assert CreditorItem.query.count() == 0
        assert Payment.query.count() == 0


def test_delete_unknown_user_is_not_found(admin_client):
    assert admin_client.delete('/api/admin/users/999').status_code == 404


def test_bootstrap_forces_rotation_while_admin_keeps_default_password(app, admin_client):
    admin_client.put('/api/auth/password', json={'currentPassword': 'adminpass', 'newPassword': '12345'})
    with app.app_context():
        assert User.query.filter_by(username='admin').first().must_change_password is False
        ensure_admin_account('12345')
        assert User.query.filter_by(username='admin').first().must_change_password is True


def test_bootstrap_leaves_rotated_admin_alone(app, admin_client):
    with app.app_context():
        ensure_admin_account('12345')
        assert User.query.filter_by(username='admin').count() == 1
        assert User.query.filter_by(username='admin').first().must_change_password is False


def test_restart_restores_admin_rights_to_demoted_admin(tmp_path):
    config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{tmp_path / "ledger.db"}',
        'SECRET_KEY': 'test-secret',
        'DEFAULT_PASSWORD': '12345',
    }
    first = create_app(config)
    c = first.test_client()
    assert login(c, 'admin', '12345').status_code == 200
    c.put('/api/auth/force-password-change', json={'newPassword': 'adminpass'})
    with first.app_context():
        User.query.filter_by(username='admin').first().is_admin = False
        db.session.commit()
        db.session.remove()
        db.engine.dispose()

    second = create_app(config)
    with second.app_context():
        admins = User.query.filter_by(username='admin').all()
        assert len(admins) == 1
        assert admins[0].is_admin is True
        assert admins[0].must_change_password is True
        db.session.remove()
        db.engine.dispose()

    c = second.test_client()
    data = login(c, 'admin', 'adminpass').get_json()
    assert data['redirect'] == '/change-password'
