import os
import logging
from datetime import timedelta
from functools import wraps

from dotenv import load_dotenv
from flask import Blueprint, Flask, current_app, render_template, request, redirect, url_for, session, jsonify
from sqlalchemy.exc import SQLAlchemyError

from models import db, User
from ledger import accounts, debts, payments
from ledger.errors import (
    Forbidden,
    LedgerError,
    PasswordChangeRequired,
    StoreError,
    Unauthorized,
)
from ledger.statements import generate_statement
from schemas import (
    ForcePasswordChangeRequest,
    LoginRequest,
    PartyIn,
    PasswordChangeRequest,
    PaymentIn,
    ProfileUpdate,
    UserCreate,
    UserUpdate,
    parse_body,
)

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')
pages = Blueprint('pages', __name__)


def create_app(test_config=None):
    app = Flask(__name__, template_folder='templates')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///debts.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SECRET_KEY'] = os.environ.get('SESSION_SECRET', 'dev-secret-key-change-me')
    app.config['ENVIRONMENT'] = os.environ.get('APP_ENV', 'development')
    app.config['DEFAULT_PASSWORD'] = os.environ.get('DEFAULT_PASSWORD', '12345')
    app.config['DB_POOL_SIZE'] = int(os.environ.get('DB_POOL_SIZE', 10))
    app.config['SESSION_COOKIE_NAME'] = 'sessionId'
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['SESSION_COOKIE_SECURE'] = app.config['ENVIRONMENT'] == 'production'
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=7)
    if test_config:
        app.config.update(test_config)

    if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
            'pool_size': app.config['DB_POOL_SIZE'],
            'pool_pre_ping': True,
        }

    db.init_app(app)
    app.register_blueprint(api)
    app.register_blueprint(pages)
    _register_error_handlers(app)
    app.before_request(_log_api_request)

    with app.app_context():
        db.create_all()
        accounts.ensure_admin_account(app.config['DEFAULT_PASSWORD'])
    logger.info('Database initialized (%s)', app.config['ENVIRONMENT'])
    return app


# ---------------------- Errors & Logging ----------------------

def _register_error_handlers(app):
    @app.errorhandler(LedgerError)
    def handle_ledger_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_store_error(error):
        db.session.rollback()
        logger.error('Store error on %s %s', request.method, request.path, exc_info=error)
        failure = StoreError()
        return jsonify(failure.to_dict()), failure.status_code


def _log_api_request():
    if request.path.startswith('/api/'):
        logger.debug('%s %s user=%s', request.method, request.path, session.get('user_id', 'none'))


# ---------------------- Auth Helpers ----------------------

def current_user():
    """The logged-in user, re-read from the store so flags are never stale."""
    uid = session.get('user_id')
    if not uid:
        return None
    user = db.session.get(User, uid)
    if user is None:
        session.clear()
        return None
    session['must_change_password'] = user.must_change_password
    session['is_admin'] = user.is_admin
    return user


def _is_api():
    return request.path.startswith('/api/')


def _gate(require_rotated=True, require_admin=False):
    """Return a redirect or raise for the first gate the current request fails."""
    user = current_user()
    if user is None:
        if _is_api():
            raise Unauthorized()
        return redirect(url_for('pages.login_page'))
    if require_rotated and user.must_change_password:
        if _is_api():
            raise PasswordChangeRequired()
        return redirect(url_for('pages.change_password_page'))
    if require_admin and not user.is_admin:
        if _is_api():
            raise Forbidden()
        return redirect(url_for('pages.dashboard'))
    return None


def session_required(view_func):
    """Authenticated, even while a password change is still pending."""
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        denied = _gate(require_rotated=False)
        if denied is not None:
            return denied
        return view_func(*args, **kwargs)
    return wrapped


def login_required(view_func):
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        denied = _gate()
        if denied is not None:
            return denied
        return view_func(*args, **kwargs)
    return wrapped


def admin_required(view_func):
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        denied = _gate(require_admin=True)
        if denied is not None:
            return denied
        return view_func(*args, **kwargs)
    return wrapped


def _uid():
    return session['user_id']


def app_default_password():
    return current_app.config['DEFAULT_PASSWORD']


# ---------------------- Routes: Auth ----------------------

@api.route('/auth/login', methods=['POST'])
def login():
    body = parse_body(LoginRequest)
    user = accounts.authenticate(body.username, body.password)
    session.clear()
    session.permanent = True
    session['user_id'] = user.id
    session['username'] = user.username
    session['is_admin'] = user.is_admin
    session['must_change_password'] = user.must_change_password
    return jsonify({
        'success': True,
        'user': {
            'id': user.id,
            'username': user.username,
            'full_name': user.full_name,
            'is_admin': user.is_admin,
            'must_change_password': user.must_change_password,
        },
        'redirect': accounts.landing_page(user),
    })


@api.route('/auth/status')
def auth_status():
    user = current_user()
    if user is None:
        return jsonify({'authenticated': False})
    return jsonify({
        'authenticated': True,
        'userId': user.id,
        'username': user.username,
        'fullName': user.full_name,
        'isAdmin': user.is_admin,
        'mustChangePassword': user.must_change_password,
    })


@api.route('/auth/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'success': True})


@api.route('/auth/profile')
@session_required
def get_profile():
    profile = current_user().to_dict()
    for key in ('created_at', 'last_login'):
        profile.pop(key)
    return jsonify(profile)


@api.route('/auth/profile', methods=['PUT'])
@login_required
def update_profile():
    body = parse_body(ProfileUpdate)
    accounts.update_profile(current_user(), body)
    return jsonify({'success': True})


@api.route('/auth/password', methods=['PUT'])
@session_required
def change_password():
    body = parse_body(PasswordChangeRequest)
    accounts.change_password(current_user(), body.current_password, body.new_password)
    session['must_change_password'] = False
    return jsonify({'success': True})


@api.route('/auth/force-password-change', methods=['PUT'])
@session_required
def force_password_change():
    body = parse_body(ForcePasswordChangeRequest)
    user = current_user()
    accounts.force_change_password(user, body.new_password)
    session['must_change_password'] = False
    return jsonify({'success': True, 'redirect': accounts.landing_page(user)})


# ---------------------- Routes: Admin ----------------------

@api.route('/admin/users')
@admin_required
def admin_list_users():
    return jsonify([u.to_dict() for u in accounts.list_users()])


@api.route('/admin/users', methods=['POST'])
@admin_required
def admin_create_user():
    body = parse_body(UserCreate)
    user = accounts.create_user(body, app_default_password())
    return jsonify({'success': True, 'id': user.id})


@api.route('/admin/users/<int:user_id>', methods=['PUT'])
@admin_required
def admin_update_user(user_id):
    body = parse_body(UserUpdate)
    accounts.update_user(user_id, body, _uid())
    return jsonify({'success': True})


@api.route('/admin/users/<int:user_id>/reset-password', methods=['PUT'])
@admin_required
def admin_reset_password(user_id):
    accounts.reset_password(user_id, app_default_password())
    return jsonify({'success': True})


@api.route('/admin/users/<int:user_id>', methods=['DELETE'])
@admin_required
def admin_delete_user(user_id):
    accounts.delete_user(user_id, _uid())
    return jsonify({'success': True})


# ---------------------- Routes: Creditors & Debtors ----------------------

def _list(kind):
    return jsonify([p.to_dict() for p in debts.list_parties(kind, _uid())])


def _create(kind):
    party = debts.create_party(kind, _uid(), parse_body(PartyIn))
    return jsonify({'success': True, 'id': party.id})


def _update(kind, party_id):
    debts.update_party(kind, party_id, _uid(), parse_body(PartyIn))
    return jsonify({'success': True})


def _delete(kind, party_id):
    debts.delete_party(kind, party_id, _uid())
    return jsonify({'success': True})


def _statement(kind, party_id):
    party = debts.get_party(kind, party_id, _uid())
    return generate_statement(party, kind, current_user().full_name)


@api.route('/creditors')
@login_required
def list_creditors():
    return _list('creditor')


@api.route('/creditors', methods=['POST'])
@login_required
def create_creditor():
    return _create('creditor')


@api.route('/creditors/<int:party_id>', methods=['PUT'])
@login_required
def update_creditor(party_id):
    return _update('creditor', party_id)


@api.route('/creditors/<int:party_id>', methods=['DELETE'])
@login_required
def delete_creditor(party_id):
    return _delete('creditor', party_id)


@api.route('/creditors/<int:party_id>/statement')
@login_required
def creditor_statement(party_id):
    return jsonify(_statement('creditor', party_id).to_dict())


@api.route('/debtors')
@login_required
def list_debtors():
    return _list('debtor')


@api.route('/debtors', methods=['POST'])
@login_required
def create_debtor():
    return _create('debtor')


@api.route('/debtors/<int:party_id>', methods=['PUT'])
@login_required
def update_debtor(party_id):
    return _update('debtor', party_id)


@api.route('/debtors/<int:party_id>', methods=['DELETE'])
@login_required
def delete_debtor(party_id):
    return _delete('debtor', party_id)


@api.route('/debtors/<int:party_id>/statement')
@login_required
def debtor_statement(party_id):
    return jsonify(_statement('debtor', party_id).to_dict())


# ---------------------- Routes: Payments ----------------------

@api.route('/payments')
@login_required
def list_payments():
    return jsonify([p.to_dict() for p in payments.list_payments(_uid())])


@api.route('/payments', methods=['POST'])
@login_required
def record_payment():
    payment = payments.record_payment(_uid(), parse_body(PaymentIn))
    return jsonify({'success': True, 'id': payment.id})


@api.route('/payments/<int:payment_id>', methods=['DELETE'])
@login_required
def delete_payment(payment_id):
    payments.delete_payment(payment_id, _uid())
    return jsonify({'success': True})


# ---------------------- Routes: Dashboard ----------------------

@api.route('/dashboard/stats')
@login_required
def dashboard_stats():
    return jsonify(debts.dashboard_stats(_uid()))


# ---------------------- Routes: Pages ----------------------

@pages.route('/')
def index():
    return render_template('index.html')


@pages.route('/login')
def login_page():
    return render_template('login.html')


@pages.route('/change-password')
@session_required
def change_password_page():
    return render_template('change_password.html', user=current_user())


@pages.route('/dashboard')
@login_required
def dashboard():
    return render_template('dashboard.html', user=current_user())


@pages.route('/admin')
@admin_required
def admin():
    return render_template('admin.html', user=current_user())


@pages.route('/creditors/<int:party_id>/statement')
@login_required
def print_creditor_statement(party_id):
    return _print_statement('creditor', party_id)


@pages.route('/debtors/<int:party_id>/statement')
@login_required
def print_debtor_statement(party_id):
    return _print_statement('debtor', party_id)


def _print_statement(kind, party_id):
    user = current_user()
    party = debts.get_party(kind, party_id, user.id)
    return render_template('statement.html', statement=generate_statement(party, kind, user.full_name))


# ---------------------- Run App ----------------------
if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
