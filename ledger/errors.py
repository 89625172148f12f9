"""
Error taxonomy for the debt ledger.

Every error carries the HTTP status it maps to; the Flask error handler in
``app.py`` turns any ``LedgerError`` into ``{"success": false, "error": ...}``.
"""


class LedgerError(Exception):
    """Base error for every failure a request can surface."""

    status_code = 500
    message = 'Server error'

    def __init__(self, message=None, status_code=None):
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self):
        return {'success': False, 'error': self.message}


class Unauthorized(LedgerError):
    status_code = 401
    message = 'Not authenticated'


class Forbidden(LedgerError):
    status_code = 403
    message = 'Admin required'


class PasswordChangeRequired(LedgerError):
    """Authenticated, but the account still has to rotate its password."""

    status_code = 403
    message = 'Password change required'

    def to_dict(self):
        body = super().to_dict()
        body['redirect'] = '/change-password'
        return body


class InvalidCredentials(LedgerError):
    status_code = 401
    message = 'Invalid credentials'


class InvalidCurrentPassword(LedgerError):
    status_code = 400
    message = 'Current password incorrect'


class WeakPassword(LedgerError):
    status_code = 400
    message = 'Password must be at least 5 characters'


class NotFound(LedgerError):
    status_code = 404
    message = 'Not found'

    def __init__(self, resource='Record'):
        super().__init__(f'{resource} not found')


class ValidationError(LedgerError):
    status_code = 400
    message = 'Invalid request'


class Conflict(LedgerError):
    status_code = 409
    message = 'Username or email already exists'


class StoreError(LedgerError):
    status_code = 500
    message = 'Server error'
