"""
Payment ledger.

Payments are informational entries: both 'paid' and 'received' amounts are
stored as positive magnitudes, and recording or deleting one never changes
the status of any creditor or debtor item.
"""

import logging
from datetime import date

from models import db, Payment
from ledger.errors import NotFound

logger = logging.getLogger(__name__)


def list_payments(user_id):
    return Payment.query.filter_by(user_id=user_id).order_by(
        Payment.payment_date.desc(), Payment.created_at.desc(), Payment.id.desc()
    ).all()


def record_payment(user_id, data):
    payment = Payment(
        user_id=user_id,
        type=data.type,
        related_id=data.related_id,
        amount=data.amount,
        payment_date=data.payment_date or date.today(),
        payment_method=data.payment_method or '',
        reference=data.reference or '',
        notes=data.notes or '',
    )
    db.session.add(payment)
    db.session.commit()
    logger.info('Payment %s (%s) recorded for user %s', payment.id, payment.type, user_id)
    return payment


def delete_payment(payment_id, user_id):
    payment = Payment.query.filter_by(id=payment_id, user_id=user_id).first()
    if payment is None:
        raise NotFound('Payment')
    db.session.delete(payment)
    db.session.commit()
