"""
Creditors, debtors and their itemized debts.

Creditors and debtors are mirror images of each other, so every operation
takes a ``kind`` ('creditor' or 'debtor') and resolves the models from
``PARTIES``. Every query filters on the owner's user id; an id belonging to
another user is indistinguishable from one that does not exist.

Editing a party replaces its whole item list: the old items are deleted and
the submitted set is inserted, inside the same commit as the parent update.
"""

import logging
from decimal import Decimal

from sqlalchemy import func

from models import db, Creditor, CreditorItem, Debtor, DebtorItem
from ledger.errors import NotFound

logger = logging.getLogger(__name__)

PARTIES = {
    'creditor': (Creditor, CreditorItem),
    'debtor': (Debtor, DebtorItem),
}


def _models(kind):
    try:
        return PARTIES[kind]
    except KeyError:
        raise ValueError(f'Unknown party kind: {kind!r}')


def list_parties(kind, user_id):
    party_model, _ = _models(kind)
    return party_model.query.filter_by(user_id=user_id).order_by(party_model.full_name, party_model.id).all()


def get_party(kind, party_id, user_id):
    party_model, _ = _models(kind)
    party = party_model.query.filter_by(id=party_id, user_id=user_id).first()
    if party is None:
        raise NotFound(kind.capitalize())
    return party


def _build_items(item_model, items):
    return [item_model(
        reason=item.reason or '',
        amount=item.amount,
        date_incurred=item.date_incurred,
        due_date=item.due_date,
        status=item.status,
        notes=item.notes or '',
    ) for item in items]


def create_party(kind, user_id, data):
    party_model, item_model = _models(kind)
    party = party_model(
        user_id=user_id,
        full_name=data.full_name,
        contact=data.contact or '',
        gender=data.gender,
        language=data.language,
    )
    party.items = _build_items(item_model, data.items)
    db.session.add(party)
    db.session.commit()
    logger.info('%s %s created for user %s with %d items', kind, party.id, user_id, len(party.items))
    return party


def update_party(kind, party_id, user_id, data):
    party = get_party(kind, party_id, user_id)
    _, item_model = _models(kind)
    party.full_name = data.full_name
    party.contact = data.contact or ''
    party.gender = data.gender
    party.language = data.language
    # delete-orphan cascade removes the previous rows on flush
    party.items.clear()
    db.session.flush()
    party.items.extend(_build_items(item_model, data.items))
    db.session.commit()
    logger.info('%s %s replaced with %d items', kind, party.id, len(party.items))
    return party


def delete_party(kind, party_id, user_id):
    party = get_party(kind, party_id, user_id)
    db.session.delete(party)
    db.session.commit()
    logger.info('%s %s deleted for user %s', kind, party_id, user_id)


# ---------------------- Dashboard ----------------------

def _pending_total(kind, user_id):
    party_model, item_model = _models(kind)
    total = db.session.query(func.coalesce(func.sum(item_model.amount), 0)).join(
        party_model, getattr(item_model, f'{kind}_id') == party_model.id
    ).filter(
        party_model.user_id == user_id,
        item_model.status == 'pending',
    ).scalar()
    return Decimal(str(total or 0))


def _count(kind, user_id):
    party_model, _ = _models(kind)
    return db.session.query(func.count(party_model.id)).filter(party_model.user_id == user_id).scalar() or 0


def dashboard_stats(user_id):
    owed_to_creditors = _pending_total('creditor', user_id)
    owed_by_debtors = _pending_total('debtor', user_id)
    return {
        'total_owed_to_creditors': float(owed_to_creditors),
        'total_owed_by_debtors': float(owed_by_debtors),
        'net_position': float(owed_by_debtors - owed_to_creditors),
        'creditor_count': int(_count('creditor', user_id)),
        'debtor_count': int(_count('debtor', user_id)),
    }
