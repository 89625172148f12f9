from datetime import datetime
from decimal import Decimal
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)  # stored lowercase
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)  # stored lowercase
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), default='')
    address = db.Column(db.Text, default='')
    is_admin = db.Column(db.Boolean, nullable=False, default=False)
    must_change_password = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime, nullable=True)

    creditors = db.relationship('Creditor', backref='owner', lazy=True, cascade="all, delete-orphan")
    debtors = db.relationship('Debtor', backref='owner', lazy=True, cascade="all, delete-orphan")
    payments = db.relationship('Payment', backref='owner', lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'full_name': self.full_name,
            'phone': self.phone or '',
            'address': self.address or '',
            'is_admin': self.is_admin,
            'must_change_password': self.must_change_password,
            'created_at': _iso(self.created_at),
            'last_login': _iso(self.last_login),
        }


class PartyMixin:
    """Columns shared by creditors and debtors.

    A party belongs to exactly one user and owns its items; the
    ``total_amount`` and ``pending_amount`` figures are derived from the
    items on every read and never stored.
    """

    id = db.Column(db.Integer, primary_key=True)
    full_name = db.Column(db.String(255), nullable=False)
    contact = db.Column(db.String(255), default='')
    gender = db.Column(db.String(10), nullable=False, default='male')
    language = db.Column(db.String(10), nullable=False, default='english')  # statement language
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def total_amount(self):
        return sum((item.amount or Decimal('0') for item in self.items), Decimal('0'))

    @property
    def pending_amount(self):
        return sum((item.amount or Decimal('0') for item in self.items if item.status == 'pending'), Decimal('0'))

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'full_name': self.full_name,
            'contact': self.contact or '',
            'gender': self.gender,
            'language': self.language,
            'created_at': _iso(self.created_at),
            'items': [item.to_dict() for item in self.items],
            'total_amount': float(self.total_amount),
            'pending_amount': float(self.pending_amount),
        }


class ItemMixin:
    id = db.Column(db.Integer, primary_key=True)
    reason = db.Column(db.Text, default='')
    amount = db.Column(db.Numeric(15, 2), nullable=False, default=0)
    date_incurred = db.Column(db.Date, nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='pending')
    notes = db.Column(db.Text, default='')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'reason': self.reason or '',
            'amount': float(self.amount or 0),
            'date_incurred': _iso(self.date_incurred),
            'due_date': _iso(self.due_date),
            'status': self.status,
            'notes': self.notes or '',
            'created_at': _iso(self.created_at),
        }


class Creditor(PartyMixin, db.Model):
    """Someone the account owner owes money to."""
    __tablename__ = 'creditors'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    items = db.relationship('CreditorItem', backref='creditor', lazy='selectin',
                            order_by='CreditorItem.id', cascade="all, delete-orphan")


class CreditorItem(ItemMixin, db.Model):
    __tablename__ = 'creditor_items'

    creditor_id = db.Column(db.Integer, db.ForeignKey('creditors.id', ondelete='CASCADE'), nullable=False, index=True)


class Debtor(PartyMixin, db.Model):
    """Someone who owes the account owner money."""
    __tablename__ = 'debtors'

    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    items = db.relationship('DebtorItem', backref='debtor', lazy='selectin',
                            order_by='DebtorItem.id', cascade="all, delete-orphan")


class DebtorItem(ItemMixin, db.Model):
    __tablename__ = 'debtor_items'

    debtor_id = db.Column(db.Integer, db.ForeignKey('debtors.id', ondelete='CASCADE'), nullable=False, index=True)


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # 'paid' or 'received'
    related_id = db.Column(db.Integer, nullable=True)  # informational, no foreign key
    amount = db.Column(db.Numeric(15, 2), nullable=False)  # always positive
    payment_date = db.Column(db.Date, nullable=False, index=True)
    payment_method = db.Column(db.String(50), default='')
    reference = db.Column(db.String(100), default='')
    notes = db.Column(db.Text, default='')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'type': self.type,
            'related_id': self.related_id,
            'amount': float(self.amount or 0),
            'payment_date': _iso(self.payment_date),
            'payment_method': self.payment_method or '',
            'reference': self.reference or '',
            'notes': self.notes or '',
            'created_at': _iso(self.created_at),
        }
