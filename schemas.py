"""
Request schemas.

One pydantic model per JSON body the API accepts. ``parse_body`` validates
the current request against a schema and converts pydantic's error into the
project's ``ValidationError`` so views never see an unchecked dict.
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

import pydantic
from flask import request
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from ledger.errors import ValidationError


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _or_default(default):
    def convert(value):
        return default if _blank_to_none(value) is None else value
    return convert


# HTML forms post empty strings for untouched inputs.
OptionalDate = Annotated[Optional[date], BeforeValidator(_blank_to_none)]
OptionalInt = Annotated[Optional[int], BeforeValidator(_blank_to_none)]
OptionalSecret = Annotated[Optional[str], BeforeValidator(_blank_to_none)]

Gender = Annotated[Literal['male', 'female'], BeforeValidator(_or_default('male'))]
Language = Annotated[Literal['english', 'french'], BeforeValidator(_or_default('english'))]
ItemStatus = Annotated[Literal['pending', 'partial', 'paid'], BeforeValidator(_or_default('pending'))]
ItemAmount = Annotated[Decimal, BeforeValidator(_or_default(Decimal('0'))), Field(ge=0)]
PaymentType = Literal['paid', 'received']


class RequestSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)


# ---------------------- Auth ----------------------

class LoginRequest(RequestSchema):
    """Username or email plus password; the identifier is normalised by the account service."""
    model_config = ConfigDict(str_strip_whitespace=False, populate_by_name=True)

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class PasswordChangeRequest(RequestSchema):
    # Length rules are enforced by the account service so they raise WeakPassword.
    model_config = ConfigDict(str_strip_whitespace=False, populate_by_name=True)

    current_password: str = Field('', alias='currentPassword')
    new_password: str = Field('', alias='newPassword')


class ForcePasswordChangeRequest(RequestSchema):
    model_config = ConfigDict(str_strip_whitespace=False, populate_by_name=True)

    new_password: str = Field('', alias='newPassword')


class ProfileUpdate(RequestSchema):
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = ''
    address: Optional[str] = ''


# ---------------------- Admin ----------------------

class UserCreate(RequestSchema):
    # Passwords are kept verbatim; the service strips the other fields.
    model_config = ConfigDict(str_strip_whitespace=False, populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=1, max_length=255)
    full_name: str = Field(..., min_length=1, max_length=255)
    password: OptionalSecret = None
    phone: Optional[str] = ''
    address: Optional[str] = ''
    is_admin: bool = False


class UserUpdate(RequestSchema):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = ''
    address: Optional[str] = ''
    is_admin: bool = False


# ---------------------- Creditors / Debtors ----------------------

class DebtItemIn(RequestSchema):
    reason: Optional[str] = ''
    amount: ItemAmount = Decimal('0')
    date_incurred: OptionalDate = None
    due_date: OptionalDate = None
    status: ItemStatus = 'pending'
    notes: Optional[str] = ''


class PartyIn(RequestSchema):
    """Body for creating or replacing a creditor or debtor with all of its items."""
    full_name: str = Field(..., min_length=1, max_length=255)
    contact: Optional[str] = ''
    gender: Gender = 'male'
    language: Language = 'english'
    items: Annotated[List[DebtItemIn], BeforeValidator(_or_default([]))] = Field(default_factory=list)


# ---------------------- Payments ----------------------

class PaymentIn(RequestSchema):
    type: PaymentType
    amount: Decimal = Field(..., gt=0)
    related_id: OptionalInt = None
    payment_date: OptionalDate = None
    payment_method: Optional[str] = ''
    reference: Optional[str] = ''
    notes: Optional[str] = ''


# ---------------------- Helpers ----------------------

def _describe(error: pydantic.ValidationError) -> str:
    first = error.errors()[0]
    location = '.'.join(str(part) for part in first.get('loc', ()))
    return f"{location}: {first['msg']}" if location else first['msg']


def parse_body(schema):
    """Validate the JSON body of the current request against ``schema``."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    try:
        return schema.model_validate(data)
    except pydantic.ValidationError as e:
        raise ValidationError(_describe(e))
