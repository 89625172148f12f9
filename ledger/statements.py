"""
Debt-confirmation statements.

``generate_statement`` is a pure function of a creditor or debtor record:
it picks one of four letter templates (direction x language), a salutation
from the record's gender, and lays out the items with a total row. The
result is a plain ``Statement`` value that the Jinja print template and the
JSON API both render.
"""

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

CURRENCY = 'XAF'


@dataclass(frozen=True)
class LetterTemplate:
    heading: str
    recipient_label: str
    body: str            # formatted with owner
    total_label: str
    signature_label: str


@dataclass(frozen=True)
class Locale:
    columns: tuple
    weekdays: tuple
    months: tuple


LOCALES = {
    'english': Locale(
        columns=('#', 'Reason', 'Amount', 'Status'),
        weekdays=('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday'),
        months=('January', 'February', 'March', 'April', 'May', 'June', 'July',
                'August', 'September', 'October', 'November', 'December'),
    ),
    'french': Locale(
        columns=('#', 'Motif', 'Montant', 'Statut'),
        weekdays=('lundi', 'mardi', 'mercredi', 'jeudi', 'vendredi', 'samedi', 'dimanche'),
        months=('janvier', 'février', 'mars', 'avril', 'mai', 'juin', 'juillet',
                'août', 'septembre', 'octobre', 'novembre', 'décembre'),
    ),
}

TITLES = {
    ('male', 'english'): 'Mr.',
    ('female', 'english'): 'Mrs.',
    ('male', 'french'): 'M.',
    ('female', 'french'): 'Mme',
}

GREETINGS = {
    ('male', 'english'): 'Dear {title} {name},',
    ('female', 'english'): 'Dear {title} {name},',
    ('male', 'french'): 'Cher {title} {name},',
    ('female', 'french'): 'Chère {title} {name},',
}

# 'creditor' letters acknowledge a debt the owner owes; 'debtor' letters
# state a debt owed to the owner.
TEMPLATES = {
    ('creditor', 'english'): LetterTemplate(
        heading='DEBT CONFIRMATION STATEMENT',
        recipient_label='To:',
        body='This letter serves as a formal acknowledgment of the debt that I, {owner}, owe to you.',
        total_label='Total Amount Owed:',
        signature_label='Signature:',
    ),
    ('creditor', 'french'): LetterTemplate(
        heading='RELEVÉ DE CONFIRMATION DE DETTE',
        recipient_label='À:',
        body='Cette lettre constitue une reconnaissance formelle de la dette que je, {owner}, vous dois.',
        total_label='Montant total dû:',
        signature_label='Signature:',
    ),
    ('debtor', 'english'): LetterTemplate(
        heading='OUTSTANDING DEBT STATEMENT',
        recipient_label='To:',
        body='This letter serves as a formal statement of the debt that you owe to {owner}.',
        total_label='Total Amount Owed:',
        signature_label="Debtor's Signature:",
    ),
    ('debtor', 'french'): LetterTemplate(
        heading='RELEVÉ DE CRÉANCE',
        recipient_label='À:',
        body='Cette lettre constitue un relevé formel de la créance que vous devez à {owner}.',
        total_label='Montant total dû:',
        signature_label='Signature du débiteur:',
    ),
}


@dataclass(frozen=True)
class StatementRow:
    index: int
    reason: str
    amount: str
    status: str


@dataclass(frozen=True)
class Statement:
    direction: str
    language: str
    heading: str
    date_label: str
    date: str
    recipient_label: str
    recipient: str
    greeting: str
    body: str
    owner: str
    columns: tuple
    rows: List[StatementRow] = field(default_factory=list)
    total_label: str = ''
    total: str = ''
    signature_label: str = ''

    def to_dict(self):
        return asdict(self)


def format_currency(amount) -> str:
    """Whole units, thousands separators, currency suffix: 5000 -> '5,000 XAF'."""
    if amount is None:
        amount = 0
    value = Decimal(str(amount)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return f'{value:,} {CURRENCY}'


def format_date(day: date, language: str) -> str:
    locale = LOCALES[language]
    return f'{locale.weekdays[day.weekday()]} {day.day} {locale.months[day.month - 1]} {day.year}'


def generate_statement(record, direction: str, owner_name: Optional[str], today: Optional[date] = None) -> Statement:
    """Build the statement for a creditor (``direction='creditor'``) or debtor record."""
    language = record.language if record.language in LOCALES else 'english'
    gender = record.gender if record.gender in ('male', 'female') else 'male'
    template = TEMPLATES[(direction, language)]
    title = TITLES[(gender, language)]
    owner = owner_name or ''
    today = today or date.today()

    rows = [
        StatementRow(
            index=idx,
            reason=item.reason or '-',
            amount=format_currency(item.amount),
            status=item.status,
        )
        for idx, item in enumerate(record.items, start=1)
    ]

    return Statement(
        direction=direction,
        language=language,
        heading=template.heading,
        date_label='Date:',
        date=format_date(today, language),
        recipient_label=template.recipient_label,
        recipient=f'{title} {record.full_name}',
        greeting=GREETINGS[(gender, language)].format(title=title, name=record.full_name),
        body=template.body.format(owner=owner),
        owner=owner,
        columns=LOCALES[language].columns,
        rows=rows,
        total_label=template.total_label,
        total=format_currency(record.total_amount),
        signature_label=template.signature_label,
    )
