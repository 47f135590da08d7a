"""
Period Key Resolver.

Payments carry a free-text period label ("January 2025") while expenses
carry a calendar date. Both must resolve to the same PeriodKey for the same
real-world month, so month names always come from the fixed English table
below and never from the process locale.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from rentdesk.modules.tax.exceptions import MalformedPeriodLabel


MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)

# Lowercase token -> month number (1-12)
_MONTH_LOOKUP = {}
for _number, _name in enumerate(MONTH_NAMES, start=1):
    _MONTH_LOOKUP[_name.lower()] = _number
    _MONTH_LOOKUP[_name[:3].lower()] = _number
_MONTH_LOOKUP['sept'] = 9

_YEAR_TOKEN = re.compile(r'^\d{4}$')


@dataclass(frozen=True)
class PeriodKey:
    """A (month, year) reporting period with a canonical month name."""
    month: str
    year: int

    def __post_init__(self):
        if self.month not in MONTH_NAMES:
            raise MalformedPeriodLabel(self.month, "month must be a canonical month name")

    @property
    def month_number(self) -> int:
        return MONTH_NAMES.index(self.month) + 1

    @property
    def sort_key(self) -> tuple:
        return (self.year, self.month_number)

    def __lt__(self, other: 'PeriodKey') -> bool:
        if not isinstance(other, PeriodKey):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __str__(self) -> str:
        return f"{self.month} {self.year}"

    @classmethod
    def from_parts(cls, month: Union[str, int], year: int) -> 'PeriodKey':
        """Build a key from a caller-supplied month (name, abbreviation or 1-12) and year."""
        if isinstance(month, bool):
            raise MalformedPeriodLabel(str(month), "month must be a name or 1-12")
        if isinstance(month, int):
            if not 1 <= month <= 12:
                raise MalformedPeriodLabel(str(month), "month number out of range")
            number = month
        else:
            number = canonical_month_number(month)
            if number is None:
                raise MalformedPeriodLabel(month, "unknown month name")
        if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
            raise MalformedPeriodLabel(f"{month} {year}", "year must be a four-digit integer")
        return cls(MONTH_NAMES[number - 1], year)


def canonical_month_number(token: Optional[str]) -> Optional[int]:
    """Map a month token to 1-12, case-insensitively. Full token match only."""
    if not token:
        return None
    return _MONTH_LOOKUP.get(token.strip().strip('.').lower())


def resolve_label(label: str) -> PeriodKey:
    """
    Resolve a free-text payment period label such as "January 2025".

    The first token must be a month name (or its usual abbreviation); the
    year is the first later token made of exactly four digits.
    """
    if label is None:
        raise MalformedPeriodLabel(label, "label is empty")

    tokens = label.replace(',', ' ').split()
    if len(tokens) < 2:
        raise MalformedPeriodLabel(label, "expected a month and a year")

    number = canonical_month_number(tokens[0])
    if number is None:
        raise MalformedPeriodLabel(label, f"unrecognized month {tokens[0]!r}")

    for token in tokens[1:]:
        if _YEAR_TOKEN.match(token):
            return PeriodKey(MONTH_NAMES[number - 1], int(token))

    raise MalformedPeriodLabel(label, "no four-digit year found")


def resolve_date(value: Union[date, datetime]) -> PeriodKey:
    """Resolve a calendar date (Gregorian, English month names)."""
    return PeriodKey(MONTH_NAMES[value.month - 1], value.year)


def resolve(value: Union[str, date, datetime]) -> PeriodKey:
    """Resolve either a payment period label or an expense date."""
    if isinstance(value, (date, datetime)):
        return resolve_date(value)
    if isinstance(value, str):
        return resolve_label(value)
    raise MalformedPeriodLabel(repr(value), "expected a period label or a date")


def resolve_payment(payment) -> PeriodKey:
    """
    Resolve the period a payment belongs to.

    The period label wins when present. Payments recorded without a label
    fall back to the paid date, then the due date.
    """
    label = getattr(payment, 'period_label', None)
    if label is not None and label.strip():
        return resolve_label(label)

    fallback = getattr(payment, 'paid_date', None) or getattr(payment, 'due_date', None)
    if fallback is None:
        raise MalformedPeriodLabel(label, "payment has no period label or dates")
    return resolve_date(fallback)


def resolve_expense(expense) -> PeriodKey:
    """Resolve the period an expense belongs to from its expense date."""
    expense_date = getattr(expense, 'expense_date', None)
    if expense_date is None:
        raise MalformedPeriodLabel(None, "expense has no expense date")
    return resolve_date(expense_date)
