"""
Tax Summary Reconciler.

Turns aggregated facts into a TaxSummary row. The write is a single
INSERT ... ON CONFLICT (month, year) DO UPDATE so two reconciliations of the
same period can never produce two rows or lose an update to a
read-then-write race.
"""

import logging
import math
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from rentdesk.core.config import settings
from rentdesk.core.timezone import utcnow_naive
from rentdesk.modules.tax.aggregation import FinancialFacts
from rentdesk.modules.tax.exceptions import InvalidTaxRate, ReconciliationWriteFailure
from rentdesk.modules.tax.models import TaxSummary
from rentdesk.modules.tax.periods import PeriodKey

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
HUNDRED = Decimal('100')

# tax_rate is stored as Numeric(9, 4)
RATE_QUANTUM = Decimal('0.0001')
MAX_TAX_RATE = Decimal('99999.9999')

DERIVED_FIELDS = (
    'total_revenue', 'total_utilities', 'electricity', 'water', 'gas',
    'maintenance', 'other_expenses', 'net_income', 'tax_rate', 'tax_amount',
)

_INSERT_BY_DIALECT = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def validate_tax_rate(value=None) -> Decimal:
    """
    Validate a tax rate percentage (25.0 means 25%).

    None falls back to the configured default. Booleans, non-numeric values,
    NaN, infinities, negative rates and rates above MAX_TAX_RATE raise
    InvalidTaxRate. The rate is returned unrounded; only the stored copy is
    rounded.
    """
    if value is None:
        value = settings.DEFAULT_TAX_RATE
    if isinstance(value, bool):
        raise InvalidTaxRate(value)

    try:
        if isinstance(value, float):
            if not math.isfinite(value):
                raise InvalidTaxRate(value)
            rate = Decimal(str(value))
        elif isinstance(value, (int, Decimal)):
            rate = Decimal(value)
        elif isinstance(value, str):
            rate = Decimal(value.strip())
        else:
            raise InvalidTaxRate(value)
    except (InvalidOperation, ValueError):
        raise InvalidTaxRate(value)

    if not rate.is_finite() or rate < 0 or rate > MAX_TAX_RATE:
        raise InvalidTaxRate(value)
    return rate


def compute_summary_values(facts: FinancialFacts, tax_rate: Decimal) -> Dict[str, Decimal]:
    """
    Derive every persisted summary field from facts and a validated rate.

    tax_amount uses the rate exactly as given; tax_rate is rounded for storage.
    """
    electricity = quantize_money(facts.electricity)
    water = quantize_money(facts.water)
    gas = quantize_money(facts.gas)
    maintenance = quantize_money(facts.maintenance)
    other_expenses = quantize_money(facts.other_expenses)
    total_revenue = quantize_money(facts.total_revenue)

    total_utilities = electricity + water + gas + maintenance + other_expenses
    net_income = total_revenue - total_utilities
    tax_amount = quantize_money(net_income * tax_rate / HUNDRED)

    return {
        'total_revenue': total_revenue,
        'total_utilities': total_utilities,
        'electricity': electricity,
        'water': water,
        'gas': gas,
        'maintenance': maintenance,
        'other_expenses': other_expenses,
        'net_income': net_income,
        'tax_rate': tax_rate.quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP),
        'tax_amount': tax_amount,
    }


def _upsert_statement(db: Session, period: PeriodKey, values: Dict[str, Decimal]):
    dialect = db.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise ReconciliationWriteFailure(
            period, f"atomic summary upsert is not supported on {dialect}"
        )

    now = utcnow_naive()
    stmt = insert(TaxSummary).values(
        month=period.month,
        year=period.year,
        created_at=now,
        updated_at=now,
        **values,
    )
    return stmt.on_conflict_do_update(
        index_elements=['month', 'year'],
        set_={**values, 'updated_at': now},
    )


def reconcile(
    db: Session,
    period: PeriodKey,
    facts: FinancialFacts,
    tax_rate=None,
) -> TaxSummary:
    """
    Compute and upsert the summary for one period.

    The rate is validated before anything is computed. Either the whole row
    is written and committed or the transaction is rolled back and
    ReconciliationWriteFailure is raised.
    """
    rate = validate_tax_rate(tax_rate)
    values = compute_summary_values(facts, rate)

    try:
        db.execute(_upsert_statement(db, period, values))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Tax summary upsert failed for {period}: {e}")
        raise ReconciliationWriteFailure(period, e) from e

    summary = db.query(TaxSummary).filter(
        TaxSummary.month == period.month,
        TaxSummary.year == period.year,
    ).populate_existing().one()

    logger.info(
        f"Reconciled tax summary for {period}: revenue={values['total_revenue']} "
        f"utilities={values['total_utilities']} tax={values['tax_amount']} (rate {rate}%)"
    )
    return summary
