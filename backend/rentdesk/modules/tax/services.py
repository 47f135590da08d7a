"""
Tax Summary Services - listing, manual calculation and reporting.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from rentdesk.core.timezone import format_datetime_for_api
from rentdesk.modules.expenses.models import Expense
from rentdesk.modules.payments.models import Payment
from rentdesk.modules.tax.aggregation import AggregationResult, SkippedFact, aggregate
from rentdesk.modules.tax.models import RecomputeFailure, TaxSummary
from rentdesk.modules.tax.periods import MONTH_NAMES, PeriodKey
from rentdesk.modules.tax.reconciliation import DERIVED_FIELDS, reconcile, validate_tax_rate

logger = logging.getLogger(__name__)


@dataclass
class Recalculation:
    """A reconciled summary plus the facts that could not be resolved."""
    summary: TaxSummary
    skipped: List[SkippedFact] = field(default_factory=list)


def _month_order(month: str) -> int:
    try:
        return MONTH_NAMES.index(month) + 1
    except ValueError:
        return 0


def get_summary(db: Session, summary_id: int) -> Optional[TaxSummary]:
    """Get a tax summary by ID."""
    return db.query(TaxSummary).filter(TaxSummary.id == summary_id).first()


def get_summary_for_period(db: Session, period: PeriodKey) -> Optional[TaxSummary]:
    return db.query(TaxSummary).filter(
        TaxSummary.month == period.month,
        TaxSummary.year == period.year,
    ).first()


def list_summaries(db: Session, year: Optional[int] = None) -> List[TaxSummary]:
    """List summaries, most recent period first (calendar order, not alphabetical)."""
    query = db.query(TaxSummary)
    if year is not None:
        query = query.filter(TaxSummary.year == year)
    summaries = query.all()
    return sorted(
        summaries,
        key=lambda s: (s.year, _month_order(s.month)),
        reverse=True,
    )


def recalculate_period(
    db: Session,
    period: PeriodKey,
    tax_rate=None,
    preserve_rate: bool = False,
) -> Recalculation:
    """
    Re-aggregate every payment and expense for a period and upsert its summary.

    With preserve_rate, an existing summary keeps the rate it was last
    calculated with instead of falling back to the default.
    """
    if tax_rate is None and preserve_rate:
        existing = get_summary_for_period(db, period)
        if existing is not None:
            tax_rate = existing.tax_rate
    # Reject a bad rate before scanning any facts
    rate = validate_tax_rate(tax_rate)

    payments = db.query(Payment).all()
    expenses = db.query(Expense).all()
    result: AggregationResult = aggregate(period, payments, expenses)

    summary = reconcile(db, period, result.facts, rate)
    return Recalculation(summary=summary, skipped=result.skipped)


def calculate_for_period(
    db: Session,
    month: Union[str, int],
    year: int,
    tax_rate=None,
) -> Recalculation:
    """Manual "calculate monthly tax" action. Rate defaults to the configured default."""
    period = PeriodKey.from_parts(month, year)
    rate = validate_tax_rate(tax_rate)
    logger.info(f"Manual tax calculation requested for {period} at {rate}%")
    return recalculate_period(db, period, tax_rate=rate)


def update_summary(db: Session, summary_id: int, tax_rate=None) -> Optional[Recalculation]:
    """Recalculate an existing summary, identified by ID, with a new rate."""
    summary = get_summary(db, summary_id)
    if not summary:
        return None
    period = PeriodKey.from_parts(summary.month, summary.year)
    if tax_rate is None:
        return recalculate_period(db, period, preserve_rate=True)
    return recalculate_period(db, period, tax_rate=tax_rate)


def get_yearly_totals(db: Session, year: Optional[int] = None) -> Dict[str, Any]:
    """Sum revenue, utilities, net income and tax across a year's summaries."""
    summaries = list_summaries(db, year)

    total_revenue = sum((s.total_revenue or Decimal('0') for s in summaries), Decimal('0'))
    total_utilities = sum((s.total_utilities or Decimal('0') for s in summaries), Decimal('0'))
    total_net_income = sum((s.net_income or Decimal('0') for s in summaries), Decimal('0'))
    total_tax_amount = sum((s.tax_amount or Decimal('0') for s in summaries), Decimal('0'))

    return {
        'year': year,
        'period_count': len(summaries),
        'total_revenue': float(total_revenue),
        'total_utilities': float(total_utilities),
        'total_net_income': float(total_net_income),
        'total_tax_amount': float(total_tax_amount),
    }


def list_recompute_failures(db: Session, limit: int = 100) -> List[RecomputeFailure]:
    """Most recent failed reactive recomputes, for the operator report."""
    return db.query(RecomputeFailure).order_by(
        RecomputeFailure.created_at.desc(), RecomputeFailure.id.desc()
    ).limit(limit).all()


def serialize_summary(summary: TaxSummary) -> Dict[str, Any]:
    data = {
        'id': summary.id,
        'month': summary.month,
        'year': summary.year,
    }
    for name in DERIVED_FIELDS:
        value = getattr(summary, name)
        data[name] = float(value) if value is not None else 0.0
    data['created_at'] = format_datetime_for_api(summary.created_at)
    data['updated_at'] = format_datetime_for_api(summary.updated_at)
    return data


def serialize_skipped(skipped: List[SkippedFact]) -> List[Dict[str, Any]]:
    return [{'kind': s.kind, 'id': s.fact_id, 'reason': s.reason} for s in skipped]


def serialize_failure(failure: RecomputeFailure) -> Dict[str, Any]:
    return {
        'id': failure.id,
        'payment_id': failure.payment_id,
        'operation': failure.operation,
        'period_label': failure.period_label,
        'month': failure.month,
        'year': failure.year,
        'error_type': failure.error_type,
        'message': failure.message,
        'created_at': format_datetime_for_api(failure.created_at),
    }
