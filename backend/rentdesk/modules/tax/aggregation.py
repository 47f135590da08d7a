"""
Financial Fact Aggregator.

Pure functions over already-loaded payment and expense rows. Nothing here
touches the database, so every calculation depends only on its inputs.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from rentdesk.modules.payments.models import PAID
from rentdesk.modules.tax.exceptions import AggregationPartialFailure, MalformedPeriodLabel
from rentdesk.modules.tax.periods import PeriodKey, resolve_expense, resolve_payment

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

UTILITIES = 'utilities'
MAINTENANCE = 'maintenance'


def to_decimal(value) -> Decimal:
    """Coerce a stored amount to Decimal. None counts as zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class FinancialFacts:
    """Categorized totals for one period."""
    total_revenue: Decimal = ZERO
    electricity: Decimal = ZERO
    water: Decimal = ZERO
    gas: Decimal = ZERO
    maintenance: Decimal = ZERO
    other_expenses: Decimal = ZERO


@dataclass
class SkippedFact:
    """A fact that could not be resolved to a period."""
    kind: str  # 'payment' or 'expense'
    fact_id: Optional[int]
    reason: str


@dataclass
class AggregationResult:
    """Totals for a period plus the facts that had to be skipped."""
    period: PeriodKey
    facts: FinancialFacts
    skipped: List[SkippedFact] = field(default_factory=list)
    payment_count: int = 0
    expense_count: int = 0

    @property
    def partial_failure(self) -> Optional[AggregationPartialFailure]:
        if not self.skipped:
            return None
        return AggregationPartialFailure(self.period, self.skipped)


def _category(expense) -> str:
    return (getattr(expense, 'category', None) or '').strip().lower()


def aggregate(
    period: PeriodKey,
    payments: Iterable,
    expenses: Iterable,
) -> AggregationResult:
    """
    Sum paid revenue and categorized expenses for one period.

    Utilities are attributed entirely to electricity; water and gas stay zero.
    Facts whose period cannot be resolved are reported in `skipped` and do
    not abort the rest of the batch.
    """
    facts = FinancialFacts()
    result = AggregationResult(period=period, facts=facts)

    for payment in payments:
        if getattr(payment, 'status', None) != PAID:
            continue
        try:
            payment_period = resolve_payment(payment)
        except MalformedPeriodLabel as e:
            result.skipped.append(SkippedFact('payment', getattr(payment, 'id', None), e.reason))
            continue
        if payment_period != period:
            continue
        facts.total_revenue += to_decimal(payment.amount)
        result.payment_count += 1

    for expense in expenses:
        try:
            expense_period = resolve_expense(expense)
        except MalformedPeriodLabel as e:
            result.skipped.append(SkippedFact('expense', getattr(expense, 'id', None), e.reason))
            continue
        if expense_period != period:
            continue

        amount = to_decimal(expense.amount)
        category = _category(expense)
        if category == UTILITIES:
            facts.electricity += amount
        elif category == MAINTENANCE:
            facts.maintenance += amount
        else:
            facts.other_expenses += amount
        result.expense_count += 1

    if result.skipped:
        logger.warning(
            f"Skipped {len(result.skipped)} unresolvable fact(s) while aggregating {period}: "
            + ", ".join(f"{s.kind}#{s.fact_id} ({s.reason})" for s in result.skipped)
        )

    return result
