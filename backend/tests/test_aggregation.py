"""
Test Suite for the Financial Fact Aggregator

The aggregator is pure, so these tests use plain dataclasses instead of
database rows.

Run with: pytest tests/test_aggregation.py -v
"""

import pytest
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from rentdesk.modules.tax.aggregation import aggregate, to_decimal
from rentdesk.modules.tax.exceptions import AggregationPartialFailure
from rentdesk.modules.tax.periods import PeriodKey


# ============================================================================
# Fake facts
# ============================================================================

@dataclass
class FakePayment:
    id: int
    amount: Decimal
    period_label: Optional[str] = "January 2025"
    status: str = "paid"
    due_date: Optional[date] = date(2025, 1, 1)
    paid_date: Optional[date] = None


@dataclass
class FakeExpense:
    id: int
    category: str
    amount: Decimal
    expense_date: Optional[date] = date(2025, 1, 10)


JANUARY = PeriodKey("January", 2025)


class TestRevenue:
    """Only paid payments in the period count as revenue."""

    def test_sums_paid_payments_in_period(self):
        payments = [
            FakePayment(1, Decimal("1200.00")),
            FakePayment(2, Decimal("800.50")),
        ]
        result = aggregate(JANUARY, payments, [])
        assert result.facts.total_revenue == Decimal("2000.50")
        assert result.payment_count == 2

    @pytest.mark.parametrize("status", ["unpaid", "pending", "overdue"])
    def test_ignores_unpaid_statuses(self, status):
        payments = [FakePayment(1, Decimal("1200.00"), status=status)]
        result = aggregate(JANUARY, payments, [])
        assert result.facts.total_revenue == Decimal("0")

    def test_ignores_other_periods(self):
        payments = [
            FakePayment(1, Decimal("1200.00"), period_label="February 2025"),
            FakePayment(2, Decimal("1000.00"), period_label="January 2024"),
            FakePayment(3, Decimal("500.00"), period_label="jan 2025"),
        ]
        result = aggregate(JANUARY, payments, [])
        assert result.facts.total_revenue == Decimal("500.00")

    def test_unlabelled_payment_uses_paid_date(self):
        payments = [
            FakePayment(1, Decimal("700.00"), period_label=None, paid_date=date(2025, 1, 3)),
            FakePayment(2, Decimal("300.00"), period_label=None, paid_date=date(2025, 2, 3)),
        ]
        result = aggregate(JANUARY, payments, [])
        assert result.facts.total_revenue == Decimal("700.00")


class TestExpenseBuckets:
    """Utilities go to electricity, maintenance to maintenance, the rest to other."""

    def test_bucketing(self):
        expenses = [
            FakeExpense(1, "utilities", Decimal("120.00")),
            FakeExpense(2, "Utilities ", Decimal("30.00")),
            FakeExpense(3, "maintenance", Decimal("75.25")),
            FakeExpense(4, "insurance", Decimal("90.00")),
            FakeExpense(5, "property tax", Decimal("10.00")),
        ]
        facts = aggregate(JANUARY, [], expenses).facts
        assert facts.electricity == Decimal("150.00")
        assert facts.maintenance == Decimal("75.25")
        assert facts.other_expenses == Decimal("100.00")
        assert facts.water == Decimal("0")
        assert facts.gas == Decimal("0")

    def test_expenses_outside_period_ignored(self):
        expenses = [
            FakeExpense(1, "utilities", Decimal("120.00"), expense_date=date(2025, 2, 1)),
            FakeExpense(2, "maintenance", Decimal("50.00"), expense_date=date(2024, 1, 31)),
        ]
        result = aggregate(JANUARY, [], expenses)
        assert result.facts.electricity == Decimal("0")
        assert result.facts.maintenance == Decimal("0")
        assert result.expense_count == 0

    def test_no_float_drift(self):
        expenses = [FakeExpense(i, "other", Decimal("0.10")) for i in range(3)]
        facts = aggregate(JANUARY, [], expenses).facts
        assert facts.other_expenses == Decimal("0.30")


class TestZeroRecords:
    """No matching facts is a valid all-zero result."""

    def test_empty_inputs(self):
        result = aggregate(PeriodKey("December", 2099), [], [])
        facts = result.facts
        assert facts.total_revenue == 0
        assert facts.electricity == 0
        assert facts.maintenance == 0
        assert facts.other_expenses == 0
        assert result.skipped == []
        assert result.partial_failure is None

    def test_facts_for_other_periods_only(self):
        payments = [FakePayment(1, Decimal("1200.00"))]
        expenses = [FakeExpense(1, "utilities", Decimal("100.00"))]
        facts = aggregate(PeriodKey("December", 2099), payments, expenses).facts
        assert facts.total_revenue == 0
        assert facts.electricity == 0


class TestMalformedIsolation:
    """One bad label never aborts the rest of the batch."""

    def test_nine_good_one_bad(self):
        payments = [FakePayment(i, Decimal("100.00")) for i in range(1, 10)]
        payments.append(FakePayment(10, Decimal("100.00"), period_label="2025"))

        result = aggregate(JANUARY, payments, [])

        assert result.facts.total_revenue == Decimal("900.00")
        assert result.payment_count == 9
        assert len(result.skipped) == 1
        assert result.skipped[0].kind == "payment"
        assert result.skipped[0].fact_id == 10

        failure = result.partial_failure
        assert isinstance(failure, AggregationPartialFailure)
        assert failure.period == JANUARY
        assert "payment#10" in str(failure)

    def test_unpaid_malformed_not_reported(self):
        payments = [FakePayment(1, Decimal("100.00"), period_label="2025", status="unpaid")]
        result = aggregate(JANUARY, payments, [])
        assert result.skipped == []

    def test_expense_without_date_skipped(self):
        expenses = [
            FakeExpense(1, "utilities", Decimal("40.00")),
            FakeExpense(2, "utilities", Decimal("60.00"), expense_date=None),
        ]
        result = aggregate(JANUARY, [], expenses)
        assert result.facts.electricity == Decimal("40.00")
        assert [(s.kind, s.fact_id) for s in result.skipped] == [("expense", 2)]


class TestToDecimal:

    @pytest.mark.parametrize("value,expected", [
        (None, Decimal("0")),
        ("", Decimal("0")),
        (Decimal("1.10"), Decimal("1.10")),
        (0.1, Decimal("0.1")),
        (5, Decimal("5")),
    ])
    def test_coercion(self, value, expected):
        assert to_decimal(value) == expected
