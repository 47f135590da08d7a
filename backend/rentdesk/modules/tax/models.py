"""
Tax module database models.
"""

from sqlalchemy import Column, Integer, String, Numeric, Text, UniqueConstraint, Index

from rentdesk.shared.models.base import BaseModel


class TaxSummary(BaseModel):
    """Monthly tax summary. Exactly one row per (month, year)."""

    __tablename__ = "tax_summaries"

    month = Column(String(20), nullable=False)  # Canonical English month name
    year = Column(Integer, nullable=False)

    total_revenue = Column(Numeric(12, 2), nullable=False, default=0)
    total_utilities = Column(Numeric(12, 2), nullable=False, default=0)

    # Expense breakdown
    electricity = Column(Numeric(12, 2), nullable=False, default=0)
    water = Column(Numeric(12, 2), nullable=False, default=0)
    gas = Column(Numeric(12, 2), nullable=False, default=0)
    maintenance = Column(Numeric(12, 2), nullable=False, default=0)
    other_expenses = Column(Numeric(12, 2), nullable=False, default=0)

    net_income = Column(Numeric(12, 2), nullable=False, default=0)
    tax_rate = Column(Numeric(9, 4), nullable=False, default=0)  # Percentage, e.g. 25.0
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint('month', 'year', name='uq_tax_summary_period'),
        Index('idx_tax_summary_year', 'year'),
    )


class RecomputeFailure(BaseModel):
    """Reactive recomputes that failed, leaving a summary stale."""

    __tablename__ = "tax_recompute_failures"

    payment_id = Column(Integer, nullable=True)
    operation = Column(String(10), nullable=False)  # 'insert', 'update', 'delete'
    period_label = Column(String(100), nullable=True)

    month = Column(String(20), nullable=True)
    year = Column(Integer, nullable=True)

    error_type = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)

    __table_args__ = (
        Index('idx_recompute_failure_created', 'created_at'),
    )
