"""
Expenses module database models.
"""

from sqlalchemy import Column, String, Numeric, Date, Text, Index

from rentdesk.shared.models.base import BaseModel


class Expense(BaseModel):
    """Individual property expenses."""

    __tablename__ = "expenses"

    property_name = Column(String(200), nullable=True)

    category = Column(String(100), nullable=False)  # 'utilities', 'maintenance', anything else
    amount = Column(Numeric(12, 2), nullable=False)
    expense_date = Column(Date, nullable=False)

    description = Column(Text, nullable=True)

    __table_args__ = (
        Index('idx_expense_date', 'expense_date'),
    )
