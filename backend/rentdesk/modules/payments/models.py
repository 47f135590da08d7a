"""
Payments module database models.
"""

from sqlalchemy import Column, String, Numeric, Date, Text, Index, CheckConstraint

from rentdesk.shared.models.base import BaseModel


PAYMENT_STATUSES = ('unpaid', 'pending', 'paid', 'overdue')
PAID = 'paid'


class Payment(BaseModel):
    """Scheduled rent obligations and their payment state."""

    __tablename__ = "payments"

    tenant_name = Column(String(200), nullable=True)
    property_name = Column(String(200), nullable=True)

    amount = Column(Numeric(12, 2), nullable=False)
    period_label = Column(String(100), nullable=True)  # Free text, e.g. "January 2025"

    due_date = Column(Date, nullable=False)
    paid_date = Column(Date, nullable=True)

    status = Column(String(20), nullable=False, default='unpaid')  # 'unpaid', 'pending', 'paid', 'overdue'
    payment_method = Column(String(50), nullable=True)

    notes = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint('amount >= 0', name='ck_payment_amount_non_negative'),
        Index('idx_payment_status', 'status'),
        Index('idx_payment_due_date', 'due_date'),
    )
