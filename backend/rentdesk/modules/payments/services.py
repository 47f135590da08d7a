"""
Payment Services - Database operations for rent payments.

Every write commits first and then publishes a PaymentChangeEvent, so
subscribers always observe committed state and can never roll back the
payment itself.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from rentdesk.modules.payments.events import (
    DELETE, INSERT, UPDATE,
    PaymentChangeEvent, PaymentEventBus, PaymentSnapshot, get_event_bus,
)
from rentdesk.modules.payments.models import PAID, PAYMENT_STATUSES, Payment
from rentdesk.modules.tax.exceptions import MalformedPeriodLabel
from rentdesk.modules.tax.periods import PeriodKey, resolve_payment

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    'tenant_name', 'property_name', 'amount', 'period_label', 'due_date',
    'paid_date', 'status', 'payment_method', 'notes',
)


def _validate(amount: Optional[Decimal] = None, status: Optional[str] = None) -> None:
    if amount is not None and Decimal(str(amount)) < 0:
        raise ValueError("Payment amount must be non-negative")
    if status is not None and status not in PAYMENT_STATUSES:
        raise ValueError(f"Unknown payment status {status!r}")


def get_payment(db: Session, payment_id: int) -> Optional[Payment]:
    """Get a payment by ID."""
    return db.query(Payment).filter(Payment.id == payment_id).first()


def list_payments(db: Session, period: Optional[PeriodKey] = None) -> List[Payment]:
    """List payments, newest due date first, optionally limited to one period."""
    payments = db.query(Payment).order_by(Payment.due_date.desc(), Payment.id.desc()).all()
    if period is None:
        return payments

    matching = []
    for payment in payments:
        try:
            if resolve_payment(payment) == period:
                matching.append(payment)
        except MalformedPeriodLabel:
            continue
    return matching


def create_payment(
    db: Session,
    amount: Decimal,
    due_date: date,
    period_label: Optional[str] = None,
    status: str = 'unpaid',
    paid_date: Optional[date] = None,
    tenant_name: Optional[str] = None,
    property_name: Optional[str] = None,
    payment_method: Optional[str] = None,
    notes: Optional[str] = None,
    bus: Optional[PaymentEventBus] = None,
) -> Payment:
    """Create a payment and publish an insert event."""
    _validate(amount, status)
    if status == PAID and paid_date is None:
        paid_date = date.today()

    payment = Payment(
        tenant_name=tenant_name,
        property_name=property_name,
        amount=amount,
        period_label=period_label,
        due_date=due_date,
        paid_date=paid_date,
        status=status,
        payment_method=payment_method,
        notes=notes,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)

    (bus or get_event_bus()).publish(
        PaymentChangeEvent(INSERT, before=None, after=PaymentSnapshot.from_model(payment))
    )
    return payment


def update_payment(
    db: Session,
    payment_id: int,
    bus: Optional[PaymentEventBus] = None,
    **changes,
) -> Optional[Payment]:
    """Update fields on a payment and publish an update event. Returns None if missing."""
    payment = get_payment(db, payment_id)
    if not payment:
        return None

    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update payment fields: {', '.join(sorted(unknown))}")
    _validate(changes.get('amount'), changes.get('status'))

    before = PaymentSnapshot.from_model(payment)
    for name, value in changes.items():
        setattr(payment, name, value)
    if payment.status == PAID and before.status != PAID and payment.paid_date is None:
        payment.paid_date = date.today()

    db.commit()
    db.refresh(payment)

    (bus or get_event_bus()).publish(
        PaymentChangeEvent(UPDATE, before=before, after=PaymentSnapshot.from_model(payment))
    )
    return payment


def set_payment_status(
    db: Session,
    payment_id: int,
    status: str,
    paid_date: Optional[date] = None,
    bus: Optional[PaymentEventBus] = None,
) -> Optional[Payment]:
    """Move a payment to a new status. Leaving 'paid' clears the paid date."""
    changes = {'status': status}
    if status == PAID:
        changes['paid_date'] = paid_date or date.today()
    else:
        changes['paid_date'] = None
    return update_payment(db, payment_id, bus=bus, **changes)


def delete_payment(
    db: Session,
    payment_id: int,
    bus: Optional[PaymentEventBus] = None,
) -> bool:
    """Delete a payment and publish a delete event carrying the pre-deletion row."""
    payment = get_payment(db, payment_id)
    if not payment:
        return False

    before = PaymentSnapshot.from_model(payment)
    db.delete(payment)
    db.commit()

    (bus or get_event_bus()).publish(PaymentChangeEvent(DELETE, before=before, after=None))
    return True
