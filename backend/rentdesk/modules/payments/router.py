"""
Payments API routes.
Thin CRUD over rent payments. Every write publishes a change event.
"""

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rentdesk.core.database import get_db
from rentdesk.core.timezone import format_datetime_for_api
from rentdesk.modules.payments import services
from rentdesk.modules.tax.exceptions import MalformedPeriodLabel
from rentdesk.modules.tax.periods import PeriodKey

router = APIRouter()

PaymentStatus = Literal['unpaid', 'pending', 'paid', 'overdue']


class PaymentCreate(BaseModel):
    amount: Decimal = Field(ge=0, decimal_places=2)
    due_date: date
    period_label: Optional[str] = None
    status: PaymentStatus = 'unpaid'
    paid_date: Optional[date] = None
    tenant_name: Optional[str] = None
    property_name: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


class PaymentUpdate(BaseModel):
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    due_date: Optional[date] = None
    period_label: Optional[str] = None
    status: Optional[PaymentStatus] = None
    paid_date: Optional[date] = None
    tenant_name: Optional[str] = None
    property_name: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None


def serialize_payment(payment) -> dict:
    return {
        "id": payment.id,
        "tenant_name": payment.tenant_name,
        "property_name": payment.property_name,
        "amount": float(payment.amount) if payment.amount is not None else 0.0,
        "period_label": payment.period_label,
        "due_date": payment.due_date.isoformat() if payment.due_date else None,
        "paid_date": payment.paid_date.isoformat() if payment.paid_date else None,
        "status": payment.status,
        "payment_method": payment.payment_method,
        "notes": payment.notes,
        "updated_at": format_datetime_for_api(payment.updated_at),
    }


@router.get("")
async def list_payments(
    month: Optional[str] = Query(default=None, description="Limit to a month (requires year)"),
    year: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    """List payments, optionally for one period."""
    period = None
    if month is not None and year is not None:
        try:
            period = PeriodKey.from_parts(month, year)
        except MalformedPeriodLabel as e:
            raise HTTPException(status_code=422, detail=str(e))

    payments = services.list_payments(db, period)
    return {"payments": [serialize_payment(p) for p in payments], "count": len(payments)}


@router.get("/{payment_id}")
async def get_payment(payment_id: int, db: Session = Depends(get_db)):
    payment = services.get_payment(db, payment_id)
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return serialize_payment(payment)


@router.post("", status_code=201)
def create_payment(request: PaymentCreate, db: Session = Depends(get_db)):
    """Record a rent payment."""
    payment = services.create_payment(db, **request.model_dump())
    return serialize_payment(payment)


@router.patch("/{payment_id}")
def update_payment(payment_id: int, request: PaymentUpdate, db: Session = Depends(get_db)):
    """Update a payment (e.g. mark it paid or overdue)."""
    changes = request.model_dump(exclude_unset=True)
    try:
        payment = services.update_payment(db, payment_id, **changes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    if not payment:
        raise HTTPException(status_code=404, detail="Payment not found")
    return serialize_payment(payment)


@router.delete("/{payment_id}")
def delete_payment(payment_id: int, db: Session = Depends(get_db)):
    if not services.delete_payment(db, payment_id):
        raise HTTPException(status_code=404, detail="Payment not found")
    return {"deleted": payment_id}
