"""
Expenses API routes.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from rentdesk.core.database import get_db
from rentdesk.modules.expenses import services
from rentdesk.modules.tax.exceptions import MalformedPeriodLabel
from rentdesk.modules.tax.periods import PeriodKey

router = APIRouter()


class ExpenseCreate(BaseModel):
    category: str = Field(min_length=1, max_length=100)
    amount: Decimal = Field(ge=0, decimal_places=2)
    expense_date: date
    property_name: Optional[str] = None
    description: Optional[str] = None


class ExpenseUpdate(BaseModel):
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    expense_date: Optional[date] = None
    property_name: Optional[str] = None
    description: Optional[str] = None


def serialize_expense(expense) -> dict:
    return {
        "id": expense.id,
        "property_name": expense.property_name,
        "category": expense.category,
        "amount": float(expense.amount) if expense.amount is not None else 0.0,
        "expense_date": expense.expense_date.isoformat(),
        "description": expense.description,
    }


@router.get("")
async def list_expenses(
    month: Optional[str] = Query(default=None, description="Limit to a month (requires year)"),
    year: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    """List expenses, optionally for one period."""
    period = None
    if month is not None and year is not None:
        try:
            period = PeriodKey.from_parts(month, year)
        except MalformedPeriodLabel as e:
            raise HTTPException(status_code=422, detail=str(e))

    expenses = services.list_expenses(db, period)
    return {"expenses": [serialize_expense(e) for e in expenses], "count": len(expenses)}


@router.post("", status_code=201)
def create_expense(request: ExpenseCreate, db: Session = Depends(get_db)):
    """Log an expense."""
    expense = services.create_expense(db, **request.model_dump())
    return serialize_expense(expense)


@router.patch("/{expense_id}")
def update_expense(expense_id: int, request: ExpenseUpdate, db: Session = Depends(get_db)):
    """Admin correction of an expense."""
    expense = services.update_expense(db, expense_id, **request.model_dump(exclude_unset=True))
    if not expense:
        raise HTTPException(status_code=404, detail="Expense not found")
    return serialize_expense(expense)


@router.delete("/{expense_id}")
def delete_expense(expense_id: int, db: Session = Depends(get_db)):
    if not services.delete_expense(db, expense_id):
        raise HTTPException(status_code=404, detail="Expense not found")
    return {"deleted": expense_id}
