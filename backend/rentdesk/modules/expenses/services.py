"""
Expense Services - Database operations for property expenses.
"""

from datetime import date
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from rentdesk.modules.expenses.models import Expense
from rentdesk.modules.tax.periods import PeriodKey, resolve_date


def get_expense(db: Session, expense_id: int) -> Optional[Expense]:
    """Get an expense by ID."""
    return db.query(Expense).filter(Expense.id == expense_id).first()


def list_expenses(db: Session, period: Optional[PeriodKey] = None) -> List[Expense]:
    """List expenses, newest first, optionally limited to one period."""
    expenses = db.query(Expense).order_by(Expense.expense_date.desc(), Expense.id.desc()).all()
    if period is None:
        return expenses
    return [e for e in expenses if resolve_date(e.expense_date) == period]


def create_expense(
    db: Session,
    category: str,
    amount: Decimal,
    expense_date: date,
    property_name: Optional[str] = None,
    description: Optional[str] = None,
) -> Expense:
    """Log a new expense."""
    expense = Expense(
        category=category.strip(),
        amount=amount,
        expense_date=expense_date,
        property_name=property_name,
        description=description,
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    return expense


def update_expense(db: Session, expense_id: int, **changes) -> Optional[Expense]:
    """Admin correction of an expense. Returns None if missing."""
    expense = get_expense(db, expense_id)
    if not expense:
        return None

    for name in ('category', 'amount', 'expense_date', 'property_name', 'description'):
        if name in changes and changes[name] is not None:
            setattr(expense, name, changes[name])

    db.commit()
    db.refresh(expense)
    return expense


def delete_expense(db: Session, expense_id: int) -> bool:
    """Delete an expense."""
    expense = get_expense(db, expense_id)
    if not expense:
        return False
    db.delete(expense)
    db.commit()
    return True
