from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import HTTPException, status
from typing import Optional, Dict, Any
from datetime import date
from decimal import Decimal
import logging

from app.common.exceptions import NotFoundError, LedgerValidationError
from app.modules.expenses.models import Expense
from app.modules.expenses.schemas import ExpenseCreate, ExpenseUpdate

logger = logging.getLogger(__name__)


class ExpenseService:
    """Shop running costs, subtracted from profit in the reports"""

    def __init__(self, db: Session):
        self.db = db

    def create_expense(self, data: ExpenseCreate, user_id: int) -> Expense:
        try:
            expense = Expense(**data.model_dump(), created_by=user_id)
            self.db.add(expense)
            self.db.commit()
            self.db.refresh(expense)
            logger.info(f"Recorded expense {expense.id}: {expense.category} {expense.amount}")
            return expense
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating expense: {str(e)}"
            )

    def get_expenses(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        category: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> Dict[str, Any]:
        """Expenses in an inclusive date range, newest first."""
        if start_date and end_date and start_date > end_date:
            raise LedgerValidationError("start_date must not be after end_date")

        query = self.db.query(Expense)
        if start_date:
            query = query.filter(Expense.date >= start_date)
        if end_date:
            query = query.filter(Expense.date <= end_date)
        if category:
            query = query.filter(Expense.category == category)

        total = query.count()
        total_amount = query.with_entities(func.coalesce(func.sum(Expense.amount), 0)).scalar()
        expenses = query.order_by(Expense.date.desc(), Expense.id.desc()).offset(offset).limit(limit).all()

        return {
            "items": expenses,
            "total": total,
            "total_amount": Decimal(str(total_amount or 0)),
            "limit": limit,
            "offset": offset
        }

    def get_expense_by_id(self, expense_id: int) -> Expense:
        expense = self.db.query(Expense).filter(Expense.id == expense_id).first()
        if not expense:
            raise NotFoundError(f"Expense {expense_id} not found")
        return expense

    def update_expense(self, expense_id: int, data: ExpenseUpdate) -> Expense:
        expense = self.get_expense_by_id(expense_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(expense, field, value)
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def delete_expense(self, expense_id: int) -> Dict[str, str]:
        expense = self.get_expense_by_id(expense_id)
        self.db.delete(expense)
        self.db.commit()
        return {"message": "Expense deleted"}
