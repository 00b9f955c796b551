from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal


class ExpenseCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    date: date
    description: Optional[str] = Field(None, max_length=255)


class ExpenseUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=15, decimal_places=2)
    date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=255)


class ExpenseOut(BaseModel):
    id: int
    category: str
    amount: Decimal
    date: date
    description: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ExpenseList(BaseModel):
    items: List[ExpenseOut]
    total: int
    total_amount: Decimal
    limit: int
    offset: int
