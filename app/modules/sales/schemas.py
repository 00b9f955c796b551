from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import date, datetime
from decimal import Decimal

from app.modules.ledger.projector import SaleStatus
from app.modules.sales.models import EntryType


# ===== SALES =====

class SaleCustomerIn(BaseModel):
    """Customer as typed at the till; looked up by (name, phone) or created"""
    name: str = Field(..., max_length=200)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=100)


class SaleItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    profit_per_unit: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    profit_per_box: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)


class SaleCreate(BaseModel):
    items: List[SaleItemCreate] = Field(..., min_length=1)
    customer: Optional[SaleCustomerIn] = None
    payment_method: str = Field("cash", max_length=50)
    amount_paid: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    profit_discount: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    due_date: Optional[date] = None


class SalePaymentCreate(BaseModel):
    amount: Decimal = Field(..., max_digits=15, decimal_places=2)
    payment_method: str = Field("cash", max_length=50)
    notes: Optional[str] = None
    payment_date: Optional[datetime] = None


class SaleCustomerOut(BaseModel):
    id: int
    name: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True


class SaleItemOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal

    class Config:
        from_attributes = True


class PaymentHistoryOut(BaseModel):
    id: int
    sale_id: int
    amount: Decimal
    entry_type: EntryType
    payment_method: str
    payment_date: datetime
    notes: Optional[str] = None
    created_by: Optional[int] = None

    class Config:
        from_attributes = True


class SaleOut(BaseModel):
    id: int
    customer: Optional[SaleCustomerOut] = None
    subtotal: Decimal
    total_amount: Decimal
    total_profit: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    amount_paid: Decimal
    remaining_amount: Decimal
    overpaid_amount: Decimal
    payment_status: SaleStatus
    payment_method: str
    due_date: Optional[date] = None
    created_by: Optional[int] = None
    created_at: datetime
    sale_items: List[SaleItemOut] = []
    payment_history: List[PaymentHistoryOut] = []

    class Config:
        from_attributes = True


class SaleList(BaseModel):
    items: List[SaleOut]
    total: int
    limit: int
    offset: int


# ===== PAYMENT HISTORY =====

class PaymentRecordCreate(SalePaymentCreate):
    sale_id: int


class PaymentUpdate(BaseModel):
    amount: Optional[Decimal] = Field(None, max_digits=15, decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None


# ===== RETURNS =====

class ReturnItemCreate(BaseModel):
    product_id: int
    quantity: int = Field(..., ge=1)


class ReturnCreate(BaseModel):
    sale_id: int
    reason: str = Field(..., min_length=1, max_length=255)
    items: List[ReturnItemCreate] = Field(..., min_length=1)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("A reason is required for a return")
        return v.strip()


class ReturnItemOut(BaseModel):
    id: int
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    refund_amount: Decimal

    class Config:
        from_attributes = True


class ReturnOut(BaseModel):
    id: int
    sale_id: int
    reason: str
    refund_amount: Decimal
    subtotal_amount: Decimal
    profit_amount: Decimal
    cash_refund_amount: Decimal = Decimal("0")
    status: str
    ledger_entry_id: Optional[int] = None
    processed_by: Optional[int] = None
    created_at: datetime
    items: List[ReturnItemOut] = []

    class Config:
        from_attributes = True


class ReturnList(BaseModel):
    items: List[ReturnOut]
    total: int
