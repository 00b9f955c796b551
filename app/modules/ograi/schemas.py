from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from app.modules.ledger.projector import PurchaseStatus


# ===== SUPPLIERS =====

class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    contact_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    contact_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)


class SupplierOut(BaseModel):
    id: int
    name: str
    contact_number: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SupplierWithStats(SupplierOut):
    total_transactions: int = 0
    total_amount: Decimal = Decimal("0.00")
    total_paid: Decimal = Decimal("0.00")
    total_remaining: Decimal = Decimal("0.00")
    transport_remaining: Decimal = Decimal("0.00")


# ===== TRANSACTIONS =====

class PurchaseCreate(BaseModel):
    supplier_name: str = Field(..., min_length=1, max_length=200)
    contact_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=255)
    transaction_date: Optional[datetime] = None
    product_name: str = Field(..., min_length=1, max_length=200)
    quantity: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    price_per_unit: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    amount_paid: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    transport_fee: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    transport_paid: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    payment_method: str = Field("cash", max_length=50)
    notes: Optional[str] = None


class PurchasePaymentCreate(BaseModel):
    payment_amount: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    transport_payment: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    payment_method: str = Field("cash", max_length=50)
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None


class PurchasePaymentRecord(PurchasePaymentCreate):
    transaction_id: int


class PurchasePaymentUpdate(BaseModel):
    payment_amount: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    transport_payment: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_date: Optional[datetime] = None
    notes: Optional[str] = None


class PurchasePaymentOut(BaseModel):
    id: int
    transaction_id: int
    payment_amount: Decimal
    transport_payment: Decimal
    total_payment: Decimal
    payment_method: str
    payment_date: datetime
    notes: Optional[str] = None
    created_by: Optional[int] = None

    class Config:
        from_attributes = True


class PurchaseOut(BaseModel):
    id: int
    supplier_id: int
    supplier_name: str
    contact_number: Optional[str] = None
    address: Optional[str] = None
    transaction_date: datetime
    product_name: str
    quantity: Decimal
    price_per_unit: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    remaining_amount: Decimal
    overpaid_amount: Decimal
    transport_fee: Decimal
    transport_paid: Decimal
    transport_remaining: Decimal
    status: PurchaseStatus
    payment_method: str
    notes: Optional[str] = None
    created_by: Optional[int] = None
    created_at: datetime
    payment_history: List[PurchasePaymentOut] = []

    class Config:
        from_attributes = True


class PurchaseList(BaseModel):
    items: List[PurchaseOut]
    total: int
    limit: int
    offset: int
