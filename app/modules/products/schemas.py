from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal


class CategoryResponse(BaseModel):
    """Basic category info embedded in a product"""
    id: int
    name: str

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    category_id: Optional[int] = None
    price: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    quantity: int = Field(..., ge=0)
    min_stock: int = Field(10, ge=0)
    units_per_box: int = Field(10, ge=1)
    profit_per_unit: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    profit_per_box: Decimal = Field(Decimal("0"), ge=0, max_digits=15, decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)
    barcode: Optional[str] = Field(None, max_length=50)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    category_id: Optional[int] = None
    price: Optional[Decimal] = Field(None, gt=0, max_digits=15, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=0)
    min_stock: Optional[int] = Field(None, ge=0)
    units_per_box: Optional[int] = Field(None, ge=1)
    profit_per_unit: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    profit_per_box: Optional[Decimal] = Field(None, ge=0, max_digits=15, decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)
    barcode: Optional[str] = Field(None, max_length=50)


class ProductOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    barcode: Optional[str] = None
    price: Decimal
    quantity: int
    min_stock: int
    units_per_box: int
    profit_per_unit: Decimal
    profit_per_box: Decimal
    stock_status: str
    category: Optional[CategoryResponse] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ProductList(BaseModel):
    items: List[ProductOut]
    total: int
    limit: int
    offset: int
