"""
Pydantic schemas for Reports module

Response models for the report and dashboard endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ReportSummary(BaseModel):
    """Headline figures for the period"""
    total_sales: int = Field(..., description="Number of sales")
    total_revenue: Decimal = Field(..., description="Sum of sale totals")
    total_profit: Decimal = Field(..., description="Sum of sale profits")
    total_expenses: Decimal = Field(..., description="Sum of expenses")
    net_profit: Decimal = Field(..., description="Profit minus expenses")
    profit_margin: Decimal = Field(..., description="Profit over revenue, in percent")
    average_order_value: Decimal = Field(..., description="Revenue per sale")


class TopProduct(BaseModel):
    product_id: int
    name: str
    quantity: int
    revenue: Decimal
    profit: Decimal


class TopCustomer(BaseModel):
    customer_id: Optional[int] = Field(None, description="None for walk-in sales")
    name: str
    sales: int
    revenue: Decimal
    profit: Decimal


class ExpenseCategoryBreakdown(BaseModel):
    category: str
    amount: Decimal
    count: int


class DailySales(BaseModel):
    date: str
    sales: int
    revenue: Decimal
    profit: Decimal


class RecentSale(BaseModel):
    id: int
    date: Optional[datetime] = None
    customer: str
    amount: Decimal
    profit: Decimal
    items: int
    status: str


class ReportResponse(BaseModel):
    """Response for the business report"""
    date_range: str
    summary: ReportSummary
    top_products: List[TopProduct]
    top_customers: List[TopCustomer]
    expense_categories: List[ExpenseCategoryBreakdown]
    sales_trend: List[DailySales]
    recent_sales: List[RecentSale]


class RecentActivity(BaseModel):
    id: int
    type: str
    description: str
    amount: Decimal
    date: Optional[datetime] = None
    items: int


class DashboardResponse(BaseModel):
    """Response for the dashboard counters"""
    total_sales: int
    today_sales: Decimal
    total_products: int
    low_stock: int = Field(..., description="Products at or below their minimum stock")
    pending_payments: int = Field(..., description="Sales not fully paid")
    total_revenue: Decimal
    supplier_balance: Decimal = Field(..., description="Outstanding product and transport balance owed to suppliers")
    recent_activities: List[RecentActivity]
