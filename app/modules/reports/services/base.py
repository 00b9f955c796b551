"""
Base service class for Reports module

Provides common functionality for all report services including
database session management, base queries and date-range filtering.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import and_
from sqlalchemy.orm import Session

from app.core.config import settings
from app.modules.ledger.projector import to_money
from app.modules.sales.models import Sale, SaleItem
from app.modules.expenses.models import Expense
from app.modules.products.models import Product
from app.modules.ograi.models import OgraiTransaction


class BaseReportService:
    """Base service class for all report services"""

    def __init__(self, db: Session):
        self.db = db

    def _get_base_sale_query(self):
        """Get base query for sales"""
        return self.db.query(Sale)

    def _get_base_sale_item_query(self):
        """Get base query for sale lines joined to their sale"""
        return self.db.query(SaleItem).join(Sale, SaleItem.sale_id == Sale.id)

    def _get_base_expense_query(self):
        """Get base query for expenses"""
        return self.db.query(Expense)

    def _get_base_product_query(self):
        """Get base query for products"""
        return self.db.query(Product)

    def _get_base_purchase_query(self):
        """Get base query for supplier purchases"""
        return self.db.query(OgraiTransaction)

    def _apply_date_filter(self, query, date_field, start_date: Optional[date], end_date: Optional[date]):
        """
        Apply a whole-day, inclusive date range to a timestamp column.

        A missing bound leaves that side open.
        """
        conditions = []
        if start_date:
            conditions.append(date_field >= datetime.combine(start_date, time.min))
        if end_date:
            conditions.append(date_field < datetime.combine(end_date + timedelta(days=1), time.min))
        if conditions:
            query = query.filter(and_(*conditions))
        return query

    def _apply_day_filter(self, query, date_field, start_date: Optional[date], end_date: Optional[date]):
        """Apply an inclusive range to a plain date column."""
        if start_date:
            query = query.filter(date_field >= start_date)
        if end_date:
            query = query.filter(date_field <= end_date)
        return query

    @staticmethod
    def _money(value) -> Decimal:
        return to_money(value)

    @staticmethod
    def _customer_label(name: Optional[str]) -> str:
        return name or settings.WALK_IN_CUSTOMER_NAME
