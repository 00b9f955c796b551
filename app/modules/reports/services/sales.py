"""
Sales Reports Service

Builds the date-range business report: summary figures, top products,
top customers, expenses by category, daily trend and recent sales.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import desc, func

from .base import BaseReportService
from app.core.config import settings
from app.modules.ledger.projector import ZERO
from app.modules.sales.models import Sale, SaleItem
from app.modules.expenses.models import Expense
from app.modules.customers.models import Customer
from app.modules.products.models import Product


class SalesReportService(BaseReportService):
    """Service for generating the business report"""

    def get_report(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> Dict:
        """
        Generate the business report for a date range.

        Both bounds are whole days and inclusive. Without bounds the
        report covers all time.
        """
        if start_date and end_date and end_date < start_date:
            raise ValueError("end_date must be greater than or equal to start_date")

        if start_date and end_date:
            date_range = f"{start_date.isoformat()} - {end_date.isoformat()}"
        else:
            date_range = "All Time"

        return {
            "date_range": date_range,
            "summary": self._get_summary(start_date, end_date),
            "top_products": self._get_top_products(start_date, end_date),
            "top_customers": self._get_top_customers(start_date, end_date),
            "expense_categories": self._get_expenses_by_category(start_date, end_date),
            "sales_trend": self._get_daily_trend(start_date, end_date),
            "recent_sales": self._get_recent_sales(start_date, end_date),
        }

    def _get_summary(self, start_date: Optional[date], end_date: Optional[date]) -> Dict:
        sales_query = self._apply_date_filter(
            self._get_base_sale_query(), Sale.created_at, start_date, end_date
        )
        sales = sales_query.with_entities(
            func.count(Sale.id).label('total_sales'),
            func.sum(Sale.total_amount).label('total_revenue'),
            func.sum(Sale.total_profit).label('total_profit')
        ).first()

        expenses_query = self._apply_day_filter(
            self._get_base_expense_query(), Expense.date, start_date, end_date
        )
        total_expenses = self._money(
            expenses_query.with_entities(func.sum(Expense.amount)).scalar()
        )

        total_sales = sales.total_sales or 0
        total_revenue = self._money(sales.total_revenue)
        total_profit = self._money(sales.total_profit)

        if total_revenue > ZERO:
            profit_margin = self._money(total_profit / total_revenue * 100)
        else:
            profit_margin = ZERO

        if total_sales:
            average_order_value = self._money(total_revenue / total_sales)
        else:
            average_order_value = ZERO

        return {
            "total_sales": total_sales,
            "total_revenue": total_revenue,
            "total_profit": total_profit,
            "total_expenses": total_expenses,
            "net_profit": total_profit - total_expenses,
            "profit_margin": profit_margin,
            "average_order_value": average_order_value,
        }

    def _get_top_products(self, start_date: Optional[date], end_date: Optional[date]) -> List[Dict]:
        """
        Products ranked by revenue.

        Sale profit is spread over its lines in proportion to line total.
        """
        query = self.db.query(
            SaleItem.product_id,
            Product.name.label('product_name'),
            SaleItem.quantity,
            SaleItem.total_price,
            Sale.total_amount.label('sale_total'),
            Sale.total_profit.label('sale_profit')
        ).join(
            Sale, SaleItem.sale_id == Sale.id
        ).join(
            Product, SaleItem.product_id == Product.id
        )
        query = self._apply_date_filter(query, Sale.created_at, start_date, end_date)

        products: Dict[int, Dict] = {}
        for row in query.all():
            entry = products.setdefault(row.product_id, {
                "product_id": row.product_id,
                "name": row.product_name,
                "quantity": 0,
                "revenue": ZERO,
                "profit": Decimal("0"),
            })
            entry["quantity"] += row.quantity
            entry["revenue"] += self._money(row.total_price)
            sale_total = self._money(row.sale_total)
            if sale_total > ZERO:
                entry["profit"] += (
                    self._money(row.total_price) / sale_total * self._money(row.sale_profit)
                )

        ranked = sorted(products.values(), key=lambda p: p["revenue"], reverse=True)
        top = ranked[:settings.REPORT_TOP_N]
        for entry in top:
            entry["profit"] = self._money(entry["profit"])
        return top

    def _get_top_customers(self, start_date: Optional[date], end_date: Optional[date]) -> List[Dict]:
        query = self.db.query(
            Customer.id.label('customer_id'),
            Customer.name.label('customer_name'),
            func.count(Sale.id).label('sales'),
            func.sum(Sale.total_amount).label('revenue'),
            func.sum(Sale.total_profit).label('profit')
        ).select_from(Sale).outerjoin(
            Customer, Sale.customer_id == Customer.id
        )
        query = self._apply_date_filter(query, Sale.created_at, start_date, end_date)
        rows = query.group_by(Customer.id, Customer.name).order_by(
            desc(func.sum(Sale.total_amount))
        ).limit(settings.REPORT_TOP_N).all()

        return [
            {
                "customer_id": row.customer_id,
                "name": self._customer_label(row.customer_name),
                "sales": row.sales,
                "revenue": self._money(row.revenue),
                "profit": self._money(row.profit),
            }
            for row in rows
        ]

    def _get_expenses_by_category(self, start_date: Optional[date], end_date: Optional[date]) -> List[Dict]:
        query = self._apply_day_filter(
            self._get_base_expense_query(), Expense.date, start_date, end_date
        )
        rows = query.with_entities(
            Expense.category,
            func.sum(Expense.amount).label('amount'),
            func.count(Expense.id).label('count')
        ).group_by(Expense.category).order_by(desc(func.sum(Expense.amount))).all()

        return [
            {"category": row.category, "amount": self._money(row.amount), "count": row.count}
            for row in rows
        ]

    def _get_daily_trend(self, start_date: Optional[date], end_date: Optional[date]) -> List[Dict]:
        day = func.date(Sale.created_at)
        query = self._apply_date_filter(
            self._get_base_sale_query(), Sale.created_at, start_date, end_date
        )
        rows = query.with_entities(
            day.label('day'),
            func.count(Sale.id).label('sales'),
            func.sum(Sale.total_amount).label('revenue'),
            func.sum(Sale.total_profit).label('profit')
        ).group_by(day).order_by(day).all()

        return [
            {
                # PostgreSQL returns a date, SQLite an ISO string
                "date": str(row.day),
                "sales": row.sales,
                "revenue": self._money(row.revenue),
                "profit": self._money(row.profit),
            }
            for row in rows
        ]

    def _get_recent_sales(self, start_date: Optional[date], end_date: Optional[date]) -> List[Dict]:
        query = self._apply_date_filter(
            self._get_base_sale_query(), Sale.created_at, start_date, end_date
        )
        sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).limit(settings.REPORT_TOP_N).all()

        return [
            {
                "id": sale.id,
                "date": sale.created_at,
                "customer": self._customer_label(sale.customer.name if sale.customer else None),
                "amount": self._money(sale.total_amount),
                "profit": self._money(sale.total_profit),
                "items": len(sale.sale_items),
                "status": sale.payment_status.value,
            }
            for sale in sales
        ]
