"""
Dashboard Service

Headline counters for the landing page.
"""

from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy import func

from .base import BaseReportService
from app.core.config import settings
from app.modules.ledger.projector import SaleStatus
from app.modules.sales.models import Sale
from app.modules.products.models import Product
from app.modules.ograi.models import OgraiTransaction


class DashboardService(BaseReportService):
    """Service for the dashboard counters"""

    def get_dashboard(self) -> Dict:
        # created_at is stored in UTC
        today = datetime.now(timezone.utc).date()

        total_sales = self._get_base_sale_query().count()
        today_sales = self._apply_date_filter(
            self._get_base_sale_query(), Sale.created_at, today, today
        ).with_entities(func.sum(Sale.total_amount)).scalar()
        total_revenue = self._get_base_sale_query().with_entities(
            func.sum(Sale.total_amount)
        ).scalar()
        pending_payments = self._get_base_sale_query().filter(
            Sale.payment_status != SaleStatus.PAID
        ).count()

        total_products = self._get_base_product_query().count()
        low_stock = self._get_base_product_query().filter(
            Product.quantity <= Product.min_stock
        ).count()

        supplier_balance = self._get_base_purchase_query().with_entities(
            func.sum(OgraiTransaction.remaining_amount + OgraiTransaction.transport_remaining)
        ).scalar()

        return {
            "total_sales": total_sales,
            "today_sales": self._money(today_sales),
            "total_products": total_products,
            "low_stock": low_stock,
            "pending_payments": pending_payments,
            "total_revenue": self._money(total_revenue),
            "supplier_balance": self._money(supplier_balance),
            "recent_activities": self._get_recent_activities(),
        }

    def _get_recent_activities(self) -> List[Dict]:
        sales = self._get_base_sale_query().order_by(
            Sale.created_at.desc(), Sale.id.desc()
        ).limit(settings.REPORT_TOP_N).all()

        return [
            {
                "id": sale.id,
                "type": "sale",
                "description": (
                    f"Sale #{sale.id} to "
                    f"{self._customer_label(sale.customer.name if sale.customer else None)}"
                ),
                "amount": self._money(sale.total_amount),
                "date": sale.created_at,
                "items": len(sale.sale_items),
            }
            for sale in sales
        ]
