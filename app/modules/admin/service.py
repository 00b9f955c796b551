"""
Database cleaning for the admin console.

Groups are deleted children first so the foreign keys hold at every step.
Deleting ledger entries on their own re-derives the owning balances, so the
remaining sales and purchases stay consistent with what is left.
"""
from typing import Dict, Any, Tuple
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.common.exceptions import InvalidStateError
from app.modules.admin.schemas import CleanDatabaseRequest
from app.modules.categories.models import Category
from app.modules.customers.models import Customer
from app.modules.expenses.models import Expense
from app.modules.ledger.service import reproject_sale, reproject_purchase
from app.modules.ograi.models import Supplier, OgraiTransaction, OgraiPaymentHistory
from app.modules.products.models import Product
from app.modules.sales.models import Sale, SaleItem, PaymentHistory, SaleReturn, ReturnItem
from app.modules.sales.service import ReturnService

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, db: Session):
        self.db = db

    def get_clean_counts(self) -> Dict[str, Dict[str, int]]:
        return {
            "will_delete": {
                "sales": self.db.query(Sale).count(),
                "sale_items": self.db.query(SaleItem).count(),
                "returns": self.db.query(SaleReturn).count(),
                "return_items": self.db.query(ReturnItem).count(),
                "payment_history": self.db.query(PaymentHistory).count(),
                "customers": self.db.query(Customer).count(),
                "expenses": self.db.query(Expense).count(),
                "suppliers": self.db.query(Supplier).count(),
                "ograi_transactions": self.db.query(OgraiTransaction).count(),
                "ograi_payment_history": self.db.query(OgraiPaymentHistory).count(),
            },
            "will_keep": {
                "categories": self.db.query(Category).count(),
                "products": self.db.query(Product).count(),
            },
        }

    def _delete_all(self, model) -> int:
        return self.db.query(model).delete(synchronize_session=False)

    def _reverse_all_returns(self) -> Tuple[int, int]:
        """Undo every return, newest first, so the sales they shrank are whole again."""
        return_service = ReturnService(self.db)
        returns = self.db.query(SaleReturn).order_by(SaleReturn.id.desc()).all()
        item_count = sum(len(sale_return.items) for sale_return in returns)
        for sale_return in returns:
            return_service.reverse_return(sale_return)
        self.db.flush()
        return item_count, len(returns)

    def clean_database(self, data: CleanDatabaseRequest, user_id: int) -> Dict[str, Any]:
        """
        Delete the selected groups in one transaction.

        Deleting sales takes their items, ledger entries and returns along.
        Cleaning returns on their own reverses each of them, refund entry
        included, so the sales they shrank are whole again.
        Deleting suppliers takes their purchases along. Customers can only
        go together with sales, or once no sale references them.
        """
        try:
            deleted: Dict[str, Any] = {}

            delete_sale_entries = data.payment_history or data.sales
            delete_purchases = data.ograi_transactions or data.suppliers
            delete_purchase_entries = data.ograi_payment_history or delete_purchases

            if data.customers and not data.sales:
                referenced = self.db.query(Sale).filter(Sale.customer_id.isnot(None)).count()
                if referenced:
                    raise InvalidStateError(
                        f"{referenced} sale(s) still reference customers; clean sales as well"
                    )

            # Return lines and returns point at sale entries, so they go first
            if data.sales:
                deleted["return_items"] = self._delete_all(ReturnItem)
                deleted["returns"] = self._delete_all(SaleReturn)
            elif data.returns:
                deleted["return_items"], deleted["returns"] = self._reverse_all_returns()

            if delete_sale_entries:
                deleted["payment_history"] = self._delete_all(PaymentHistory)

            if data.sales:
                deleted["sale_items"] = self._delete_all(SaleItem)
                deleted["sales"] = self._delete_all(Sale)
            elif delete_sale_entries:
                self.db.expire_all()
                for sale in self.db.query(Sale).order_by(Sale.id.asc()).with_for_update(of=Sale).all():
                    reproject_sale(self.db, sale)

            if delete_purchase_entries:
                deleted["ograi_payment_history"] = self._delete_all(OgraiPaymentHistory)

            if delete_purchases:
                deleted["ograi_transactions"] = self._delete_all(OgraiTransaction)
            elif delete_purchase_entries:
                self.db.expire_all()
                for transaction in self.db.query(OgraiTransaction).order_by(
                    OgraiTransaction.id.asc()
                ).with_for_update(of=OgraiTransaction).all():
                    reproject_purchase(self.db, transaction)

            if data.suppliers:
                deleted["suppliers"] = self._delete_all(Supplier)

            if data.customers:
                deleted["customers"] = self._delete_all(Customer)

            if data.expenses:
                deleted["expenses"] = self._delete_all(Expense)

            if data.reset_product_quantities:
                self.db.query(Product).update({Product.quantity: 0}, synchronize_session=False)
                deleted["reset_product_quantities"] = True

            self.db.commit()
            self.db.expire_all()

            logger.warning(f"Database cleaned by user {user_id}: {deleted}")

            return {
                "message": "Selected data cleaned successfully.",
                "deleted_counts": deleted,
            }

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error cleaning database: {str(e)}"
            )
