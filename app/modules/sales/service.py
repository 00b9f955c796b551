"""
Mutators for the customer sales ledger.

Each public method runs in one database transaction: it row-locks the
sale (and the products whose stock it touches), applies its change,
re-projects the sale's balances from the full entry history and commits.
Any error rolls the whole unit back.
"""
from collections import defaultdict, OrderedDict
from typing import Optional, Dict, Any, List
import logging

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.common.exceptions import (
    NotFoundError, InvalidStateError, ProtectedEntryError, LedgerValidationError
)
from app.common.mixins import utcnow
from app.modules.customers.models import Customer
from app.modules.customers.service import CustomerService
from app.modules.ledger.profit import line_profit, sale_totals, refund_per_unit
from app.modules.ledger.projector import ZERO, SaleStatus, sale_status, to_money
from app.modules.ledger.service import reproject_sale, project_sale
from app.modules.products.service import lock_products
from app.modules.sales.models import Sale, SaleItem, PaymentHistory, SaleReturn, ReturnItem, EntryType
from app.modules.sales.schemas import SaleCreate, SalePaymentCreate, PaymentUpdate, ReturnCreate

logger = logging.getLogger(__name__)


def get_sale_or_404(db: Session, sale_id: int) -> Sale:
    sale = db.query(Sale).filter(Sale.id == sale_id).first()
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


def lock_sale(db: Session, sale_id: int) -> Sale:
    sale = db.query(Sale).filter(Sale.id == sale_id).with_for_update(of=Sale).first()
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found")
    return sale


class SaleService:
    """Sales: creation, search and guarded deletion"""

    def __init__(self, db: Session):
        self.db = db

    def create_sale(self, data: SaleCreate, user_id: int) -> Sale:
        """
        Create a sale, decrement stock and record the initial payment.

        Every product is locked and checked before any row is written, so a
        missing product aborts without touching stock. ``amount_paid``
        defaults to the full total; when positive it becomes the sale's
        first ledger entry.
        """
        try:
            products = lock_products(self.db, [item.product_id for item in data.items])

            lines = []
            subtotal = ZERO
            gross_profit = ZERO
            for item in data.items:
                product = products[item.product_id]
                unit_price = to_money(item.price if item.price is not None else product.price)
                per_unit = item.profit_per_unit if item.profit_per_unit is not None else product.profit_per_unit
                per_box = item.profit_per_box if item.profit_per_box is not None else product.profit_per_box

                line_total = to_money(unit_price * item.quantity)
                subtotal += line_total
                gross_profit += line_profit(item.quantity, product.units_per_box, per_unit, per_box)
                lines.append((product, item.quantity, unit_price, line_total))

            total_amount, profit = sale_totals(subtotal, gross_profit, data.profit_discount)
            if total_amount < ZERO:
                raise LedgerValidationError("The discount is larger than the sale total")

            amount_paid = to_money(data.amount_paid) if data.amount_paid is not None else total_amount
            if amount_paid > total_amount:
                raise LedgerValidationError(
                    f"Initial payment ({amount_paid}) exceeds the sale total ({total_amount})"
                )

            customer = None
            if data.customer:
                customer = CustomerService(self.db).find_or_create(
                    data.customer.name, data.customer.phone, data.customer.email
                )

            sale = Sale(
                customer_id=customer.id if customer else None,
                subtotal=subtotal,
                total_amount=total_amount,
                total_profit=profit,
                discount_amount=to_money(data.profit_discount),
                tax_amount=ZERO,
                amount_paid=ZERO,
                remaining_amount=total_amount,
                overpaid_amount=ZERO,
                payment_status=SaleStatus.PENDING,
                payment_method=data.payment_method or "cash",
                due_date=data.due_date,
                created_by=user_id
            )
            self.db.add(sale)

            for product, quantity, unit_price, line_total in lines:
                sale.sale_items.append(SaleItem(
                    product_id=product.id,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=line_total
                ))
                # Shortfalls are clamped, not rejected
                product.quantity = max(0, product.quantity - quantity)

            self.db.flush()

            if amount_paid > ZERO:
                self.db.add(PaymentHistory(
                    sale_id=sale.id,
                    amount=amount_paid,
                    entry_type=EntryType.PAYMENT,
                    payment_method=sale.payment_method,
                    payment_date=utcnow(),
                    notes="Initial payment",
                    created_by=user_id
                ))

            reproject_sale(self.db, sale)
            self.db.commit()
            self.db.refresh(sale)

            logger.info(
                f"Sale {sale.id} created: total {sale.total_amount}, paid {sale.amount_paid}, "
                f"status {sale.payment_status.value}"
            )
            return sale

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating sale: {str(e)}"
            )

    def get_sales(self, search: Optional[str] = None, limit: int = 50, offset: int = 0) -> Dict[str, Any]:
        """
        Newest first. ``search`` matches the sale id (when numeric), the
        customer's exact phone or a case-insensitive part of their name.
        Sales whose items were all returned are hidden.
        """
        query = (
            self.db.query(Sale)
            .outerjoin(Customer, Sale.customer_id == Customer.id)
            .filter(Sale.sale_items.any())
        )

        if search:
            search = search.strip()
            conditions = [Customer.phone == search, Customer.name.ilike(f"%{search}%")]
            if search.isdigit():
                conditions.append(Sale.id == int(search))
            query = query.filter(or_(*conditions))

        total = query.count()
        sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).offset(offset).limit(limit).all()

        return {"items": sales, "total": total, "limit": limit, "offset": offset}

    def get_pending_sales(self) -> List[Sale]:
        """Sales still owing money (pending or partial), newest first."""
        return (
            self.db.query(Sale)
            .filter(Sale.payment_status.in_([SaleStatus.PENDING, SaleStatus.PARTIAL]))
            .order_by(Sale.created_at.desc(), Sale.id.desc())
            .all()
        )

    def get_sale(self, sale_id: int) -> Sale:
        return get_sale_or_404(self.db, sale_id)

    def delete_sale(self, sale_id: int) -> Dict[str, str]:
        """
        Delete a fully paid sale without returns. Sold stock goes back to the
        products and the ledger entries cascade with the sale.
        """
        try:
            sale = lock_sale(self.db, sale_id)

            if sale.returns:
                raise InvalidStateError("Cannot delete a sale with returns. Delete the returns first.")

            projection = reproject_sale(self.db, sale)
            if sale_status(projection) != SaleStatus.PAID:
                raise InvalidStateError("Only fully paid sales can be deleted")

            if sale.sale_items:
                products = lock_products(self.db, [item.product_id for item in sale.sale_items])
                for item in sale.sale_items:
                    products[item.product_id].quantity += item.quantity

            self.db.delete(sale)
            self.db.commit()

            logger.info(f"Sale {sale_id} deleted and its stock restored")
            return {"message": "Sale deleted successfully"}

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting sale: {str(e)}"
            )


class SalePaymentService:
    """Payments against a sale: record, edit, delete, list"""

    def __init__(self, db: Session):
        self.db = db

    def _get_entry(self, entry_id: int) -> PaymentHistory:
        entry = self.db.query(PaymentHistory).filter(PaymentHistory.id == entry_id).first()
        if not entry:
            raise NotFoundError(f"Payment record {entry_id} not found")
        return entry

    def record_payment(self, sale_id: int, data: SalePaymentCreate, user_id: int) -> Sale:
        """Append a payment. It must be positive and not exceed what is still owed."""
        try:
            sale = lock_sale(self.db, sale_id)
            projection = project_sale(self.db, sale)

            amount = to_money(data.amount)
            if amount <= ZERO:
                raise LedgerValidationError("Payment amount must be greater than zero")
            if amount > projection.remaining_amount:
                raise LedgerValidationError(
                    f"Payment amount cannot exceed remaining amount of {projection.remaining_amount}"
                )

            self.db.add(PaymentHistory(
                sale_id=sale.id,
                amount=amount,
                entry_type=EntryType.PAYMENT,
                payment_method=data.payment_method or "cash",
                payment_date=data.payment_date or utcnow(),
                notes=data.notes or "Payment received",
                created_by=user_id
            ))

            reproject_sale(self.db, sale)
            self.db.commit()
            self.db.refresh(sale)

            logger.info(f"Payment of {amount} recorded on sale {sale.id}, remaining {sale.remaining_amount}")
            return sale

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error recording payment: {str(e)}"
            )

    def update_payment(self, entry_id: int, data: PaymentUpdate) -> PaymentHistory:
        """Edit a payment entry. The new amount may use up the balance it frees, no more."""
        try:
            entry = self._get_entry(entry_id)
            sale = lock_sale(self.db, entry.sale_id)

            if entry.entry_type == EntryType.REFUND:
                raise InvalidStateError("Refund entries belong to their return and cannot be edited")

            changes = data.model_dump(exclude_unset=True)

            if changes.get("amount") is not None:
                amount = to_money(changes["amount"])
                if amount <= ZERO:
                    raise LedgerValidationError("Payment amount must be greater than zero")
                available = project_sale(self.db, sale).remaining_amount + to_money(entry.amount)
                if amount > available:
                    raise LedgerValidationError(f"Payment amount cannot exceed {available}")
                entry.amount = amount

            if changes.get("payment_method"):
                entry.payment_method = changes["payment_method"]
            if changes.get("payment_date") is not None:
                entry.payment_date = changes["payment_date"]
            if "notes" in changes:
                entry.notes = changes["notes"]

            reproject_sale(self.db, sale)
            self.db.commit()
            self.db.refresh(entry)

            logger.info(f"Payment record {entry.id} on sale {sale.id} updated")
            return entry

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating payment: {str(e)}"
            )

    def delete_payment(self, entry_id: int) -> Sale:
        """
        Remove a payment and re-derive the sale. The chronologically first
        entry anchors the ledger: it can only go once it is the last one left.
        """
        try:
            entry = self._get_entry(entry_id)
            sale = lock_sale(self.db, entry.sale_id)

            if entry.entry_type == EntryType.REFUND:
                raise InvalidStateError("Refund entries are removed by deleting their return")

            entries = self.db.query(PaymentHistory).filter(PaymentHistory.sale_id == sale.id)
            first = entries.order_by(PaymentHistory.payment_date.asc(), PaymentHistory.id.asc()).first()
            if first.id == entry.id and entries.count() > 1:
                raise ProtectedEntryError(
                    "The initial payment cannot be deleted while later payments exist"
                )

            self.db.delete(entry)
            reproject_sale(self.db, sale)
            self.db.commit()
            self.db.refresh(sale)

            logger.info(f"Payment record {entry_id} deleted from sale {sale.id}, paid now {sale.amount_paid}")
            return sale

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting payment: {str(e)}"
            )

    def list_payment_history(self, sale_id: int) -> List[PaymentHistory]:
        get_sale_or_404(self.db, sale_id)
        return (
            self.db.query(PaymentHistory)
            .filter(PaymentHistory.sale_id == sale_id)
            .order_by(PaymentHistory.payment_date.desc(), PaymentHistory.id.desc())
            .all()
        )


class ReturnService:
    """Returns shrink a sale and refund the customer, including the profit share"""

    def __init__(self, db: Session):
        self.db = db

    def process_return(self, data: ReturnCreate, user_id: int) -> SaleReturn:
        """
        Return items of a sale.

        Each returned unit is worth ``unit_price * (1 + profit / subtotal)``
        using the sale's figures before the return. The sale loses the
        returned subtotal and the profit share, never more than its total.
        That credit first cancels what is still owed; only money paid above
        the reduced total is refunded, as a negative entry. Stock comes back
        and sale lines shrink or disappear.
        """
        try:
            sale = lock_sale(self.db, data.sale_id)
            paid_before = project_sale(self.db, sale).amount_paid

            requested = OrderedDict()
            for item in data.items:
                requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

            lines_by_product = defaultdict(list)
            for line in sale.sale_items:
                lines_by_product[line.product_id].append(line)

            for product_id, quantity in requested.items():
                lines = lines_by_product.get(product_id)
                if not lines:
                    raise LedgerValidationError(f"Product {product_id} is not part of sale {sale.id}")
                sold = sum(line.quantity for line in lines)
                if quantity > sold:
                    raise LedgerValidationError(
                        f"Cannot return {quantity} of product {product_id}: only {sold} left on sale {sale.id}"
                    )

            products = lock_products(self.db, requested.keys())

            sale_subtotal = to_money(sale.subtotal)
            sale_profit = to_money(sale.total_profit)
            sale_return = SaleReturn(
                sale_id=sale.id,
                reason=data.reason,
                refund_amount=ZERO,
                status="completed",
                processed_by=user_id
            )

            returned_subtotal = ZERO
            refund_total = ZERO
            for product_id, quantity in requested.items():
                left = quantity
                for line in lines_by_product[product_id]:
                    if left == 0:
                        break
                    taken = min(left, line.quantity)
                    unit_price = to_money(line.unit_price)
                    line_subtotal = to_money(unit_price * taken)
                    line_refund = to_money(refund_per_unit(unit_price, sale_subtotal, sale_profit) * taken)

                    sale_return.items.append(ReturnItem(
                        product_id=product_id,
                        quantity=taken,
                        unit_price=unit_price,
                        total_price=line_subtotal,
                        refund_amount=line_refund
                    ))
                    returned_subtotal += line_subtotal
                    refund_total += line_refund

                    if taken == line.quantity:
                        sale.sale_items.remove(line)
                    else:
                        line.quantity -= taken
                        line.total_price = to_money(unit_price * line.quantity)
                    left -= taken

                products[product_id].quantity += quantity

            profit_removed = min(sale_profit, max(ZERO, refund_total - returned_subtotal))
            base_reduction = min(to_money(sale.total_amount), refund_total)

            sale.subtotal = sale_subtotal - returned_subtotal
            sale.total_profit = sale_profit - profit_removed
            sale.total_amount = to_money(sale.total_amount) - base_reduction

            # Goods given back first come off what is still owed; cash only
            # goes back for what was paid above the reduced total
            cash_refund = min(base_reduction, max(ZERO, paid_before - to_money(sale.total_amount)))

            sale_return.refund_amount = base_reduction
            sale_return.subtotal_amount = returned_subtotal
            sale_return.profit_amount = profit_removed
            sale_return.base_amount_reduction = base_reduction
            sale_return.cash_refund_amount = cash_refund
            sale.returns.append(sale_return)

            if cash_refund > ZERO:
                refund_entry = PaymentHistory(
                    sale_id=sale.id,
                    amount=-cash_refund,
                    entry_type=EntryType.REFUND,
                    payment_method=sale.payment_method,
                    payment_date=utcnow(),
                    notes=f"Refund for return: {data.reason}",
                    created_by=user_id
                )
                self.db.add(refund_entry)
                sale_return.ledger_entry = refund_entry

            reproject_sale(self.db, sale)
            self.db.commit()
            self.db.refresh(sale_return)

            logger.info(
                f"Return {sale_return.id} on sale {sale.id}: credited {base_reduction}, "
                f"cash refunded {cash_refund}, sale total now {sale.total_amount}"
            )
            return sale_return

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error processing return: {str(e)}"
            )

    def reverse_return(self, sale_return: SaleReturn) -> Sale:
        """
        Put a sale back as it was before ``sale_return``: its refund entry
        goes, the sale gets back the subtotal, profit and total it lost, its
        lines are restored and the returned quantity leaves stock again
        (never below zero). Does not commit.
        """
        sale = lock_sale(self.db, sale_return.sale_id)
        products = lock_products(self.db, [item.product_id for item in sale_return.items])

        for item in sale_return.items:
            unit_price = to_money(item.unit_price)
            line = next(
                (l for l in sale.sale_items
                 if l.product_id == item.product_id and to_money(l.unit_price) == unit_price),
                None
            )
            if line is not None:
                line.quantity += item.quantity
                line.total_price = to_money(unit_price * line.quantity)
            else:
                sale.sale_items.append(SaleItem(
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price=unit_price,
                    total_price=to_money(unit_price * item.quantity)
                ))

            product = products[item.product_id]
            product.quantity = max(0, product.quantity - item.quantity)

        sale.subtotal = to_money(sale.subtotal) + to_money(sale_return.subtotal_amount)
        sale.total_profit = to_money(sale.total_profit) + to_money(sale_return.profit_amount)
        sale.total_amount = to_money(sale.total_amount) + to_money(sale_return.base_amount_reduction)

        if sale_return.ledger_entry is not None:
            self.db.delete(sale_return.ledger_entry)
        sale.returns.remove(sale_return)

        reproject_sale(self.db, sale)
        return sale

    def delete_return(self, return_id: int) -> Dict[str, str]:
        """Undo a return completely."""
        try:
            sale_return = self.db.query(SaleReturn).filter(SaleReturn.id == return_id).first()
            if not sale_return:
                raise NotFoundError(f"Return {return_id} not found")

            sale = self.reverse_return(sale_return)
            self.db.commit()

            logger.info(f"Return {return_id} deleted and reversed on sale {sale.id}")
            return {"message": "Return deleted successfully"}

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting return: {str(e)}"
            )

    def get_returns(self, sale_id: Optional[int] = None) -> Dict[str, Any]:
        query = self.db.query(SaleReturn)
        if sale_id is not None:
            query = query.filter(SaleReturn.sale_id == sale_id)
        returns = query.order_by(SaleReturn.created_at.desc(), SaleReturn.id.desc()).all()
        return {"items": returns, "total": len(returns)}
