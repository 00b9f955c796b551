"""
Mutators for the supplier purchase ledger ("Ograi").

Purchases track the goods balance and the transport balance separately.
Overpaying is allowed here (it is how the ``overpaid`` status arises) and
no entry is protected, unlike the sales ledger.
"""
from typing import Optional, Dict, Any, List
import logging

from fastapi import HTTPException, status
from sqlalchemy import or_, func
from sqlalchemy.orm import Session

from app.common.exceptions import NotFoundError, InvalidStateError, LedgerValidationError
from app.common.mixins import utcnow
from app.modules.ledger.projector import ZERO, PurchaseStatus, purchase_status, to_money
from app.modules.ledger.service import reproject_purchase
from app.modules.ograi.models import Supplier, OgraiTransaction, OgraiPaymentHistory
from app.modules.ograi.schemas import (
    SupplierCreate, SupplierUpdate, PurchaseCreate,
    PurchasePaymentCreate, PurchasePaymentUpdate
)

logger = logging.getLogger(__name__)


def lock_purchase(db: Session, transaction_id: int) -> OgraiTransaction:
    transaction = (
        db.query(OgraiTransaction)
        .filter(OgraiTransaction.id == transaction_id)
        .with_for_update(of=OgraiTransaction)
        .first()
    )
    if not transaction:
        raise NotFoundError(f"Transaction {transaction_id} not found")
    return transaction


class SupplierService:
    """Suppliers and their outstanding totals"""

    def __init__(self, db: Session):
        self.db = db

    def find_or_create(self, name: str, contact_number: Optional[str] = None, address: Optional[str] = None) -> Supplier:
        """Exact name match, otherwise a new supplier. Does not commit."""
        supplier = self.db.query(Supplier).filter(Supplier.name == name).first()
        if supplier is None:
            supplier = Supplier(name=name, contact_number=contact_number or None, address=address or None)
            self.db.add(supplier)
            self.db.flush()
            logger.info(f"Created supplier {supplier.id} '{name}' from a purchase")
        return supplier

    def create_supplier(self, data: SupplierCreate) -> Supplier:
        try:
            existing = self.db.query(Supplier).filter(Supplier.name == data.name).first()
            if existing:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="Supplier with this name already exists"
                )

            supplier = Supplier(**data.model_dump())
            self.db.add(supplier)
            self.db.commit()
            self.db.refresh(supplier)
            return supplier

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating supplier: {str(e)}"
            )

    def get_suppliers_with_stats(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        """Suppliers by name with transaction count, totals, paid and still owed."""
        query = (
            self.db.query(
                Supplier,
                func.count(OgraiTransaction.id),
                func.coalesce(func.sum(OgraiTransaction.total_amount), 0),
                func.coalesce(func.sum(OgraiTransaction.amount_paid), 0),
                func.coalesce(func.sum(OgraiTransaction.remaining_amount), 0),
                func.coalesce(func.sum(OgraiTransaction.transport_remaining), 0),
            )
            .outerjoin(OgraiTransaction, OgraiTransaction.supplier_id == Supplier.id)
            .group_by(Supplier.id)
        )
        if search:
            query = query.filter(or_(
                Supplier.name.ilike(f"%{search}%"),
                Supplier.contact_number == search
            ))

        results = []
        for supplier, count, total_amount, total_paid, total_remaining, transport_remaining in query.order_by(Supplier.name.asc()).all():
            results.append({
                "id": supplier.id,
                "name": supplier.name,
                "contact_number": supplier.contact_number,
                "address": supplier.address,
                "created_at": supplier.created_at,
                "total_transactions": count,
                "total_amount": to_money(total_amount),
                "total_paid": to_money(total_paid),
                "total_remaining": to_money(total_remaining),
                "transport_remaining": to_money(transport_remaining),
            })
        return results

    def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = self.db.query(Supplier).filter(Supplier.id == supplier_id).first()
        if not supplier:
            raise NotFoundError(f"Supplier {supplier_id} not found")
        return supplier

    def update_supplier(self, supplier_id: int, data: SupplierUpdate) -> Supplier:
        try:
            supplier = self.get_supplier(supplier_id)
            changes = data.model_dump(exclude_unset=True)

            if changes.get("name") and changes["name"] != supplier.name:
                clash = self.db.query(Supplier).filter(
                    Supplier.name == changes["name"],
                    Supplier.id != supplier_id
                ).first()
                if clash:
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail="Supplier with this name already exists"
                    )

            for field, value in changes.items():
                setattr(supplier, field, value)

            self.db.commit()
            self.db.refresh(supplier)
            return supplier

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error updating supplier: {str(e)}"
            )

    def delete_supplier(self, supplier_id: int) -> Dict[str, str]:
        supplier = self.get_supplier(supplier_id)
        count = self.db.query(OgraiTransaction).filter(OgraiTransaction.supplier_id == supplier_id).count()
        if count:
            raise InvalidStateError("Cannot delete supplier with existing transactions")

        self.db.delete(supplier)
        self.db.commit()
        logger.info(f"Deleted supplier {supplier_id}")
        return {"message": "Supplier deleted successfully"}


class OgraiTransactionService:
    """Purchases on credit from suppliers"""

    def __init__(self, db: Session):
        self.db = db

    def create_purchase(self, data: PurchaseCreate, user_id: int) -> OgraiTransaction:
        """
        Record a purchase. The goods total is quantity × price per unit; any
        amount paid up front (goods or transport) becomes one combined entry.
        """
        try:
            supplier = SupplierService(self.db).find_or_create(
                data.supplier_name, data.contact_number, data.address
            )

            total_amount = to_money(to_money(data.quantity) * to_money(data.price_per_unit))
            transport_fee = to_money(data.transport_fee)

            transaction = OgraiTransaction(
                supplier_id=supplier.id,
                supplier_name=data.supplier_name,
                contact_number=data.contact_number,
                address=data.address,
                transaction_date=data.transaction_date or utcnow(),
                product_name=data.product_name,
                quantity=to_money(data.quantity),
                price_per_unit=to_money(data.price_per_unit),
                total_amount=total_amount,
                amount_paid=ZERO,
                remaining_amount=total_amount,
                overpaid_amount=ZERO,
                transport_fee=transport_fee,
                transport_paid=ZERO,
                transport_remaining=transport_fee,
                status=PurchaseStatus.PENDING,
                payment_method=data.payment_method or "cash",
                notes=data.notes,
                created_by=user_id
            )
            self.db.add(transaction)
            self.db.flush()

            amount_paid = to_money(data.amount_paid)
            transport_paid = to_money(data.transport_paid)
            if amount_paid > ZERO or transport_paid > ZERO:
                self.db.add(OgraiPaymentHistory(
                    transaction_id=transaction.id,
                    payment_amount=amount_paid,
                    transport_payment=transport_paid,
                    total_payment=amount_paid + transport_paid,
                    payment_method=transaction.payment_method,
                    payment_date=utcnow(),
                    notes="Initial payment",
                    created_by=user_id
                ))

            reproject_purchase(self.db, transaction)
            self.db.commit()
            self.db.refresh(transaction)

            logger.info(
                f"Purchase {transaction.id} from '{supplier.name}': total {transaction.total_amount}, "
                f"transport {transaction.transport_fee}, status {transaction.status.value}"
            )
            return transaction

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error creating transaction: {str(e)}"
            )

    def get_purchases(
        self,
        status_filter: Optional[str] = None,
        supplier_id: Optional[int] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Dict[str, Any]:
        """
        Newest first. ``pending`` keeps purchases with anything still owed on
        goods or transport, ``cleared`` those with nothing owed on either.
        """
        query = self.db.query(OgraiTransaction)

        if status_filter == "pending":
            query = query.filter(or_(OgraiTransaction.remaining_amount > 0, OgraiTransaction.transport_remaining > 0))
        elif status_filter == "cleared":
            query = query.filter(OgraiTransaction.remaining_amount == 0, OgraiTransaction.transport_remaining == 0)
        elif status_filter not in (None, "", "all"):
            raise LedgerValidationError("status must be one of: pending, cleared, all")

        if supplier_id:
            query = query.filter(OgraiTransaction.supplier_id == supplier_id)
        if search:
            query = query.filter(or_(
                OgraiTransaction.supplier_name.ilike(f"%{search}%"),
                OgraiTransaction.product_name.ilike(f"%{search}%"),
                OgraiTransaction.contact_number == search
            ))

        total = query.count()
        transactions = (
            query.order_by(OgraiTransaction.transaction_date.desc(), OgraiTransaction.id.desc())
            .offset(offset).limit(limit).all()
        )
        return {"items": transactions, "total": total, "limit": limit, "offset": offset}

    def get_purchase(self, transaction_id: int) -> OgraiTransaction:
        transaction = self.db.query(OgraiTransaction).filter(OgraiTransaction.id == transaction_id).first()
        if not transaction:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    def delete_purchase(self, transaction_id: int) -> Dict[str, str]:
        """Only purchases settled on both goods and transport can be deleted."""
        try:
            transaction = lock_purchase(self.db, transaction_id)
            projection = reproject_purchase(self.db, transaction)
            if purchase_status(projection) != PurchaseStatus.COMPLETE:
                raise InvalidStateError("Only completed purchases can be deleted")

            self.db.delete(transaction)
            self.db.commit()
            logger.info(f"Purchase {transaction_id} deleted")
            return {"message": "Transaction deleted successfully"}

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting transaction: {str(e)}"
            )


class OgraiPaymentService:
    """Combined goods/transport payments against a purchase"""

    def __init__(self, db: Session):
        self.db = db

    def _get_entry(self, entry_id: int) -> OgraiPaymentHistory:
        entry = self.db.query(OgraiPaymentHistory).filter(OgraiPaymentHistory.id == entry_id).first()
        if not entry:
            raise NotFoundError(f"Payment record {entry_id} not found")
        return entry

    def record_payment(self, transaction_id: int, data: PurchasePaymentCreate, user_id: int) -> OgraiTransaction:
        """Append a payment; at least one of the two amounts must be positive."""
        try:
            payment_amount = to_money(data.payment_amount)
            transport_payment = to_money(data.transport_payment)
            if payment_amount <= ZERO and transport_payment <= ZERO:
                raise LedgerValidationError("At least one payment amount is required")

            transaction = lock_purchase(self.db, transaction_id)
            self.db.add(OgraiPaymentHistory(
                transaction_id=transaction.id,
                payment_amount=payment_amount,
                transport_payment=transport_payment,
                total_payment=payment_amount + transport_payment,
                payment_method=data.payment_method or "cash",
                payment_date=data.payment_date or utcnow(),
                notes=data.notes,
                created_by=user_id
            ))

            reproject_purchase(self.db, transaction)
            self.db.commit()
            self.db.refresh(transaction)

            logger.info(
                f"Payment {payment_amount} + transport {transport_payment} on purchase {transaction.id}, "
                f"status {transaction.status.value}"
            )
            return transaction

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error recording payment: {str(e)}"
            )

    def update_payment(self, entry_id: int, data: PurchasePaymentUpdate) -> OgraiPaymentHistory:
        try:
            entry = self._get_entry(entry_id)
            transaction = lock_purchase(self.db, entry.transaction_id)
            changes = data.model_dump(exclude_unset=True)

            payment_amount = to_money(changes["payment_amount"]) if changes.get("payment_amount") is not None else to_money(entry.payment_amount)
            transport_payment = to_money(changes["transport_payment"]) if changes.get("transport_payment") is not None else to_money(entry.transport_payment)
            if payment_amount <= ZERO and transport_payment <= ZERO:
                raise LedgerValidationError("At least one payment amount is required")

            entry.payment_amount = payment_amount
            entry.transport_payment = transport_payment
            entry.total_payment = payment_amount + transport_payment
            if changes.get("payment_method"):
                entry.payment_method = changes["payment_method"]
            if changes.get("payment_date") is not None:
                entry.payment_date = changes["payment_date"]
            if "notes" in changes:
                entry.notes = changes["notes"]

            reproject_purchase(self.db, transaction)
            self.db.commit()
            self.db.refresh(entry)
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

    def delete_payment(self, entry_id: int) -> OgraiTransaction:
        """Remove any entry, initial one included, and re-derive both balances."""
        try:
            entry = self._get_entry(entry_id)
            transaction = lock_purchase(self.db, entry.transaction_id)

            self.db.delete(entry)
            reproject_purchase(self.db, transaction)
            self.db.commit()
            self.db.refresh(transaction)

            logger.info(f"Payment record {entry_id} deleted from purchase {transaction.id}")
            return transaction

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error deleting payment: {str(e)}"
            )

    def list_payments(self, transaction_id: Optional[int] = None) -> List[OgraiPaymentHistory]:
        query = self.db.query(OgraiPaymentHistory)
        if transaction_id is not None:
            query = query.filter(OgraiPaymentHistory.transaction_id == transaction_id)
        return query.order_by(OgraiPaymentHistory.payment_date.desc(), OgraiPaymentHistory.id.desc()).all()
