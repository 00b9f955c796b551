"""
Write path for derived balances, and the integrity job that re-checks them.

Every mutator ends with ``reproject_sale`` or ``reproject_purchase``: the
stored balances are replaced by a projection over the full live entry
history of the transaction. ``LedgerReconciliationService`` runs the same
projection over every transaction to find (and optionally repair) rows
whose stored values disagree with their ledger.
"""
from decimal import Decimal
from typing import List, Dict, Any
import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.modules.ledger.projector import (
    BalanceProjection, SalePaymentEvent, PurchasePaymentEvent,
    project, sale_status, purchase_status, to_money
)
from app.modules.sales.models import Sale, PaymentHistory
from app.modules.ograi.models import OgraiTransaction, OgraiPaymentHistory

logger = logging.getLogger(__name__)


def sale_events(db: Session, sale_id: int) -> List[SalePaymentEvent]:
    rows = (
        db.query(PaymentHistory.amount)
        .filter(PaymentHistory.sale_id == sale_id)
        .order_by(PaymentHistory.payment_date.asc(), PaymentHistory.id.asc())
        .all()
    )
    return [SalePaymentEvent(amount=amount) for (amount,) in rows]


def purchase_events(db: Session, transaction_id: int) -> List[PurchasePaymentEvent]:
    rows = (
        db.query(OgraiPaymentHistory.payment_amount, OgraiPaymentHistory.transport_payment)
        .filter(OgraiPaymentHistory.transaction_id == transaction_id)
        .order_by(OgraiPaymentHistory.payment_date.asc(), OgraiPaymentHistory.id.asc())
        .all()
    )
    return [
        PurchasePaymentEvent(payment_amount=payment, transport_payment=transport)
        for payment, transport in rows
    ]


def project_sale(db: Session, sale: Sale) -> BalanceProjection:
    return project(sale.total_amount, None, sale_events(db, sale.id))


def project_purchase(db: Session, transaction: OgraiTransaction) -> BalanceProjection:
    return project(transaction.total_amount, transaction.transport_fee, purchase_events(db, transaction.id))


def reproject_sale(db: Session, sale: Sale) -> BalanceProjection:
    """Flush pending entry changes, then rewrite the sale's derived fields."""
    db.flush()
    projection = project_sale(db, sale)
    sale.amount_paid = projection.amount_paid
    sale.remaining_amount = projection.remaining_amount
    sale.overpaid_amount = projection.overpaid_amount
    sale.payment_status = sale_status(projection)
    return projection


def reproject_purchase(db: Session, transaction: OgraiTransaction) -> BalanceProjection:
    """Flush pending entry changes, then rewrite both balance pairs and the status."""
    db.flush()
    projection = project_purchase(db, transaction)
    transaction.amount_paid = projection.amount_paid
    transaction.remaining_amount = projection.remaining_amount
    transaction.overpaid_amount = projection.overpaid_amount
    transaction.transport_paid = projection.secondary_paid
    transaction.transport_remaining = projection.secondary_remaining
    transaction.status = purchase_status(projection)
    return projection


def _diff(stored: Dict[str, Any], derived: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    changes = {}
    for field, value in derived.items():
        current = stored[field]
        if isinstance(value, Decimal):
            current = to_money(current)
        if current != value:
            changes[field] = {"stored": current, "derived": value}
    return changes


class LedgerReconciliationService:
    """
    From-scratch re-derivation of every sale and purchase balance.

    ``reconcile(repair=False)`` only reports drift. With ``repair=True`` the
    derived values are written back, all in one transaction.
    """

    def __init__(self, db: Session):
        self.db = db

    def _check_sale(self, sale: Sale) -> Dict[str, Dict[str, Any]]:
        projection = project_sale(self.db, sale)
        stored = {
            "amount_paid": sale.amount_paid,
            "remaining_amount": sale.remaining_amount,
            "overpaid_amount": sale.overpaid_amount,
            "payment_status": sale.payment_status,
        }
        derived = {
            "amount_paid": projection.amount_paid,
            "remaining_amount": projection.remaining_amount,
            "overpaid_amount": projection.overpaid_amount,
            "payment_status": sale_status(projection),
        }
        return _diff(stored, derived)

    def _check_purchase(self, transaction: OgraiTransaction) -> Dict[str, Dict[str, Any]]:
        projection = project_purchase(self.db, transaction)
        stored = {
            "amount_paid": transaction.amount_paid,
            "remaining_amount": transaction.remaining_amount,
            "overpaid_amount": transaction.overpaid_amount,
            "transport_paid": transaction.transport_paid,
            "transport_remaining": transaction.transport_remaining,
            "status": transaction.status,
        }
        derived = {
            "amount_paid": projection.amount_paid,
            "remaining_amount": projection.remaining_amount,
            "overpaid_amount": projection.overpaid_amount,
            "transport_paid": projection.secondary_paid,
            "transport_remaining": projection.secondary_remaining,
            "status": purchase_status(projection),
        }
        return _diff(stored, derived)

    def reconcile(self, repair: bool = False) -> Dict[str, Any]:
        try:
            drifted = []

            sales = self.db.query(Sale).order_by(Sale.id.asc()).with_for_update(of=Sale).all()
            for sale in sales:
                changes = self._check_sale(sale)
                if changes:
                    drifted.append({"kind": "sale", "id": sale.id, "changes": changes})
                    if repair:
                        reproject_sale(self.db, sale)

            transactions = self.db.query(OgraiTransaction).order_by(OgraiTransaction.id.asc()).with_for_update(of=OgraiTransaction).all()
            for transaction in transactions:
                changes = self._check_purchase(transaction)
                if changes:
                    drifted.append({"kind": "purchase", "id": transaction.id, "changes": changes})
                    if repair:
                        reproject_purchase(self.db, transaction)

            if repair:
                self.db.commit()
            else:
                self.db.rollback()

            if drifted:
                logger.warning(
                    f"Ledger reconciliation found {len(drifted)} drifted record(s)"
                    f"{' and repaired them' if repair else ''}"
                )
            else:
                logger.info(f"Ledger reconciliation checked {len(sales)} sale(s) and {len(transactions)} purchase(s), no drift")

            return {
                "checked_sales": len(sales),
                "checked_purchases": len(transactions),
                "drifted": drifted,
                "repaired": repair and bool(drifted),
            }

        except HTTPException:
            self.db.rollback()
            raise
        except Exception as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error reconciling ledger: {str(e)}"
            )
