from fastapi import APIRouter, status, Depends, Query
from typing import Optional, List
from sqlalchemy.orm import Session

from app.dependencies.dbDependecies import get_db
from app.modules.auth.dependencies import AuthDependencies, require_admin
from app.modules.auth.schemas import AuthContext
from app.modules.ograi.service import SupplierService, OgraiTransactionService, OgraiPaymentService
from app.modules.ograi.schemas import (
    SupplierCreate, SupplierUpdate, SupplierOut, SupplierWithStats,
    PurchaseCreate, PurchaseOut, PurchaseList,
    PurchasePaymentCreate, PurchasePaymentRecord, PurchasePaymentUpdate, PurchasePaymentOut
)

ograi_router = APIRouter(prefix="/ograi", tags=["Ograi"])


# ===== TRANSACTIONS =====

@ograi_router.post("/transactions", response_model=PurchaseOut, status_code=status.HTTP_201_CREATED)
def create_transaction(
    data: PurchaseCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Record a purchase; the supplier is matched by name or created."""
    return OgraiTransactionService(db).create_purchase(data, auth_context.user_id)


@ograi_router.get("/transactions", response_model=PurchaseList)
def list_transactions(
    status_filter: Optional[str] = Query(None, alias="status", description="pending, cleared or all"),
    supplier_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Supplier, product or contact number"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return OgraiTransactionService(db).get_purchases(status_filter, supplier_id, search, limit, offset)


@ograi_router.get("/transactions/{transaction_id}", response_model=PurchaseOut)
def get_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return OgraiTransactionService(db).get_purchase(transaction_id)


@ograi_router.put("/transactions/{transaction_id}", response_model=PurchaseOut)
def pay_transaction(
    transaction_id: int,
    data: PurchasePaymentCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Record a goods and/or transport payment against the purchase."""
    return OgraiPaymentService(db).record_payment(transaction_id, data, auth_context.user_id)


@ograi_router.delete("/transactions/{transaction_id}")
def delete_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(require_admin())
):
    return OgraiTransactionService(db).delete_purchase(transaction_id)


# ===== PAYMENT HISTORY =====

@ograi_router.get("/payment-history", response_model=List[PurchasePaymentOut])
def list_payment_history(
    transaction_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return OgraiPaymentService(db).list_payments(transaction_id)


@ograi_router.post("/payment-history", response_model=PurchaseOut, status_code=status.HTTP_201_CREATED)
def add_payment(
    data: PurchasePaymentRecord,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return OgraiPaymentService(db).record_payment(data.transaction_id, data, auth_context.user_id)


@ograi_router.patch("/payment-history/{payment_id}", response_model=PurchasePaymentOut)
def update_payment(
    payment_id: int,
    data: PurchasePaymentUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return OgraiPaymentService(db).update_payment(payment_id, data)


@ograi_router.delete("/payment-history/{payment_id}", response_model=PurchaseOut)
def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return OgraiPaymentService(db).delete_payment(payment_id)


# ===== SUPPLIERS =====

@ograi_router.get("/suppliers", response_model=List[SupplierWithStats])
def list_suppliers(
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SupplierService(db).get_suppliers_with_stats(search)


@ograi_router.post("/suppliers", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(
    data: SupplierCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SupplierService(db).create_supplier(data)


@ograi_router.patch("/suppliers/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: int,
    data: SupplierUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SupplierService(db).update_supplier(supplier_id, data)


@ograi_router.delete("/suppliers/{supplier_id}")
def delete_supplier(
    supplier_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(require_admin())
):
    return SupplierService(db).delete_supplier(supplier_id)
