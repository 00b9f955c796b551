from fastapi import APIRouter, status, Depends, Query
from typing import Optional, List
from sqlalchemy.orm import Session

from app.dependencies.dbDependecies import get_db
from app.modules.auth.dependencies import AuthDependencies, require_admin
from app.modules.auth.schemas import AuthContext
from app.modules.sales.service import SaleService, SalePaymentService, ReturnService
from app.modules.sales.schemas import (
    SaleCreate, SaleOut, SaleList, SalePaymentCreate,
    PaymentRecordCreate, PaymentUpdate, PaymentHistoryOut,
    ReturnCreate, ReturnOut, ReturnList
)

sales_router = APIRouter(prefix="/sales", tags=["Sales"])
payment_history_router = APIRouter(prefix="/payment-history", tags=["Payment History"])
returns_router = APIRouter(prefix="/returns", tags=["Returns"])


# ===== SALES =====

@sales_router.post("/", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def create_sale(
    data: SaleCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """
    Create a sale. Stock is decremented and the initial payment (the full
    total unless ``amount_paid`` says otherwise) is the first ledger entry.
    """
    return SaleService(db).create_sale(data, auth_context.user_id)


@sales_router.get("/", response_model=SaleList)
def list_sales(
    search: Optional[str] = Query(None, description="Sale id, customer phone or name"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SaleService(db).get_sales(search, limit, offset)


@sales_router.get("/{sale_id}", response_model=SaleOut)
def get_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SaleService(db).get_sale(sale_id)


@sales_router.put("/{sale_id}/payments", response_model=SaleOut)
def record_sale_payment(
    sale_id: int,
    data: SalePaymentCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Append a payment to the sale and re-derive its balance."""
    return SalePaymentService(db).record_payment(sale_id, data, auth_context.user_id)


@sales_router.delete("/{sale_id}")
def delete_sale(
    sale_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(require_admin())
):
    """Only fully paid sales without returns can be deleted."""
    return SaleService(db).delete_sale(sale_id)


# ===== PAYMENT HISTORY =====

@payment_history_router.get("/", response_model=List[PaymentHistoryOut])
def list_payment_history(
    sale_id: int = Query(..., description="Sale whose ledger to list"),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SalePaymentService(db).list_payment_history(sale_id)


@payment_history_router.get("/pending", response_model=List[SaleOut])
def list_pending_payments(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SaleService(db).get_pending_sales()


@payment_history_router.post("/", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def record_payment(
    data: PaymentRecordCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SalePaymentService(db).record_payment(data.sale_id, data, auth_context.user_id)


@payment_history_router.patch("/{payment_id}", response_model=PaymentHistoryOut)
def update_payment(
    payment_id: int,
    data: PaymentUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SalePaymentService(db).update_payment(payment_id, data)


@payment_history_router.delete("/{payment_id}", response_model=SaleOut)
def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """The initial payment is protected while later payments exist."""
    return SalePaymentService(db).delete_payment(payment_id)


# ===== RETURNS =====

@returns_router.post("/", response_model=ReturnOut, status_code=status.HTTP_201_CREATED)
def create_return(
    data: ReturnCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return ReturnService(db).process_return(data, auth_context.user_id)


@returns_router.get("/", response_model=ReturnList)
def list_returns(
    sale_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return ReturnService(db).get_returns(sale_id)


@returns_router.delete("/{return_id}")
def delete_return(
    return_id: int,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(require_admin())
):
    """Reverse the return completely: ledger, sale amounts, sale lines and stock."""
    return ReturnService(db).delete_return(return_id)
