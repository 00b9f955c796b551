from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.dependencies.dbDependecies import get_db
from app.modules.auth.dependencies import require_admin
from app.modules.auth.schemas import AuthContext
from app.modules.admin.service import AdminService
from app.modules.admin.schemas import (
    CleanDatabaseCounts, CleanDatabaseRequest, CleanDatabaseResult, ReconcileResult
)
from app.modules.ledger.service import LedgerReconciliationService

admin_router = APIRouter(prefix="/admin", tags=["Admin"])


@admin_router.get("/clean-database", response_model=CleanDatabaseCounts)
def get_clean_database_counts(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(require_admin())
):
    """Counts of the rows a full clean would delete, and of the catalog it keeps."""
    return AdminService(db).get_clean_counts()


@admin_router.delete("/clean-database", response_model=CleanDatabaseResult)
def clean_database(
    data: CleanDatabaseRequest,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(require_admin())
):
    """
    Delete the selected groups, children before parents, in one transaction.
    Categories and products are never deleted.
    """
    return AdminService(db).clean_database(data, auth_context.user_id)


@admin_router.post("/reconcile", response_model=ReconcileResult)
def reconcile_ledger(
    repair: bool = Query(False, description="Write the re-derived balances back"),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(require_admin())
):
    """Re-derive every sale and purchase balance from its ledger and report drift."""
    return LedgerReconciliationService(db).reconcile(repair=repair)
