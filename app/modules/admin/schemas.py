from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class CleanDatabaseCounts(BaseModel):
    """Row counts per group: what a clean would delete and what it always keeps."""
    will_delete: Dict[str, int]
    will_keep: Dict[str, int]


class CleanDatabaseRequest(BaseModel):
    sales: bool = Field(False, description="Sales with their items, ledger entries and returns")
    returns: bool = False
    payment_history: bool = Field(False, description="Sale ledger entries; sale balances are re-derived")
    customers: bool = False
    expenses: bool = False
    suppliers: bool = Field(False, description="Suppliers with all their purchases")
    ograi_transactions: bool = False
    ograi_payment_history: bool = Field(False, description="Purchase ledger entries; purchase balances are re-derived")
    reset_product_quantities: bool = False


class CleanDatabaseResult(BaseModel):
    message: str
    deleted_counts: Dict[str, Any]


class DriftRecord(BaseModel):
    kind: str
    id: int
    changes: Dict[str, Dict[str, Any]]


class ReconcileResult(BaseModel):
    checked_sales: int
    checked_purchases: int
    drifted: List[DriftRecord]
    repaired: bool
