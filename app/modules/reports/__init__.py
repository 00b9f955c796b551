"""
Reports Module

Read-only reporting over the sales, expenses, products and supplier
purchase tables. This module creates no tables of its own.

Architecture Pattern: Service Layer
- routers/ -> FastAPI endpoints with validation
- services/ -> query building and aggregation
- schemas/ -> Pydantic response models
- utils/ -> CSV export and formatting
"""

from .routers import report_router, dashboard_router

__all__ = [
    "report_router",
    "dashboard_router"
]
