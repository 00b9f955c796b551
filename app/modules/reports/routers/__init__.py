"""
Routers package for Reports module

Exports all report router instances for easy importing.
"""

from .sales import router as report_router
from .dashboard import router as dashboard_router

__all__ = [
    "report_router",
    "dashboard_router"
]
