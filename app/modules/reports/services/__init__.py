"""
Services package for Reports module

Exports all report service classes for easy importing.
"""

from .sales import SalesReportService
from .dashboard import DashboardService

__all__ = [
    "SalesReportService",
    "DashboardService"
]
