"""
Business Report Router

FastAPI router for the date-range business report.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext

from ..services.sales import SalesReportService
from ..schemas import ReportResponse
from ..utils import create_csv_response, CSV_HEADERS, CSV_PREPARERS


router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("", response_model=None)
def get_report(
    start_date: Optional[date] = Query(None, description="Start date for the report period"),
    end_date: Optional[date] = Query(None, description="End date for the report period"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    section: str = Query(
        "summary",
        pattern="^(summary|products|customers|expenses|trend)$",
        description="Report section to export as CSV"
    ),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role()),
    db: Session = Depends(get_db)
):
    """
    Generate the business report for a date range.

    Both dates are whole days and inclusive; omit them for all time.
    Returns summary figures, top products and customers, expenses by
    category, the daily sales trend and the most recent sales.
    Can export one section as CSV.
    """
    try:
        service = SalesReportService(db=db)
        report_data = service.get_report(start_date=start_date, end_date=end_date)

        if export == "csv":
            csv_data = CSV_PREPARERS[section](report_data)
            filename = f"report_{section}_{start_date or 'all'}_{end_date or 'all'}.csv"
            return create_csv_response(
                data=csv_data,
                filename=filename,
                headers=CSV_HEADERS[section]
            )

        return ReportResponse(**report_data)

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error generating report: {str(e)}")
