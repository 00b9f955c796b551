"""
Dashboard Router
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext

from ..services.dashboard import DashboardService
from ..schemas import DashboardResponse


router = APIRouter(prefix="/dashboard", tags=["Reports"])


@router.get("", response_model=DashboardResponse)
def get_dashboard(
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role()),
    db: Session = Depends(get_db)
):
    """
    Headline counters: sales, today's takings, products, low stock,
    unpaid sales, revenue, supplier balance and recent activity.
    """
    try:
        return DashboardResponse(**DashboardService(db=db).get_dashboard())
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error generating dashboard: {str(e)}")
