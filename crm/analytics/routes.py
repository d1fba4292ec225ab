from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from crm.database import get_db
from crm.auth.dependencies import require_admin
from crm.auth.schemas import Principal
from crm.services.stats_service import StatsService

router = APIRouter(prefix="/api/admin", tags=["Analytics"])

@router.get("/dashboard/stats")
def get_dashboard_stats(
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    """Overview counters for the admin dashboard."""
    return {"stats": StatsService(db).get_overview_stats()}

@router.get("/analytics")
def get_analytics(
    current_user: Principal = Depends(require_admin()),
    db: Session = Depends(get_db)
):
    return {"analytics": StatsService(db).get_analytics()}
