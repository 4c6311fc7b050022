# app/routers/admin_stats.py
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import AdminDashboardStats
from app.services.stats_service import StatsService

router = APIRouter(
    prefix="/admin/stats",
    tags=["Admin Stats"],
    dependencies=[Depends(require_admin)],
)

service = StatsService(StatsRepository())


@router.get("", response_model=AdminDashboardStats)
def get_admin_dashboard_stats(
    year: int | None = None,
    month: int | None = None,
    top: int = Query(default=5, ge=1, le=50),
    latest: int = Query(default=5, ge=1, le=50),
    session: Session = Depends(get_session),
):
    """
    Shop dashboard: customers, revenue, orders waiting on the admin,
    low-stock count, daily sales for one month, best sellers and the
    most recent orders.

    `year`/`month` pick the daily sales month (defaults to the current one).
    """
    return service.get_admin_dashboard_stats(
        session=session,
        year=year,
        month=month,
        top_n_products=top,
        latest_n_orders=latest,
    )
