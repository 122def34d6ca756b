"""Dashboard routes: live balances, today's activity and short-range trends.

Route overview:
  GET  /summary                        balances, in-transit, today, alerts
  GET  /site/{site_id}                 one site's stock and recent loads
  GET  /loads-summary?days=            counts by status / on-time status
  GET  /packaging-trends?days=         daily movement in/out
  GET  /route-volumes?days=            loads and quantity per route
  POST /alerts/{alert_id}/acknowledge
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.deps import get_current_user
from packtrack.database import get_db
from packtrack.models.user import User
from packtrack.schemas.dashboard import (
    AlertOut,
    AlertResponse,
    DashboardSummary,
    LoadsSummaryResponse,
    PackagingTrendsResponse,
    RouteVolumesResponse,
    SiteDashboard,
)
from packtrack.services import dashboard

router = APIRouter()


@router.get("/summary", response_model=DashboardSummary)
async def summary(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return DashboardSummary.model_validate(await dashboard.summary(db))


@router.get("/site/{site_id}", response_model=SiteDashboard)
async def site_dashboard(
    site_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return SiteDashboard.model_validate(await dashboard.site_detail(db, site_id))


@router.get("/loads-summary", response_model=LoadsSummaryResponse)
async def loads_summary(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return LoadsSummaryResponse.model_validate(await dashboard.loads_summary(db, days))


@router.get("/packaging-trends", response_model=PackagingTrendsResponse)
async def packaging_trends(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return PackagingTrendsResponse.model_validate(
        {"trends": await dashboard.packaging_trends(db, days)}
    )


@router.get("/route-volumes", response_model=RouteVolumesResponse)
async def route_volumes(
    days: int = Query(30, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return RouteVolumesResponse.model_validate(
        {"routes": await dashboard.route_volumes(db, days)}
    )


@router.post("/alerts/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(
    alert_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    alert = await dashboard.acknowledge_alert(db, alert_id, user)
    return AlertResponse(alert=AlertOut.model_validate(alert))
