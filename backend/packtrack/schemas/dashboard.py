"""Pydantic schemas for the dashboard endpoints."""

from datetime import date, datetime

from packtrack.schemas.common import CamelModel
from packtrack.schemas.load import LoadSummary
from packtrack.schemas.packaging import InTransitRow
from packtrack.schemas.site import SiteOut


class SiteBalance(CamelModel):
    site_id: str
    site_code: str | None = None
    site_name: str | None = None
    packaging_type_id: str
    packaging_type_code: str | None = None
    packaging_type_name: str | None = None
    quantity: int
    quantity_damaged: int = 0
    min_threshold: int | None = None
    max_threshold: int | None = None
    status: str  # normal | warning | critical


class TodaysLoads(CamelModel):
    dispatched_today: int
    received_today: int
    currently_in_transit: int
    pending_dispatch: int


class AlertOut(CamelModel):
    id: str
    alert_type: str
    severity: str
    site_id: str | None = None
    load_id: str | None = None
    packaging_type_id: str | None = None
    message: str
    is_acknowledged: bool
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    created_at: datetime | None = None


class AlertResponse(CamelModel):
    alert: AlertOut


# ── Summary ──────────────────────────────────────────────────

class DashboardSummary(CamelModel):
    site_balances: list[SiteBalance]
    in_transit: list[InTransitRow]
    todays_loads: TodaysLoads
    recent_discrepancies: list[LoadSummary]
    alerts: list[AlertOut]
    low_stock: list[SiteBalance]


class SiteDashboard(CamelModel):
    site: SiteOut
    inventory: list[SiteBalance]
    outgoing_loads: list[LoadSummary]
    incoming_loads: list[LoadSummary]


# ── Analytics ────────────────────────────────────────────────

class LoadsSummaryResponse(CamelModel):
    days: int
    total: int
    with_discrepancy: int
    with_overtime: int
    by_status: dict[str, int]
    by_on_time_status: dict[str, int]


class TrendPoint(CamelModel):
    date: date
    incoming: int
    outgoing: int
    movements: int


class PackagingTrendsResponse(CamelModel):
    trends: list[TrendPoint]


class RouteVolume(CamelModel):
    origin_site_id: str
    origin_site_code: str | None = None
    destination_site_id: str
    destination_site_code: str | None = None
    load_count: int
    total_dispatched: int
    discrepancy_count: int


class RouteVolumesResponse(CamelModel):
    routes: list[RouteVolume]
