"""Pydantic schemas for statements and exception reports."""

from datetime import date

from packtrack.schemas.common import CamelModel
from packtrack.schemas.dashboard import SiteBalance
from packtrack.schemas.load import LoadSummary
from packtrack.schemas.site import SiteOut


class StatementLine(CamelModel):
    packaging_type_id: str
    packaging_type_code: str
    packaging_type_name: str
    is_returnable: bool
    sent: int = 0
    received: int = 0
    damaged: int = 0
    missing: int = 0
    returned: int = 0
    outstanding: int = 0


class FarmStatementResponse(CamelModel):
    site: SiteOut
    start_date: date | None = None
    end_date: date | None = None
    packaging: list[StatementLine]
    inventory: list[SiteBalance]
    load_count: int


class DepotStatementResponse(CamelModel):
    site: SiteOut
    start_date: date | None = None
    end_date: date | None = None
    packaging: list[StatementLine]
    inventory: list[SiteBalance]
    loads_received: int
    loads_with_discrepancy: int


# ── Discrepancies ────────────────────────────────────────────

class DiscrepancyRow(CamelModel):
    load: LoadSummary
    dispatched: int
    received: int
    damaged: int
    missing: int


class DiscrepancyTotals(CamelModel):
    loads: int
    damaged: int
    missing: int


class DiscrepancyReportResponse(CamelModel):
    discrepancies: list[DiscrepancyRow]
    totals: DiscrepancyTotals


# ── Packaging summary ────────────────────────────────────────

class PackagingSummaryRow(CamelModel):
    packaging_type_id: str
    packaging_type_code: str
    packaging_type_name: str
    is_returnable: bool
    on_hand: int
    damaged: int
    in_transit: int
    site_count: int
    low_stock_sites: int


class PackagingSummaryResponse(CamelModel):
    summary: list[PackagingSummaryRow]


# ── Exceptions ───────────────────────────────────────────────

class LostRow(CamelModel):
    load: LoadSummary
    missing: int
    days: int


class ShortRoute(CamelModel):
    origin_site_id: str
    destination_site_id: str
    origin_site_code: str | None = None
    destination_site_code: str | None = None
    discrepancy_count: int
    load_numbers: list[str]


class OverdueRow(CamelModel):
    load: LoadSummary
    packaging_type_code: str
    quantity: int
    days: int
    turnaround_days: int


class ExceptionsResponse(CamelModel):
    as_of: date
    lost: list[LostRow]
    short: list[ShortRoute]
    aging: list[OverdueRow]
    overdue: list[OverdueRow]
