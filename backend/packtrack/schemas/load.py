"""Pydantic schemas for loads and their packaging lines."""

from datetime import date, datetime, time

from pydantic import Field

from packtrack.schemas.common import CamelModel, Pagination
from packtrack.schemas.packaging import PackagingTypeRef
from packtrack.schemas.site import SiteRef


# ── Packaging lines ─────────────────────────────────────────

class LoadPackagingIn(CamelModel):
    packaging_type_id: str
    quantity: int = Field(..., ge=1)
    product_type_id: str | None = None
    product_variety_id: str | None = None
    product_grade_id: str | None = None
    notes: str | None = None


class BackloadPackagingIn(CamelModel):
    packaging_type_id: str
    quantity_returned: int = Field(0, ge=0)
    quantity_damaged: int = Field(0, ge=0)
    notes: str | None = None


class LoadPackagingOut(CamelModel):
    id: str
    packaging_type_id: str
    packaging_type: PackagingTypeRef | None = None
    quantity_dispatched: int
    quantity_received: int | None = None
    quantity_damaged: int = 0
    quantity_missing: int = 0
    product_type_id: str | None = None
    product_variety_id: str | None = None
    product_grade_id: str | None = None
    notes: str | None = None


class BackloadPackagingOut(CamelModel):
    id: str
    packaging_type_id: str
    packaging_type: PackagingTypeRef | None = None
    quantity_returned: int
    quantity_damaged: int
    notes: str | None = None


# ── Create ──────────────────────────────────────────────────

class LoadCreate(CamelModel):
    origin_site_id: str
    destination_site_id: str
    dispatch_date: date
    channel_id: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    expected_arrival_date: date | None = None
    scheduled_departure_time: time | None = None
    estimated_arrival_time: time | None = None
    expected_farm_arrival_time: time | None = None
    expected_farm_departure_time: time | None = None
    backload_site_id: str | None = None
    backload_notes: str | None = None
    notes: str | None = None
    packaging: list[LoadPackagingIn] = Field(..., min_length=1)
    backload_packaging: list[BackloadPackagingIn] = []


# ── Update (partial) ────────────────────────────────────────

class LoadUpdate(CamelModel):
    """Only fields present in the request body are applied."""
    destination_site_id: str | None = None
    channel_id: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    dispatch_date: date | None = None
    expected_arrival_date: date | None = None
    scheduled_departure_time: time | None = None
    estimated_arrival_time: time | None = None
    expected_farm_arrival_time: time | None = None
    expected_farm_departure_time: time | None = None
    backload_site_id: str | None = None
    backload_notes: str | None = None
    notes: str | None = None
    status: str | None = None
    backload_packaging: list[BackloadPackagingIn] | None = None


# ── Lifecycle actions ───────────────────────────────────────

class ConfirmDispatchRequest(CamelModel):
    actual_departure_time: datetime | None = None
    notes: str | None = None


class ReceiptLine(CamelModel):
    id: str  # load packaging line id
    quantity_received: int = Field(..., ge=0)
    quantity_damaged: int = Field(0, ge=0)
    quantity_missing: int = Field(0, ge=0)
    notes: str | None = None


class ConfirmReceiptRequest(CamelModel):
    packaging: list[ReceiptLine] = []
    actual_arrival_time: datetime | None = None
    discrepancy_notes: str | None = None


class FarmTimeRequest(CamelModel):
    actual_time: datetime | None = None


class DuplicateLoadRequest(CamelModel):
    dispatch_date: date | None = None


class CancelLoadRequest(CamelModel):
    reason: str | None = None


# ── Responses ───────────────────────────────────────────────

class LoadOut(CamelModel):
    id: str
    load_number: str
    origin_site_id: str
    origin_site: SiteRef | None = None
    destination_site_id: str
    destination_site: SiteRef | None = None
    channel_id: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    dispatch_date: date
    expected_arrival_date: date | None = None
    scheduled_departure_time: time | None = None
    actual_departure_time: datetime | None = None
    estimated_arrival_time: time | None = None
    actual_arrival_time: datetime | None = None
    status: str
    on_time_status: str | None = None
    expected_farm_arrival_time: time | None = None
    expected_farm_departure_time: time | None = None
    actual_farm_arrival_time: datetime | None = None
    actual_farm_departure_time: datetime | None = None
    farm_arrival_overtime_minutes: int = 0
    farm_departure_overtime_minutes: int = 0
    has_overtime: bool = False
    arrived_depot_at: datetime | None = None
    departed_depot_at: datetime | None = None
    has_discrepancy: bool = False
    discrepancy_notes: str | None = None
    backload_site_id: str | None = None
    backload_notes: str | None = None
    notes: str | None = None
    created_by: str | None = None
    confirmed_dispatch_by: str | None = None
    confirmed_dispatch_at: datetime | None = None
    confirmed_receipt_by: str | None = None
    confirmed_receipt_at: datetime | None = None
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LoadSummary(LoadOut):
    """List row: the load plus its line count and dispatched total."""
    packaging_count: int = 0
    total_dispatched: int = 0


class LoadResponse(CamelModel):
    load: LoadOut


class LoadCreatedResponse(CamelModel):
    load: LoadOut
    load_number: str


class LoadDetailResponse(CamelModel):
    load: LoadOut
    packaging: list[LoadPackagingOut]
    backload_packaging: list[BackloadPackagingOut]


class LoadListResponse(CamelModel):
    loads: list[LoadSummary]
    pagination: Pagination


class ReceiptResponse(CamelModel):
    load: LoadOut
    has_discrepancy: bool


class FarmTimeResponse(CamelModel):
    load: LoadOut
    overtime_minutes: int
    is_overtime: bool


# ── Live tracking ───────────────────────────────────────────

class TrackingSite(CamelModel):
    id: str
    code: str
    name: str
    latitude: float | None = None
    longitude: float | None = None


class TrackingVehicle(CamelModel):
    id: str
    name: str | None = None
    registration: str
    telematics_asset_id: int | None = None
    telematics_asset_code: str | None = None


class TrackingDriver(CamelModel):
    id: str
    name: str
    phone: str | None = None


class ActiveLoadOut(CamelModel):
    """One vehicle on the live map: the load, its route and who is driving."""
    load_id: str
    load_number: str
    dispatch_date: date
    status: str
    expected_farm_arrival_time: time | None = None
    actual_farm_arrival_time: datetime | None = None
    estimated_arrival_time: time | None = None
    actual_arrival_time: datetime | None = None
    origin: TrackingSite | None = None
    destination: TrackingSite | None = None
    vehicle: TrackingVehicle | None = None
    driver: TrackingDriver | None = None


class ActiveLoadsResponse(CamelModel):
    active_loads: list[ActiveLoadOut]
