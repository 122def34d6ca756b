"""Pydantic schemas for dispatch schedules and the weekly planner."""

from datetime import date, datetime, time

from pydantic import Field, model_validator

from packtrack.schemas.common import CamelModel
from packtrack.schemas.site import SiteRef

SCHEDULE_STATUSES = (
    "planned", "confirmed", "packaging_sent", "loading",
    "in_transit", "delivered", "completed", "cancelled",
)


class ScheduleCreate(CamelModel):
    dispatch_date: date
    dispatch_time: time | None = None
    expected_arrival_date: date | None = None
    expected_arrival_time: time | None = None
    origin_site_id: str
    destination_site_id: str
    channel_id: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    crates: int = Field(0, ge=0)
    bins: int = Field(0, ge=0)
    boxes: int = Field(0, ge=0)
    pallets: int = Field(0, ge=0)
    packaging_eta_farm: date | None = None
    packaging_supplied_date: date | None = None
    ripening_start_date: date | None = None
    sales_despatch_date: date | None = None
    packaging_collection_date: date | None = None
    packaging_delivery_farm_date: date | None = None
    is_recurring: bool = False
    recurrence_pattern: str | None = Field(None, pattern="^(weekly|biweekly|monthly)$")
    recurrence_day_of_week: int | None = Field(None, ge=0, le=6)
    parent_schedule_id: str | None = None
    customer_name: str | None = None
    product_type: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def check_route(self):
        if self.origin_site_id == self.destination_site_id:
            raise ValueError("Origin and destination must differ")
        return self


class ScheduleUpdate(CamelModel):
    """Only fields present in the request body are applied."""
    dispatch_date: date | None = None
    dispatch_time: time | None = None
    expected_arrival_date: date | None = None
    expected_arrival_time: time | None = None
    origin_site_id: str | None = None
    destination_site_id: str | None = None
    channel_id: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    crates: int | None = Field(None, ge=0)
    bins: int | None = Field(None, ge=0)
    boxes: int | None = Field(None, ge=0)
    pallets: int | None = Field(None, ge=0)
    packaging_eta_farm: date | None = None
    packaging_supplied_date: date | None = None
    ripening_start_date: date | None = None
    sales_despatch_date: date | None = None
    packaging_collection_date: date | None = None
    packaging_delivery_farm_date: date | None = None
    is_recurring: bool | None = None
    recurrence_pattern: str | None = Field(None, pattern="^(weekly|biweekly|monthly)$")
    recurrence_day_of_week: int | None = Field(None, ge=0, le=6)
    customer_name: str | None = None
    product_type: str | None = None
    notes: str | None = None
    status: str | None = None


class ScheduleOut(CamelModel):
    id: str
    dispatch_date: date
    dispatch_time: time | None = None
    expected_arrival_date: date | None = None
    expected_arrival_time: time | None = None
    origin_site_id: str
    origin_site: SiteRef | None = None
    destination_site_id: str
    destination_site: SiteRef | None = None
    channel_id: str | None = None
    vehicle_id: str | None = None
    driver_id: str | None = None
    crates: int
    bins: int
    boxes: int
    pallets: int
    packaging_eta_farm: date | None = None
    packaging_supplied_date: date | None = None
    ripening_start_date: date | None = None
    sales_despatch_date: date | None = None
    packaging_collection_date: date | None = None
    packaging_delivery_farm_date: date | None = None
    is_recurring: bool
    recurrence_pattern: str | None = None
    recurrence_day_of_week: int | None = None
    parent_schedule_id: str | None = None
    customer_name: str | None = None
    product_type: str | None = None
    notes: str | None = None
    status: str
    load_id: str | None = None
    load_number: str | None = None
    version: int
    created_at: datetime | None = None


class ScheduleResponse(CamelModel):
    schedule: ScheduleOut


class ScheduleListResponse(CamelModel):
    schedules: list[ScheduleOut]


class WeekDay(CamelModel):
    date: date
    day_name: str
    schedules: list[ScheduleOut]


class WeekResponse(CamelModel):
    week_start: date
    week_end: date
    days: list[WeekDay]


class DemandRow(CamelModel):
    site_id: str
    site_code: str
    site_name: str
    total_crates: int
    total_bins: int
    total_boxes: int
    total_pallets: int
    dispatch_count: int


class DemandResponse(CamelModel):
    demand: list[DemandRow]
