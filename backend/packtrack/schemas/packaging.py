"""Pydantic schemas for packaging types, inventory and movements."""

from datetime import datetime

from pydantic import Field

from packtrack.schemas.common import CamelModel, Pagination


# ── Packaging types ─────────────────────────────────────────

class PackagingTypeCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    capacity_kg: float | None = Field(None, ge=0)
    capacity_liters: float | None = Field(None, ge=0)
    weight_empty_kg: float | None = Field(None, ge=0)
    dimensions_cm: str | None = None
    expected_turnaround_days: int = Field(14, ge=0)
    is_returnable: bool = True


class PackagingTypeUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    capacity_kg: float | None = Field(None, ge=0)
    capacity_liters: float | None = Field(None, ge=0)
    weight_empty_kg: float | None = Field(None, ge=0)
    dimensions_cm: str | None = None
    expected_turnaround_days: int | None = Field(None, ge=0)
    is_returnable: bool | None = None
    is_active: bool | None = None


class PackagingTypeOut(CamelModel):
    id: str
    code: str
    name: str
    description: str | None = None
    capacity_kg: float | None = None
    capacity_liters: float | None = None
    weight_empty_kg: float | None = None
    dimensions_cm: str | None = None
    expected_turnaround_days: int
    is_returnable: bool
    is_active: bool


class PackagingTypeRef(CamelModel):
    id: str
    code: str
    name: str


class PackagingTypeResponse(CamelModel):
    packaging_type: PackagingTypeOut


class PackagingTypeListResponse(CamelModel):
    packaging_types: list[PackagingTypeOut]


# ── Inventory ───────────────────────────────────────────────

class InventoryOut(CamelModel):
    id: str
    site_id: str
    site_code: str | None = None
    site_name: str | None = None
    packaging_type_id: str
    packaging_type_code: str | None = None
    packaging_type_name: str | None = None
    quantity: int
    quantity_damaged: int
    last_counted_at: datetime | None = None
    handling_count: int = 0
    total_dispatched: int = 0
    total_received: int = 0
    total_returned: int = 0
    updated_at: datetime | None = None


class InventoryListResponse(CamelModel):
    inventory: list[InventoryOut]


class InventoryAdjustRequest(CamelModel):
    """Manual count: the new absolute balance, not a delta."""
    quantity: int = Field(..., ge=0)
    quantity_damaged: int | None = Field(None, ge=0)
    notes: str | None = None


# ── Movement history ────────────────────────────────────────

class MovementOut(CamelModel):
    id: str
    site_id: str
    site_code: str | None = None
    packaging_type_id: str
    packaging_type_code: str | None = None
    load_id: str | None = None
    movement_type: str
    quantity: int
    quantity_damaged: int = 0
    direction: str
    reference_number: str | None = None
    notes: str | None = None
    recorded_by: str | None = None
    recorded_at: datetime


class InventoryAdjustResponse(CamelModel):
    inventory: InventoryOut
    movement: MovementOut | None = None


class MovementListResponse(CamelModel):
    movements: list[MovementOut]
    pagination: Pagination


# ── In transit ──────────────────────────────────────────────

class InTransitRow(CamelModel):
    packaging_type_id: str
    packaging_type_code: str
    packaging_type_name: str
    quantity: int
    load_count: int


class InTransitResponse(CamelModel):
    in_transit: list[InTransitRow]
