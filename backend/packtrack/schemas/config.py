"""Pydantic schemas for the admin configuration endpoints."""

from datetime import datetime

from pydantic import EmailStr, Field, model_validator

from packtrack.models.user import UserRole
from packtrack.schemas.auth import UserOut
from packtrack.schemas.common import CamelModel


# ── Users ───────────────────────────────────────────────────

class UserCreate(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = None
    role: UserRole = UserRole.READONLY
    assigned_site_id: str | None = None


class UserUpdate(CamelModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = None
    role: UserRole | None = None
    assigned_site_id: str | None = None
    is_active: bool | None = None
    password: str | None = Field(None, min_length=6)


class UserListResponse(CamelModel):
    users: list[UserOut]


# ── Vehicles ────────────────────────────────────────────────

class VehicleCreate(CamelModel):
    registration: str = Field(..., min_length=1, max_length=30)
    name: str | None = None
    vehicle_type: str | None = None
    capacity_kg: float | None = Field(None, ge=0)
    telematics_asset_id: int | None = None
    telematics_asset_code: str | None = Field(None, max_length=50)


class VehicleUpdate(CamelModel):
    registration: str | None = Field(None, min_length=1, max_length=30)
    name: str | None = None
    vehicle_type: str | None = None
    capacity_kg: float | None = Field(None, ge=0)
    telematics_asset_id: int | None = None
    telematics_asset_code: str | None = Field(None, max_length=50)
    is_active: bool | None = None


class VehicleOut(CamelModel):
    id: str
    registration: str
    name: str | None = None
    vehicle_type: str | None = None
    capacity_kg: float | None = None
    telematics_asset_id: int | None = None
    telematics_asset_code: str | None = None
    is_active: bool


class VehicleResponse(CamelModel):
    vehicle: VehicleOut


class VehicleListResponse(CamelModel):
    vehicles: list[VehicleOut]


# ── Drivers ─────────────────────────────────────────────────

class DriverCreate(CamelModel):
    employee_id: str | None = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str | None = None
    license_number: str | None = None


class DriverUpdate(CamelModel):
    employee_id: str | None = None
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    phone: str | None = None
    license_number: str | None = None
    is_active: bool | None = None


class DriverOut(CamelModel):
    id: str
    employee_id: str | None = None
    first_name: str
    last_name: str
    full_name: str
    phone: str | None = None
    license_number: str | None = None
    is_active: bool


class DriverResponse(CamelModel):
    driver: DriverOut


class DriverListResponse(CamelModel):
    drivers: list[DriverOut]


# ── Channels ────────────────────────────────────────────────

class ChannelCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class ChannelUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    is_active: bool | None = None


class ChannelOut(CamelModel):
    id: str
    code: str
    name: str
    description: str | None = None
    is_active: bool


class ChannelResponse(CamelModel):
    channel: ChannelOut


class ChannelListResponse(CamelModel):
    channels: list[ChannelOut]


# ── Thresholds ──────────────────────────────────────────────

class ThresholdUpsert(CamelModel):
    site_id: str
    packaging_type_id: str
    min_threshold: int = Field(0, ge=0)
    max_threshold: int | None = Field(None, ge=0)
    alert_enabled: bool = True

    @model_validator(mode="after")
    def check_range(self):
        if self.max_threshold is not None and self.max_threshold < self.min_threshold:
            raise ValueError("maxThreshold must be greater than or equal to minThreshold")
        return self


class ThresholdOut(CamelModel):
    id: str
    site_id: str
    site_code: str | None = None
    packaging_type_id: str
    packaging_type_code: str | None = None
    min_threshold: int
    max_threshold: int | None = None
    alert_enabled: bool
    updated_at: datetime | None = None


class ThresholdResponse(CamelModel):
    threshold: ThresholdOut


class ThresholdListResponse(CamelModel):
    thresholds: list[ThresholdOut]


# ── Products ────────────────────────────────────────────────

class ProductTypeCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None


class ProductVarietyCreate(CamelModel):
    product_type_id: str
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1, max_length=255)


class ProductGradeCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    sort_order: int = 0


class ProductVarietyOut(CamelModel):
    id: str
    product_type_id: str
    code: str
    name: str
    is_active: bool


class ProductTypeOut(CamelModel):
    id: str
    code: str
    name: str
    description: str | None = None
    is_active: bool
    varieties: list[ProductVarietyOut] = []


class ProductGradeOut(CamelModel):
    id: str
    code: str
    name: str
    description: str | None = None
    sort_order: int
    is_active: bool


class ProductTypeResponse(CamelModel):
    product_type: ProductTypeOut


class ProductTypeListResponse(CamelModel):
    product_types: list[ProductTypeOut]


class ProductVarietyResponse(CamelModel):
    variety: ProductVarietyOut


class ProductGradeResponse(CamelModel):
    grade: ProductGradeOut


class ProductGradeListResponse(CamelModel):
    grades: list[ProductGradeOut]


class ConfigAllResponse(CamelModel):
    """Everything the load and planner forms need in one round trip."""
    product_types: list[ProductTypeOut]
    grades: list[ProductGradeOut]
    vehicles: list[VehicleOut]
    drivers: list[DriverOut]
    channels: list[ChannelOut]
