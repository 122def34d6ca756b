"""Pydantic schemas for sites and site types."""

from datetime import datetime

from pydantic import Field

from packtrack.schemas.common import CamelModel


class SiteTypeOut(CamelModel):
    id: str
    name: str
    description: str | None = None


class SiteTypesResponse(CamelModel):
    site_types: list[SiteTypeOut]


# ── Create ────────────────────────────────────────────────────

class SiteCreate(CamelModel):
    code: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=255)
    site_type_id: str | None = None
    address: str | None = None
    city: str | None = None
    region: str | None = None
    country: str = "Zimbabwe"
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)


# ── Update (partial) ─────────────────────────────────────────

class SiteUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    site_type_id: str | None = None
    address: str | None = None
    city: str | None = None
    region: str | None = None
    country: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    is_active: bool | None = None


# ── Response ─────────────────────────────────────────────────

class SiteOut(CamelModel):
    id: str
    code: str
    name: str
    site_type_id: str | None = None
    site_type_name: str | None = None
    address: str | None = None
    city: str | None = None
    region: str | None = None
    country: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    is_active: bool
    created_at: datetime | None = None


class SiteRef(CamelModel):
    """Compact site reference embedded in loads and schedules."""
    id: str
    code: str
    name: str


class SiteResponse(CamelModel):
    site: SiteOut


class SiteListResponse(CamelModel):
    sites: list[SiteOut]
