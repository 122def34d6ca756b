"""Load routes: the dispatch → transit → receipt lifecycle.

Route overview:
  GET    /                               list with filters + pagination
  GET    /lookup/vehicles                active vehicles for the load form
  GET    /lookup/drivers                 active drivers
  GET    /lookup/channels                active channels
  GET    /tracking/active                open loads from yesterday and today for the live map
  GET    /{load_id}                      load with packaging and backload lines
  POST   /                               create (scheduled)
  PUT    /{load_id}                      partial update / manual status change
  POST   /{load_id}/confirm-dispatch     departed; debits origin stock
  POST   /{load_id}/confirm-receipt      completed; credits destination stock
  POST   /{load_id}/confirm-farm-arrival
  POST   /{load_id}/confirm-farm-departure
  POST   /{load_id}/duplicate            copy onto a new dispatch date
  POST   /{load_id}/cancel
  DELETE /{load_id}                      scheduled loads only
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.deps import get_current_user, require_role
from packtrack.database import get_db
from packtrack.models.fleet import Channel, Driver, Vehicle
from packtrack.models.load import Load
from packtrack.models.user import User, UserRole
from packtrack.schemas.common import MessageResponse, Pagination
from packtrack.schemas.config import (
    ChannelListResponse,
    ChannelOut,
    DriverListResponse,
    DriverOut,
    VehicleListResponse,
    VehicleOut,
)
from packtrack.schemas.load import (
    ActiveLoadOut,
    ActiveLoadsResponse,
    BackloadPackagingOut,
    CancelLoadRequest,
    ConfirmDispatchRequest,
    ConfirmReceiptRequest,
    DuplicateLoadRequest,
    FarmTimeRequest,
    FarmTimeResponse,
    LoadCreate,
    LoadCreatedResponse,
    LoadDetailResponse,
    LoadListResponse,
    LoadOut,
    LoadPackagingOut,
    LoadResponse,
    LoadSummary,
    LoadUpdate,
    ReceiptResponse,
    TrackingDriver,
    TrackingSite,
    TrackingVehicle,
)
from packtrack.services import loads as load_service

router = APIRouter()

ADMIN = UserRole.ADMIN
DISPATCHER = UserRole.DISPATCHER
FARM = UserRole.FARM_USER
DEPOT = UserRole.DEPOT_USER


def _detail(load: Load) -> LoadDetailResponse:
    return LoadDetailResponse(
        load=LoadOut.model_validate(load),
        packaging=[LoadPackagingOut.model_validate(line) for line in load.packaging],
        backload_packaging=[
            BackloadPackagingOut.model_validate(line) for line in load.backload_packaging
        ],
    )


# ── GET / ────────────────────────────────────────────────────

@router.get("/", response_model=LoadListResponse)
async def list_loads(
    status_filter: str | None = Query(None, alias="status"),
    origin_site_id: str | None = Query(None, alias="originSiteId"),
    destination_site_id: str | None = Query(None, alias="destinationSiteId"),
    site_id: str | None = Query(None, alias="siteId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    vehicle_id: str | None = Query(None, alias="vehicleId"),
    driver_id: str | None = Query(None, alias="driverId"),
    channel_id: str | None = Query(None, alias="channelId"),
    has_discrepancy: bool | None = Query(None, alias="hasDiscrepancy"),
    has_overtime: bool | None = Query(None, alias="hasOvertime"),
    search: str | None = Query(None),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    conditions = []
    if status_filter:
        conditions.append(Load.status == status_filter)
    if origin_site_id:
        conditions.append(Load.origin_site_id == origin_site_id)
    if destination_site_id:
        conditions.append(Load.destination_site_id == destination_site_id)
    if site_id:
        conditions.append(or_(Load.origin_site_id == site_id, Load.destination_site_id == site_id))
    if start_date:
        conditions.append(Load.dispatch_date >= start_date)
    if end_date:
        conditions.append(Load.dispatch_date <= end_date)
    if vehicle_id:
        conditions.append(Load.vehicle_id == vehicle_id)
    if driver_id:
        conditions.append(Load.driver_id == driver_id)
    if channel_id:
        conditions.append(Load.channel_id == channel_id)
    if has_discrepancy is not None:
        conditions.append(Load.has_discrepancy == has_discrepancy)
    if has_overtime is not None:
        conditions.append(Load.has_overtime == has_overtime)
    if search:
        conditions.append(Load.load_number.ilike(f"%{search}%"))

    total = await db.scalar(select(func.count(Load.id)).where(*conditions)) or 0
    result = await db.execute(
        select(Load)
        .where(*conditions)
        .order_by(Load.dispatch_date.desc(), Load.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return LoadListResponse(
        loads=[LoadSummary.model_validate(load) for load in result.scalars().all()],
        pagination=Pagination(total=total, limit=limit, offset=offset),
    )


# ── Lookups (declared before /{load_id}) ────────────────────

@router.get("/lookup/vehicles", response_model=VehicleListResponse)
async def lookup_vehicles(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Vehicle).where(Vehicle.is_active == True).order_by(Vehicle.registration)  # noqa: E712
    )
    return VehicleListResponse(vehicles=[VehicleOut.model_validate(v) for v in result.scalars().all()])


@router.get("/lookup/drivers", response_model=DriverListResponse)
async def lookup_drivers(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Driver).where(Driver.is_active == True).order_by(Driver.first_name)  # noqa: E712
    )
    return DriverListResponse(drivers=[DriverOut.model_validate(d) for d in result.scalars().all()])


@router.get("/lookup/channels", response_model=ChannelListResponse)
async def lookup_channels(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    result = await db.execute(
        select(Channel).where(Channel.is_active == True).order_by(Channel.name)  # noqa: E712
    )
    return ChannelListResponse(channels=[ChannelOut.model_validate(c) for c in result.scalars().all()])


# ── GET /tracking/active ─────────────────────────────────────

def _tracking_site(site) -> TrackingSite | None:
    return TrackingSite.model_validate(site) if site else None


def _active_load(load: Load) -> ActiveLoadOut:
    driver = load.driver
    return ActiveLoadOut(
        load_id=load.id,
        load_number=load.load_number,
        dispatch_date=load.dispatch_date,
        status=load.status,
        expected_farm_arrival_time=load.expected_farm_arrival_time,
        actual_farm_arrival_time=load.actual_farm_arrival_time,
        estimated_arrival_time=load.estimated_arrival_time,
        actual_arrival_time=load.actual_arrival_time,
        origin=_tracking_site(load.origin_site),
        destination=_tracking_site(load.destination_site),
        vehicle=TrackingVehicle.model_validate(load.vehicle) if load.vehicle else None,
        driver=TrackingDriver(id=driver.id, name=driver.full_name, phone=driver.phone) if driver else None,
    )


@router.get("/tracking/active", response_model=ActiveLoadsResponse)
async def tracking_active(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    """Open loads from yesterday and today with the telematics ids of their vehicles."""
    loads = await load_service.active_loads(db)
    return ActiveLoadsResponse(active_loads=[_active_load(load) for load in loads])


# ── GET /{load_id} ───────────────────────────────────────────

@router.get("/{load_id}", response_model=LoadDetailResponse)
async def get_load(
    load_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return _detail(await load_service.get_load(db, load_id))


# ── POST / ───────────────────────────────────────────────────

@router.post("/", response_model=LoadCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_load(
    body: LoadCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(ADMIN, DISPATCHER, FARM)),
):
    load = await load_service.create_load(db, body, user)
    return LoadCreatedResponse(load=LoadOut.model_validate(load), load_number=load.load_number)


# ── PUT /{load_id} ───────────────────────────────────────────

@router.put("/{load_id}", response_model=LoadDetailResponse)
async def update_load(
    load_id: str,
    body: LoadUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(ADMIN, DISPATCHER)),
):
    load = await load_service.get_load(db, load_id)
    load = await load_service.update_load(db, load, body, user)
    return _detail(load)


# ── POST /{load_id}/confirm-dispatch ─────────────────────────

@router.post("/{load_id}/confirm-dispatch", response_model=LoadResponse)
async def confirm_dispatch(
    load_id: str,
    body: ConfirmDispatchRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(ADMIN, DISPATCHER, FARM)),
):
    body = body or ConfirmDispatchRequest()
    load = await load_service.get_load(db, load_id)
    load = await load_service.confirm_dispatch(db, load, body, user)
    return LoadResponse(load=LoadOut.model_validate(load))


# ── POST /{load_id}/confirm-receipt ──────────────────────────

@router.post("/{load_id}/confirm-receipt", response_model=ReceiptResponse)
async def confirm_receipt(
    load_id: str,
    body: ConfirmReceiptRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(ADMIN, DISPATCHER, DEPOT)),
):
    body = body or ConfirmReceiptRequest()
    load = await load_service.get_load(db, load_id)
    load, has_discrepancy = await load_service.confirm_receipt(db, load, body, user)
    return ReceiptResponse(load=LoadOut.model_validate(load), has_discrepancy=has_discrepancy)


# ── POST /{load_id}/confirm-farm-arrival ─────────────────────

@router.post("/{load_id}/confirm-farm-arrival", response_model=FarmTimeResponse)
async def confirm_farm_arrival(
    load_id: str,
    body: FarmTimeRequest | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_role(ADMIN, DISPATCHER, FARM)),
):
    body = body or FarmTimeRequest()
    load = await load_service.get_load(db, load_id)
    load, minutes = await load_service.confirm_farm_arrival(db, load, body.actual_time)
    return FarmTimeResponse(
        load=LoadOut.model_validate(load), overtime_minutes=minutes, is_overtime=minutes > 0
    )


# ── POST /{load_id}/confirm-farm-departure ───────────────────

@router.post("/{load_id}/confirm-farm-departure", response_model=FarmTimeResponse)
async def confirm_farm_departure(
    load_id: str,
    body: FarmTimeRequest | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_role(ADMIN, DISPATCHER, FARM)),
):
    body = body or FarmTimeRequest()
    load = await load_service.get_load(db, load_id)
    load, minutes = await load_service.confirm_farm_departure(db, load, body.actual_time)
    return FarmTimeResponse(
        load=LoadOut.model_validate(load), overtime_minutes=minutes, is_overtime=minutes > 0
    )


# ── POST /{load_id}/duplicate ────────────────────────────────

@router.post(
    "/{load_id}/duplicate",
    response_model=LoadCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_load(
    load_id: str,
    body: DuplicateLoadRequest | None = None,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(ADMIN, DISPATCHER)),
):
    body = body or DuplicateLoadRequest()
    source = await load_service.get_load(db, load_id)
    load = await load_service.duplicate_load(db, source, body.dispatch_date, user)
    return LoadCreatedResponse(load=LoadOut.model_validate(load), load_number=load.load_number)


# ── POST /{load_id}/cancel ───────────────────────────────────

@router.post("/{load_id}/cancel", response_model=LoadResponse)
async def cancel_load(
    load_id: str,
    body: CancelLoadRequest | None = None,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(require_role(ADMIN, DISPATCHER)),
):
    body = body or CancelLoadRequest()
    load = await load_service.get_load(db, load_id)
    load = await load_service.cancel_load(db, load, body.reason)
    return LoadResponse(load=LoadOut.model_validate(load))


# ── DELETE /{load_id} ────────────────────────────────────────

@router.delete("/{load_id}", response_model=MessageResponse)
async def delete_load(
    load_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(ADMIN)),
):
    load = await load_service.get_load(db, load_id)
    load_number = load.load_number
    await load_service.delete_load(db, load)
    return MessageResponse(message=f"Load {load_number} deleted")
