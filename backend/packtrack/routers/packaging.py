"""Packaging routes: types, inventory balances, movement ledger, in-transit.

Route overview:
  GET  /types                                    list (active filter)
  POST /types                                    create (admin)
  PUT  /types/{packaging_type_id}                update (admin)
  GET  /inventory                                balances (site, type filters)
  PUT  /inventory/{site_id}/{packaging_type_id}  manual count
  GET  /movements                                ledger history
  GET  /in-transit                               quantities on the road
"""

from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.deps import get_current_user, require_role
from packtrack.database import get_db
from packtrack.middleware.exceptions import ConflictError, ResourceNotFoundError
from packtrack.models.packaging import PackagingMovement, PackagingType, SitePackagingInventory
from packtrack.models.user import User, UserRole
from packtrack.schemas.common import Pagination
from packtrack.schemas.packaging import (
    InTransitResponse,
    InTransitRow,
    InventoryAdjustRequest,
    InventoryAdjustResponse,
    InventoryListResponse,
    InventoryOut,
    MovementListResponse,
    MovementOut,
    PackagingTypeCreate,
    PackagingTypeListResponse,
    PackagingTypeOut,
    PackagingTypeResponse,
    PackagingTypeUpdate,
)
from packtrack.services.dashboard import in_transit_totals
from packtrack.services.inventory import MANUAL_ADJUSTMENT_NOTE, set_inventory_level

router = APIRouter()

INVENTORY_ROLES = (UserRole.ADMIN, UserRole.DISPATCHER, UserRole.FARM_USER, UserRole.DEPOT_USER)


# ── GET /types ───────────────────────────────────────────────

@router.get("/types", response_model=PackagingTypeListResponse)
async def list_packaging_types(
    active: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = select(PackagingType)
    if active is not None:
        stmt = stmt.where(PackagingType.is_active == active)
    result = await db.execute(stmt.order_by(PackagingType.code))
    return PackagingTypeListResponse(
        packaging_types=[PackagingTypeOut.model_validate(t) for t in result.scalars().all()]
    )


# ── POST /types ──────────────────────────────────────────────

@router.post("/types", response_model=PackagingTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_packaging_type(
    body: PackagingTypeCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    existing = await db.execute(select(PackagingType.id).where(PackagingType.code == body.code))
    if existing.scalar_one_or_none():
        raise ConflictError(f"Packaging type {body.code} already exists", "DUPLICATE_RECORD")

    packaging_type = PackagingType(**body.model_dump(), is_active=True)
    db.add(packaging_type)
    await db.flush()
    return PackagingTypeResponse(packaging_type=PackagingTypeOut.model_validate(packaging_type))


# ── PUT /types/{packaging_type_id} ───────────────────────────

@router.put("/types/{packaging_type_id}", response_model=PackagingTypeResponse)
async def update_packaging_type(
    packaging_type_id: str,
    body: PackagingTypeUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    packaging_type = await db.get(PackagingType, packaging_type_id)
    if not packaging_type:
        raise ResourceNotFoundError("Packaging type", packaging_type_id)

    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(packaging_type, key, value)
    await db.flush()
    await db.refresh(packaging_type)
    return PackagingTypeResponse(packaging_type=PackagingTypeOut.model_validate(packaging_type))


# ── GET /inventory ───────────────────────────────────────────

@router.get("/inventory", response_model=InventoryListResponse)
async def list_inventory(
    site_id: str | None = Query(None, alias="siteId"),
    packaging_type_id: str | None = Query(None, alias="packagingTypeId"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = select(SitePackagingInventory)
    if site_id:
        stmt = stmt.where(SitePackagingInventory.site_id == site_id)
    if packaging_type_id:
        stmt = stmt.where(SitePackagingInventory.packaging_type_id == packaging_type_id)

    rows = (await db.execute(stmt)).scalars().all()
    rows = sorted(rows, key=lambda r: (r.site_name or "", r.packaging_type_code or ""))
    return InventoryListResponse(inventory=[InventoryOut.model_validate(r) for r in rows])


# ── PUT /inventory/{site_id}/{packaging_type_id} ─────────────

@router.put(
    "/inventory/{site_id}/{packaging_type_id}",
    response_model=InventoryAdjustResponse,
)
async def adjust_inventory(
    site_id: str,
    packaging_type_id: str,
    body: InventoryAdjustRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(*INVENTORY_ROLES)),
):
    """Record a physical count. Only the difference is written to the ledger."""
    inventory, movement = await set_inventory_level(
        db,
        site_id=site_id,
        packaging_type_id=packaging_type_id,
        quantity=body.quantity,
        quantity_damaged=body.quantity_damaged,
        user_id=user.id,
        notes=body.notes or MANUAL_ADJUSTMENT_NOTE,
        counted=True,
    )
    return InventoryAdjustResponse(
        inventory=InventoryOut.model_validate(inventory),
        movement=MovementOut.model_validate(movement) if movement else None,
    )


# ── GET /movements ───────────────────────────────────────────

@router.get("/movements", response_model=MovementListResponse)
async def list_movements(
    site_id: str | None = Query(None, alias="siteId"),
    packaging_type_id: str | None = Query(None, alias="packagingTypeId"),
    load_id: str | None = Query(None, alias="loadId"),
    movement_type: str | None = Query(None, alias="movementType"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    conditions = []
    if site_id:
        conditions.append(PackagingMovement.site_id == site_id)
    if packaging_type_id:
        conditions.append(PackagingMovement.packaging_type_id == packaging_type_id)
    if load_id:
        conditions.append(PackagingMovement.load_id == load_id)
    if movement_type:
        conditions.append(PackagingMovement.movement_type == movement_type)
    if start_date:
        conditions.append(PackagingMovement.recorded_at >= datetime.combine(start_date, time.min))
    if end_date:
        conditions.append(
            PackagingMovement.recorded_at
            < datetime.combine(end_date + timedelta(days=1), time.min)
        )

    total = await db.scalar(select(func.count(PackagingMovement.id)).where(*conditions)) or 0
    result = await db.execute(
        select(PackagingMovement)
        .where(*conditions)
        .order_by(PackagingMovement.recorded_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return MovementListResponse(
        movements=[MovementOut.model_validate(m) for m in result.scalars().all()],
        pagination=Pagination(total=total, limit=limit, offset=offset),
    )


# ── GET /in-transit ──────────────────────────────────────────

@router.get("/in-transit", response_model=InTransitResponse)
async def in_transit(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    rows = await in_transit_totals(db)
    return InTransitResponse(in_transit=[InTransitRow(**row) for row in rows])
