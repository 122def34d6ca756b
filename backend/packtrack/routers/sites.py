"""Site routes: CRUD, site types and per-site inventory.

Route overview:
  GET    /                                    list (type, active, search)
  GET    /types                               site types
  GET    /{site_id}                           detail
  POST   /                                    create (admin)
  PUT    /{site_id}                           update (admin)
  DELETE /{site_id}                           deactivate (admin)
  GET    /{site_id}/inventory                 balances at one site
  PUT    /{site_id}/inventory/{packaging_id}  manual count
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.deps import get_current_user, require_role
from packtrack.database import get_db
from packtrack.middleware.exceptions import ConflictError, ResourceNotFoundError
from packtrack.models.packaging import SitePackagingInventory
from packtrack.models.site import Site, SiteType
from packtrack.models.user import User, UserRole
from packtrack.schemas.common import MessageResponse
from packtrack.schemas.packaging import (
    InventoryAdjustRequest,
    InventoryAdjustResponse,
    InventoryListResponse,
    InventoryOut,
    MovementOut,
)
from packtrack.schemas.site import (
    SiteCreate,
    SiteListResponse,
    SiteOut,
    SiteResponse,
    SiteTypeOut,
    SiteTypesResponse,
    SiteUpdate,
)
from packtrack.services.inventory import MANUAL_ADJUSTMENT_NOTE, set_inventory_level

router = APIRouter()

INVENTORY_ROLES = (UserRole.ADMIN, UserRole.DISPATCHER, UserRole.FARM_USER, UserRole.DEPOT_USER)


async def _get_site(db: AsyncSession, site_id: str) -> Site:
    site = await db.get(Site, site_id)
    if not site:
        raise ResourceNotFoundError("Site", site_id)
    return site


# ── GET / ────────────────────────────────────────────────────

@router.get("/", response_model=SiteListResponse)
async def list_sites(
    site_type_id: str | None = Query(None, alias="siteTypeId"),
    active: bool | None = Query(None),
    search: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = select(Site)
    if site_type_id:
        stmt = stmt.where(Site.site_type_id == site_type_id)
    if active is not None:
        stmt = stmt.where(Site.is_active == active)
    if search:
        pattern = f"%{search}%"
        stmt = stmt.where(or_(Site.name.ilike(pattern), Site.code.ilike(pattern)))

    result = await db.execute(stmt.order_by(Site.name))
    return SiteListResponse(sites=[SiteOut.model_validate(s) for s in result.scalars().all()])


# ── GET /types ───────────────────────────────────────────────

@router.get("/types", response_model=SiteTypesResponse)
async def list_site_types(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    result = await db.execute(select(SiteType).order_by(SiteType.name))
    return SiteTypesResponse(
        site_types=[SiteTypeOut.model_validate(t) for t in result.scalars().all()]
    )


# ── GET /{site_id} ───────────────────────────────────────────

@router.get("/{site_id}", response_model=SiteResponse)
async def get_site(
    site_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return SiteResponse(site=SiteOut.model_validate(await _get_site(db, site_id)))


# ── POST / ───────────────────────────────────────────────────

@router.post("/", response_model=SiteResponse, status_code=status.HTTP_201_CREATED)
async def create_site(
    body: SiteCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    existing = await db.execute(select(Site.id).where(Site.code == body.code))
    if existing.scalar_one_or_none():
        raise ConflictError(f"Site code {body.code} already exists", "DUPLICATE_RECORD")

    site = Site(**body.model_dump())
    db.add(site)
    await db.flush()
    await db.refresh(site)
    return SiteResponse(site=SiteOut.model_validate(site))


# ── PUT /{site_id} ───────────────────────────────────────────

@router.put("/{site_id}", response_model=SiteResponse)
async def update_site(
    site_id: str,
    body: SiteUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    site = await _get_site(db, site_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(site, key, value)

    await db.flush()
    await db.refresh(site)
    return SiteResponse(site=SiteOut.model_validate(site))


# ── DELETE /{site_id} ────────────────────────────────────────

@router.delete("/{site_id}", response_model=MessageResponse)
async def deactivate_site(
    site_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    """Sites are referenced by loads and movements, so they are only deactivated."""
    site = await _get_site(db, site_id)
    site.is_active = False
    await db.flush()
    return MessageResponse(message=f"Site {site.code} deactivated")


# ── GET /{site_id}/inventory ─────────────────────────────────

@router.get("/{site_id}/inventory", response_model=InventoryListResponse)
async def site_inventory(
    site_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    await _get_site(db, site_id)
    result = await db.execute(
        select(SitePackagingInventory).where(SitePackagingInventory.site_id == site_id)
    )
    rows = sorted(result.scalars().all(), key=lambda r: r.packaging_type_code or "")
    return InventoryListResponse(inventory=[InventoryOut.model_validate(r) for r in rows])


# ── PUT /{site_id}/inventory/{packaging_type_id} ─────────────

@router.put(
    "/{site_id}/inventory/{packaging_type_id}",
    response_model=InventoryAdjustResponse,
)
async def adjust_site_inventory(
    site_id: str,
    packaging_type_id: str,
    body: InventoryAdjustRequest,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_role(*INVENTORY_ROLES)),
):
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
