"""Admin configuration routes: users, fleet, channels, thresholds, products.

Route overview:
  GET/POST         /users              PUT/DELETE /users/{id}
  GET/POST         /vehicles           PUT/DELETE /vehicles/{id}
  GET/POST         /drivers            PUT/DELETE /drivers/{id}
  GET/POST         /channels           PUT/DELETE /channels/{id}
  GET/PUT          /thresholds         DELETE     /thresholds/{id}
  GET/POST         /product-types      POST       /varieties
  GET/POST         /grades
  GET              /all                product taxonomy and fleet in one call

DELETE never removes users, vehicles, drivers or channels; it deactivates
them so historical loads keep valid references.
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.deps import get_current_user, require_role
from packtrack.auth.password import hash_password
from packtrack.database import get_db
from packtrack.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    ResourceNotFoundError,
)
from packtrack.models.fleet import Channel, Driver, Vehicle
from packtrack.models.packaging import PackagingType, SitePackagingThreshold
from packtrack.models.product import ProductGrade, ProductType, ProductVariety
from packtrack.models.site import Site
from packtrack.models.user import User, UserRole
from packtrack.schemas.auth import UserOut, UserResponse
from packtrack.schemas.common import MessageResponse
from packtrack.schemas.config import (
    ChannelCreate,
    ChannelListResponse,
    ChannelOut,
    ChannelResponse,
    ChannelUpdate,
    ConfigAllResponse,
    DriverCreate,
    DriverListResponse,
    DriverOut,
    DriverResponse,
    DriverUpdate,
    ProductGradeCreate,
    ProductGradeListResponse,
    ProductGradeOut,
    ProductGradeResponse,
    ProductTypeCreate,
    ProductTypeListResponse,
    ProductTypeOut,
    ProductTypeResponse,
    ProductVarietyCreate,
    ProductVarietyOut,
    ProductVarietyResponse,
    ThresholdListResponse,
    ThresholdOut,
    ThresholdResponse,
    ThresholdUpsert,
    UserCreate,
    UserListResponse,
    UserUpdate,
    VehicleCreate,
    VehicleListResponse,
    VehicleOut,
    VehicleResponse,
    VehicleUpdate,
)

logger = logging.getLogger("packtrack.config")

router = APIRouter()

admin_only = require_role(UserRole.ADMIN)


async def _get_or_404(db: AsyncSession, model, obj_id: str, label: str):
    obj = await db.get(model, obj_id)
    if not obj:
        raise ResourceNotFoundError(label, obj_id)
    return obj


async def _ensure_unique(db: AsyncSession, column, value, label: str) -> None:
    existing = await db.execute(select(column).where(column == value))
    if existing.first():
        raise ConflictError(f"{label} {value} already exists", "DUPLICATE_RECORD")


def _apply(obj, body) -> None:
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(obj, key, value)


# ═══════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════

@router.get("/users", response_model=UserListResponse)
async def list_users(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    result = await db.execute(select(User).order_by(User.last_name, User.first_name))
    return UserListResponse(users=[UserOut.model_validate(u) for u in result.scalars().all()])


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    email = body.email.lower()
    await _ensure_unique(db, User.email, email, "User")

    user = User(
        email=email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        role=body.role,
        assigned_site_id=body.assigned_site_id,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    logger.info(f"User created: {user.email} ({user.role.value})")
    return UserResponse(user=UserOut.model_validate(user))


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    user = await _get_or_404(db, User, user_id, "User")
    updates = body.model_dump(exclude_unset=True)

    password = updates.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
        user.token_version = (user.token_version or 0) + 1
    for key, value in updates.items():
        setattr(user, key, value)

    await db.flush()
    await db.refresh(user)
    return UserResponse(user=UserOut.model_validate(user))


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def deactivate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(admin_only),
):
    if user_id == admin.id:
        raise BusinessLogicError("Cannot deactivate your own account")
    user = await _get_or_404(db, User, user_id, "User")
    user.is_active = False
    await db.flush()
    return MessageResponse(message=f"User {user.email} deactivated")


# ═══════════════════════════════════════════════════════════════
# Vehicles
# ═══════════════════════════════════════════════════════════════

@router.get("/vehicles", response_model=VehicleListResponse)
async def list_vehicles(
    active: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    stmt = select(Vehicle)
    if active is not None:
        stmt = stmt.where(Vehicle.is_active == active)
    result = await db.execute(stmt.order_by(Vehicle.registration))
    return VehicleListResponse(vehicles=[VehicleOut.model_validate(v) for v in result.scalars().all()])


@router.post("/vehicles", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    body: VehicleCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    await _ensure_unique(db, Vehicle.registration, body.registration, "Vehicle")
    vehicle = Vehicle(**body.model_dump(), is_active=True)
    db.add(vehicle)
    await db.flush()
    return VehicleResponse(vehicle=VehicleOut.model_validate(vehicle))


@router.put("/vehicles/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    vehicle_id: str,
    body: VehicleUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    vehicle = await _get_or_404(db, Vehicle, vehicle_id, "Vehicle")
    _apply(vehicle, body)
    await db.flush()
    await db.refresh(vehicle)
    return VehicleResponse(vehicle=VehicleOut.model_validate(vehicle))


@router.delete("/vehicles/{vehicle_id}", response_model=MessageResponse)
async def deactivate_vehicle(
    vehicle_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    vehicle = await _get_or_404(db, Vehicle, vehicle_id, "Vehicle")
    vehicle.is_active = False
    await db.flush()
    return MessageResponse(message=f"Vehicle {vehicle.registration} deactivated")


# ═══════════════════════════════════════════════════════════════
# Drivers
# ═══════════════════════════════════════════════════════════════

@router.get("/drivers", response_model=DriverListResponse)
async def list_drivers(
    active: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    stmt = select(Driver)
    if active is not None:
        stmt = stmt.where(Driver.is_active == active)
    result = await db.execute(stmt.order_by(Driver.first_name, Driver.last_name))
    return DriverListResponse(drivers=[DriverOut.model_validate(d) for d in result.scalars().all()])


@router.post("/drivers", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    body: DriverCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    if body.employee_id:
        await _ensure_unique(db, Driver.employee_id, body.employee_id, "Driver")
    driver = Driver(**body.model_dump(), is_active=True)
    db.add(driver)
    await db.flush()
    return DriverResponse(driver=DriverOut.model_validate(driver))


@router.put("/drivers/{driver_id}", response_model=DriverResponse)
async def update_driver(
    driver_id: str,
    body: DriverUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    driver = await _get_or_404(db, Driver, driver_id, "Driver")
    _apply(driver, body)
    await db.flush()
    await db.refresh(driver)
    return DriverResponse(driver=DriverOut.model_validate(driver))


@router.delete("/drivers/{driver_id}", response_model=MessageResponse)
async def deactivate_driver(
    driver_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    driver = await _get_or_404(db, Driver, driver_id, "Driver")
    driver.is_active = False
    await db.flush()
    return MessageResponse(message=f"Driver {driver.full_name} deactivated")


# ═══════════════════════════════════════════════════════════════
# Channels
# ═══════════════════════════════════════════════════════════════

@router.get("/channels", response_model=ChannelListResponse)
async def list_channels(
    active: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    stmt = select(Channel)
    if active is not None:
        stmt = stmt.where(Channel.is_active == active)
    result = await db.execute(stmt.order_by(Channel.name))
    return ChannelListResponse(channels=[ChannelOut.model_validate(c) for c in result.scalars().all()])


@router.post("/channels", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def create_channel(
    body: ChannelCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    await _ensure_unique(db, Channel.code, body.code, "Channel")
    channel = Channel(**body.model_dump(), is_active=True)
    db.add(channel)
    await db.flush()
    return ChannelResponse(channel=ChannelOut.model_validate(channel))


@router.put("/channels/{channel_id}", response_model=ChannelResponse)
async def update_channel(
    channel_id: str,
    body: ChannelUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    channel = await _get_or_404(db, Channel, channel_id, "Channel")
    _apply(channel, body)
    await db.flush()
    return ChannelResponse(channel=ChannelOut.model_validate(channel))


@router.delete("/channels/{channel_id}", response_model=MessageResponse)
async def deactivate_channel(
    channel_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    channel = await _get_or_404(db, Channel, channel_id, "Channel")
    channel.is_active = False
    await db.flush()
    return MessageResponse(message=f"Channel {channel.code} deactivated")


# ═══════════════════════════════════════════════════════════════
# Thresholds
# ═══════════════════════════════════════════════════════════════

@router.get("/thresholds", response_model=ThresholdListResponse)
async def list_thresholds(
    site_id: str | None = Query(None, alias="siteId"),
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    stmt = select(SitePackagingThreshold)
    if site_id:
        stmt = stmt.where(SitePackagingThreshold.site_id == site_id)
    rows = (await db.execute(stmt)).scalars().all()
    rows = sorted(rows, key=lambda t: (t.site_code or "", t.packaging_type_code or ""))
    return ThresholdListResponse(thresholds=[ThresholdOut.model_validate(t) for t in rows])


@router.put("/thresholds", response_model=ThresholdResponse)
async def upsert_threshold(
    body: ThresholdUpsert,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    """Create or replace the threshold for one (site, packaging type) pair."""
    await _get_or_404(db, Site, body.site_id, "Site")
    await _get_or_404(db, PackagingType, body.packaging_type_id, "Packaging type")

    result = await db.execute(
        select(SitePackagingThreshold).where(
            SitePackagingThreshold.site_id == body.site_id,
            SitePackagingThreshold.packaging_type_id == body.packaging_type_id,
        )
    )
    threshold = result.scalar_one_or_none()
    if threshold is None:
        threshold = SitePackagingThreshold(
            site_id=body.site_id, packaging_type_id=body.packaging_type_id
        )
        db.add(threshold)

    threshold.min_threshold = body.min_threshold
    threshold.max_threshold = body.max_threshold
    threshold.alert_enabled = body.alert_enabled
    await db.flush()
    await db.refresh(threshold)
    return ThresholdResponse(threshold=ThresholdOut.model_validate(threshold))


@router.delete("/thresholds/{threshold_id}", response_model=MessageResponse)
async def delete_threshold(
    threshold_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    threshold = await _get_or_404(db, SitePackagingThreshold, threshold_id, "Threshold")
    await db.delete(threshold)
    await db.flush()
    return MessageResponse(message="Threshold deleted")


# ═══════════════════════════════════════════════════════════════
# Products
# ═══════════════════════════════════════════════════════════════

@router.get("/product-types", response_model=ProductTypeListResponse)
async def list_product_types(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    result = await db.execute(select(ProductType).order_by(ProductType.name))
    return ProductTypeListResponse(
        product_types=[ProductTypeOut.model_validate(p) for p in result.scalars().all()]
    )


@router.post("/product-types", response_model=ProductTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_product_type(
    body: ProductTypeCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    await _ensure_unique(db, ProductType.code, body.code, "Product type")
    product_type = ProductType(**body.model_dump(), is_active=True)
    db.add(product_type)
    await db.flush()
    await db.refresh(product_type)
    return ProductTypeResponse(product_type=ProductTypeOut.model_validate(product_type))


@router.post("/varieties", response_model=ProductVarietyResponse, status_code=status.HTTP_201_CREATED)
async def create_variety(
    body: ProductVarietyCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    await _get_or_404(db, ProductType, body.product_type_id, "Product type")
    variety = ProductVariety(**body.model_dump(), is_active=True)
    db.add(variety)
    await db.flush()
    return ProductVarietyResponse(variety=ProductVarietyOut.model_validate(variety))


@router.get("/grades", response_model=ProductGradeListResponse)
async def list_grades(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    result = await db.execute(select(ProductGrade).order_by(ProductGrade.sort_order))
    return ProductGradeListResponse(
        grades=[ProductGradeOut.model_validate(g) for g in result.scalars().all()]
    )


@router.post("/grades", response_model=ProductGradeResponse, status_code=status.HTTP_201_CREATED)
async def create_grade(
    body: ProductGradeCreate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(admin_only),
):
    await _ensure_unique(db, ProductGrade.code, body.code, "Grade")
    grade = ProductGrade(**body.model_dump(), is_active=True)
    db.add(grade)
    await db.flush()
    return ProductGradeResponse(grade=ProductGradeOut.model_validate(grade))


# ── GET /all ─────────────────────────────────────────────────

@router.get("/all", response_model=ConfigAllResponse)
async def config_all(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    """Active reference data for the load and planner forms."""
    product_types = await db.execute(
        select(ProductType).where(ProductType.is_active == True).order_by(ProductType.name)  # noqa: E712
    )
    grades = await db.execute(
        select(ProductGrade).where(ProductGrade.is_active == True).order_by(ProductGrade.sort_order)  # noqa: E712
    )
    vehicles = await db.execute(
        select(Vehicle).where(Vehicle.is_active == True).order_by(Vehicle.registration)  # noqa: E712
    )
    drivers = await db.execute(
        select(Driver).where(Driver.is_active == True).order_by(Driver.first_name)  # noqa: E712
    )
    channels = await db.execute(
        select(Channel).where(Channel.is_active == True).order_by(Channel.name)  # noqa: E712
    )
    return ConfigAllResponse(
        product_types=[ProductTypeOut.model_validate(p) for p in product_types.scalars().all()],
        grades=[ProductGradeOut.model_validate(g) for g in grades.scalars().all()],
        vehicles=[VehicleOut.model_validate(v) for v in vehicles.scalars().all()],
        drivers=[DriverOut.model_validate(d) for d in drivers.scalars().all()],
        channels=[ChannelOut.model_validate(c) for c in channels.scalars().all()],
    )
