"""Load lifecycle service.

Handles everything that changes a load after the request has been
validated:
  - Creating loads (number allocation, packaging lines, backload lines)
  - Status transitions, checked against ALLOWED_TRANSITIONS
  - Dispatch and receipt confirmation, including on-time classification
    and the inventory ledger entries at origin, destination and backload site
  - Farm waypoint confirmation and overtime
  - Duplicating, cancelling and deleting loads

All functions run inside the caller's request transaction and only flush;
the commit (or rollback) happens when the request finishes.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.config import settings
from packtrack.middleware.exceptions import (
    BusinessLogicError,
    ConflictError,
    ResourceNotFoundError,
)
from packtrack.models.alert import Alert
from packtrack.models.dispatch_schedule import DispatchSchedule
from packtrack.models.load import BackloadPackaging, Load, LoadPackaging
from packtrack.models.packaging import PackagingType
from packtrack.models.site import Site
from packtrack.models.user import User
from packtrack.schemas.load import (
    BackloadPackagingIn,
    ConfirmDispatchRequest,
    ConfirmReceiptRequest,
    LoadCreate,
    LoadPackagingIn,
    LoadUpdate,
)
from packtrack.services.inventory import apply_inventory_delta
from packtrack.utils.numbering import generate_load_number

logger = logging.getLogger("packtrack.loads")

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "scheduled": {"loading", "departed", "cancelled"},
    "loading": {"departed", "cancelled"},
    "departed": {"in_transit", "arrived_depot", "completed", "cancelled"},
    "in_transit": {"arrived_depot", "completed", "cancelled"},
    "arrived_depot": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}
TERMINAL_STATUSES = {"completed", "cancelled"}
IN_TRANSIT_STATUSES = ("departed", "in_transit", "arrived_depot")
ACTIVE_STATUSES = ("scheduled", "loading", *IN_TRANSIT_STATUSES)

# Statuses a plain update may set; departed and completed carry ledger side
# effects and are only reachable through confirm-dispatch / confirm-receipt
MANUAL_STATUSES = {"loading", "in_transit", "arrived_depot", "cancelled"}


# ── Time arithmetic ─────────────────────────────────────────

def to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC; convert aware inputs."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def minutes_between(expected: datetime, actual: datetime) -> float:
    return (to_naive_utc(actual) - to_naive_utc(expected)).total_seconds() / 60


def classify_on_time(
    scheduled: datetime,
    actual: datetime,
    tolerance_minutes: int | None = None,
) -> str:
    """early if actual ≤ scheduled - tolerance, delayed if ≥ scheduled + tolerance."""
    tolerance = (
        settings.on_time_tolerance_minutes if tolerance_minutes is None else tolerance_minutes
    )
    diff = minutes_between(scheduled, actual)
    if diff <= -tolerance:
        return "early"
    if diff >= tolerance:
        return "delayed"
    return "on_time"


def overtime_minutes(expected: datetime, actual: datetime) -> int:
    """Whole minutes late, never negative."""
    return max(0, round(minutes_between(expected, actual)))


# ── Lookups ─────────────────────────────────────────────────

async def get_load(db: AsyncSession, load_id: str) -> Load:
    result = await db.execute(select(Load).where(Load.id == load_id))
    load = result.scalar_one_or_none()
    if not load:
        raise ResourceNotFoundError("Load", load_id)
    return load


async def active_loads(db: AsyncSession, today: date | None = None) -> list[Load]:
    """Open loads dispatched yesterday or today, newest first, for the live map."""
    today = today or date.today()
    result = await db.execute(
        select(Load)
        .where(
            Load.status.in_(ACTIVE_STATUSES),
            Load.dispatch_date.between(today - timedelta(days=1), today),
        )
        .order_by(Load.dispatch_date.desc(), Load.created_at.desc())
    )
    return list(result.scalars().all())


async def _require_site(db: AsyncSession, site_id: str, label: str) -> Site:
    site = await db.get(Site, site_id)
    if not site:
        raise BusinessLogicError(f"{label} site not found: {site_id}", "INVALID_SITE")
    return site


async def _require_packaging_types(db: AsyncSession, ids: set[str]) -> dict[str, PackagingType]:
    if not ids:
        return {}
    result = await db.execute(select(PackagingType).where(PackagingType.id.in_(ids)))
    found = {pt.id: pt for pt in result.scalars().all()}
    missing = ids - found.keys()
    if missing:
        raise BusinessLogicError(
            f"Packaging type not found: {', '.join(sorted(missing))}",
            "INVALID_PACKAGING_TYPE",
        )
    return found


def _build_lines(
    lines: list[LoadPackagingIn],
    types: dict[str, PackagingType],
) -> list[LoadPackaging]:
    built = []
    for line in lines:
        row = LoadPackaging(
            packaging_type_id=line.packaging_type_id,
            quantity_dispatched=line.quantity,
            quantity_damaged=0,
            quantity_missing=0,
            product_type_id=line.product_type_id,
            product_variety_id=line.product_variety_id,
            product_grade_id=line.product_grade_id,
            notes=line.notes,
        )
        row.packaging_type = types[line.packaging_type_id]
        built.append(row)
    return built


def _build_backload_lines(
    lines: list[BackloadPackagingIn],
    types: dict[str, PackagingType],
) -> list[BackloadPackaging]:
    built = []
    for line in lines:
        row = BackloadPackaging(
            packaging_type_id=line.packaging_type_id,
            quantity_returned=line.quantity_returned,
            quantity_damaged=line.quantity_damaged,
            notes=line.notes,
        )
        row.packaging_type = types[line.packaging_type_id]
        built.append(row)
    return built


# ── Transitions ─────────────────────────────────────────────

def ensure_transition(load: Load, new_status: str) -> None:
    allowed = ALLOWED_TRANSITIONS.get(load.status, set())
    if new_status not in allowed:
        raise ConflictError(
            f"Cannot change load {load.load_number} from {load.status} to {new_status}",
            "INVALID_TRANSITION",
        )


def _set_status(load: Load, new_status: str) -> None:
    ensure_transition(load, new_status)
    previous = load.status
    load.status = new_status
    if new_status == "arrived_depot" and load.arrived_depot_at is None:
        load.arrived_depot_at = datetime.utcnow()
    if previous == "arrived_depot" and load.departed_depot_at is None:
        load.departed_depot_at = datetime.utcnow()
    logger.info(f"Load {load.load_number}: {previous} -> {new_status}")


# ── Create ──────────────────────────────────────────────────

async def create_load(db: AsyncSession, body: LoadCreate, user: User) -> Load:
    """Create a scheduled load with its packaging lines in one unit of work."""
    if body.origin_site_id == body.destination_site_id:
        raise BusinessLogicError("Origin and destination must differ", "INVALID_ROUTE")

    origin = await _require_site(db, body.origin_site_id, "Origin")
    destination = await _require_site(db, body.destination_site_id, "Destination")
    backload_site = None
    if body.backload_site_id:
        backload_site = await _require_site(db, body.backload_site_id, "Backload")

    types = await _require_packaging_types(
        db,
        {line.packaging_type_id for line in body.packaging}
        | {line.packaging_type_id for line in body.backload_packaging},
    )

    load_number = await generate_load_number(db, origin.code, body.dispatch_date)

    load = Load(
        load_number=load_number,
        origin_site_id=origin.id,
        destination_site_id=destination.id,
        channel_id=body.channel_id,
        vehicle_id=body.vehicle_id,
        driver_id=body.driver_id,
        dispatch_date=body.dispatch_date,
        expected_arrival_date=body.expected_arrival_date,
        scheduled_departure_time=body.scheduled_departure_time,
        estimated_arrival_time=body.estimated_arrival_time,
        expected_farm_arrival_time=(
            body.expected_farm_arrival_time or settings.default_farm_arrival_time
        ),
        expected_farm_departure_time=(
            body.expected_farm_departure_time or settings.default_farm_departure_time
        ),
        backload_site_id=body.backload_site_id,
        backload_notes=body.backload_notes,
        notes=body.notes,
        status="scheduled",
        has_discrepancy=False,
        has_overtime=False,
        farm_arrival_overtime_minutes=0,
        farm_departure_overtime_minutes=0,
        created_by=user.id,
        packaging=_build_lines(body.packaging, types),
        backload_packaging=_build_backload_lines(body.backload_packaging, types),
    )
    load.origin_site = origin
    load.destination_site = destination
    load.backload_site = backload_site
    db.add(load)
    await db.flush()
    await db.refresh(load)

    logger.info(f"Load {load.load_number} created by {user.email}")
    return load


# ── Update ──────────────────────────────────────────────────

async def update_load(db: AsyncSession, load: Load, body: LoadUpdate, user: User) -> Load:
    """Apply the fields present in ``body``; omitted fields are untouched."""
    changes = body.model_dump(exclude_unset=True)
    new_status = changes.pop("status", None)
    backload_lines = changes.pop("backload_packaging", None)

    if load.status in TERMINAL_STATUSES and (
        set(changes) - {"notes"} or backload_lines is not None
    ):
        raise ConflictError(
            f"Load {load.load_number} is {load.status}; only notes can change",
            "LOAD_CLOSED",
        )

    if "destination_site_id" in changes:
        if changes["destination_site_id"] is None:
            raise BusinessLogicError("Destination is required", "INVALID_SITE")
        destination = await _require_site(db, changes["destination_site_id"], "Destination")
        if destination.id == load.origin_site_id:
            raise BusinessLogicError("Origin and destination must differ", "INVALID_ROUTE")
        load.destination_site = destination
    if changes.get("backload_site_id"):
        load.backload_site = await _require_site(db, changes["backload_site_id"], "Backload")
    elif "backload_site_id" in changes:
        load.backload_site = None
    if "dispatch_date" in changes and changes["dispatch_date"] is None:
        raise BusinessLogicError("Dispatch date is required", "INVALID_DATE")

    for field, value in changes.items():
        setattr(load, field, value)

    if backload_lines is not None:
        types = await _require_packaging_types(
            db, {line.packaging_type_id for line in body.backload_packaging}
        )
        load.backload_packaging = _build_backload_lines(body.backload_packaging, types)

    if new_status and new_status != load.status:
        if new_status not in MANUAL_STATUSES:
            raise ConflictError(
                f"Status {new_status} is set by its confirmation endpoint",
                "INVALID_TRANSITION",
            )
        _set_status(load, new_status)

    await db.flush()
    await db.refresh(load)
    return load


# ── Dispatch ────────────────────────────────────────────────

async def confirm_dispatch(
    db: AsyncSession,
    load: Load,
    body: ConfirmDispatchRequest,
    user: User,
) -> Load:
    """Mark the load departed and take its packaging out of origin stock."""
    ensure_transition(load, "departed")

    actual = to_naive_utc(body.actual_departure_time or datetime.utcnow())
    load.actual_departure_time = actual
    if load.scheduled_departure_time is not None:
        scheduled = datetime.combine(load.dispatch_date, load.scheduled_departure_time)
        load.on_time_status = classify_on_time(scheduled, actual)
    if body.notes:
        load.notes = f"{load.notes}\n{body.notes}" if load.notes else body.notes

    _set_status(load, "departed")
    load.confirmed_dispatch_by = user.id
    load.confirmed_dispatch_at = datetime.utcnow()

    # ── Origin inventory ──────────────────────────────────────
    for line in load.packaging:
        await apply_inventory_delta(
            db,
            site_id=load.origin_site_id,
            packaging_type_id=line.packaging_type_id,
            delta=-line.quantity_dispatched,
            movement_type="dispatch",
            user_id=user.id,
            load_id=load.id,
            reference_number=load.load_number,
            notes=f"Dispatched on load {load.load_number}",
        )

    await db.flush()
    return load


# ── Receipt ─────────────────────────────────────────────────

async def confirm_receipt(
    db: AsyncSession,
    load: Load,
    body: ConfirmReceiptRequest,
    user: User,
) -> tuple[Load, bool]:
    """Record received quantities, flag discrepancies and complete the load.

    Lines missing from the request are taken as received in full.
    Returns (load, has_discrepancy).
    """
    ensure_transition(load, "completed")

    lines_by_id = {line.id: line for line in load.packaging}
    for entry in body.packaging:
        line = lines_by_id.get(entry.id)
        if line is None:
            raise BusinessLogicError(
                f"Packaging line {entry.id} does not belong to load {load.load_number}",
                "INVALID_LINE",
            )
        line.quantity_received = entry.quantity_received
        line.quantity_damaged = entry.quantity_damaged
        line.quantity_missing = entry.quantity_missing
        if entry.notes is not None:
            line.notes = entry.notes

    for line in load.packaging:
        if line.quantity_received is None:
            line.quantity_received = line.quantity_dispatched

    has_discrepancy = any(
        (line.quantity_damaged or 0) > 0 or (line.quantity_missing or 0) > 0
        for line in load.packaging
    )

    # ── Arrival timing ────────────────────────────────────────
    # arrival status only; cleared when arrival cannot be classified
    load.on_time_status = None
    if body.actual_arrival_time is not None:
        actual = to_naive_utc(body.actual_arrival_time)
        if load.estimated_arrival_time is not None:
            expected_day = load.expected_arrival_date or load.dispatch_date
            expected = datetime.combine(expected_day, load.estimated_arrival_time)
            load.on_time_status = classify_on_time(expected, actual)
    else:
        actual = datetime.utcnow()
    load.actual_arrival_time = actual

    load.has_discrepancy = has_discrepancy
    if body.discrepancy_notes is not None:
        load.discrepancy_notes = body.discrepancy_notes
    _set_status(load, "completed")
    load.confirmed_receipt_by = user.id
    load.confirmed_receipt_at = datetime.utcnow()

    # ── Destination inventory ─────────────────────────────────
    for line in load.packaging:
        received = line.quantity_received or 0
        damaged = line.quantity_damaged or 0
        if received or damaged:
            await apply_inventory_delta(
                db,
                site_id=load.destination_site_id,
                packaging_type_id=line.packaging_type_id,
                delta=received,
                damaged_delta=damaged,
                movement_type="receipt",
                user_id=user.id,
                load_id=load.id,
                reference_number=load.load_number,
                notes=f"Received on load {load.load_number}",
            )

    # ── Backload returns ──────────────────────────────────────
    if load.backload_site_id:
        for line in load.backload_packaging:
            if line.quantity_returned or line.quantity_damaged:
                await apply_inventory_delta(
                    db,
                    site_id=load.backload_site_id,
                    packaging_type_id=line.packaging_type_id,
                    delta=line.quantity_returned,
                    damaged_delta=line.quantity_damaged,
                    movement_type="backload_return",
                    user_id=user.id,
                    load_id=load.id,
                    reference_number=load.load_number,
                    notes=f"Backload return on load {load.load_number}",
                )

    if has_discrepancy:
        damaged = sum(line.quantity_damaged or 0 for line in load.packaging)
        missing = sum(line.quantity_missing or 0 for line in load.packaging)
        db.add(Alert(
            alert_type="discrepancy",
            severity="warning",
            site_id=load.destination_site_id,
            load_id=load.id,
            message=(
                f"Load {load.load_number} received with {damaged} damaged "
                f"and {missing} missing"
            ),
            is_acknowledged=False,
        ))
        logger.warning(f"Discrepancy on load {load.load_number}")

    await db.flush()
    return load, has_discrepancy


# ── Farm waypoint ───────────────────────────────────────────

def _ensure_open(load: Load) -> None:
    if load.status in TERMINAL_STATUSES:
        raise ConflictError(
            f"Load {load.load_number} is {load.status}", "LOAD_CLOSED"
        )


def _expected_at(load: Load, expected_time: time | None, default: time) -> datetime:
    return datetime.combine(load.dispatch_date, expected_time or default)


async def confirm_farm_arrival(
    db: AsyncSession,
    load: Load,
    actual_time: datetime | None,
) -> tuple[Load, int]:
    _ensure_open(load)
    actual = to_naive_utc(actual_time or datetime.utcnow())
    expected = _expected_at(
        load, load.expected_farm_arrival_time, settings.default_farm_arrival_time
    )
    minutes = overtime_minutes(expected, actual)

    load.actual_farm_arrival_time = actual
    load.farm_arrival_overtime_minutes = minutes
    load.has_overtime = minutes > 0 or (load.farm_departure_overtime_minutes or 0) > 0
    await db.flush()
    return load, minutes


async def confirm_farm_departure(
    db: AsyncSession,
    load: Load,
    actual_time: datetime | None,
) -> tuple[Load, int]:
    _ensure_open(load)
    actual = to_naive_utc(actual_time or datetime.utcnow())
    expected = _expected_at(
        load, load.expected_farm_departure_time, settings.default_farm_departure_time
    )
    minutes = overtime_minutes(expected, actual)

    load.actual_farm_departure_time = actual
    load.farm_departure_overtime_minutes = minutes
    load.has_overtime = minutes > 0 or (load.farm_arrival_overtime_minutes or 0) > 0
    await db.flush()
    return load, minutes


# ── Duplicate / cancel / delete ─────────────────────────────

async def duplicate_load(
    db: AsyncSession,
    source: Load,
    dispatch_date: date | None,
    user: User,
) -> Load:
    """Clone route, timings and packaging lines onto a new dispatch date."""
    new_date = dispatch_date or source.dispatch_date
    expected_arrival = None
    if source.expected_arrival_date is not None:
        expected_arrival = source.expected_arrival_date + (new_date - source.dispatch_date)

    load_number = await generate_load_number(db, source.origin_site.code, new_date)
    lines = []
    for line in source.packaging:
        row = LoadPackaging(
            packaging_type_id=line.packaging_type_id,
            quantity_dispatched=line.quantity_dispatched,
            quantity_damaged=0,
            quantity_missing=0,
            product_type_id=line.product_type_id,
            product_variety_id=line.product_variety_id,
            product_grade_id=line.product_grade_id,
            notes=line.notes,
        )
        row.packaging_type = line.packaging_type
        lines.append(row)

    load = Load(
        load_number=load_number,
        origin_site_id=source.origin_site_id,
        destination_site_id=source.destination_site_id,
        channel_id=source.channel_id,
        vehicle_id=source.vehicle_id,
        driver_id=source.driver_id,
        dispatch_date=new_date,
        expected_arrival_date=expected_arrival,
        scheduled_departure_time=source.scheduled_departure_time,
        estimated_arrival_time=source.estimated_arrival_time,
        expected_farm_arrival_time=source.expected_farm_arrival_time,
        expected_farm_departure_time=source.expected_farm_departure_time,
        notes=source.notes,
        status="scheduled",
        has_discrepancy=False,
        has_overtime=False,
        farm_arrival_overtime_minutes=0,
        farm_departure_overtime_minutes=0,
        created_by=user.id,
        packaging=lines,
        backload_packaging=[],
    )
    db.add(load)
    await db.flush()
    await db.refresh(load)

    logger.info(f"Load {source.load_number} duplicated as {load.load_number}")
    return load


async def cancel_load(db: AsyncSession, load: Load, reason: str | None = None) -> Load:
    _set_status(load, "cancelled")
    if reason:
        load.notes = f"{load.notes}\nCancelled: {reason}" if load.notes else f"Cancelled: {reason}"
    await db.flush()
    return load


async def delete_load(db: AsyncSession, load: Load) -> None:
    """Hard-delete a load that has not started; lines go with it."""
    if load.status != "scheduled":
        raise BusinessLogicError("Can only delete scheduled loads", "LOAD_NOT_DELETABLE")

    # A promoted schedule goes back to planning
    schedules = (
        await db.execute(select(DispatchSchedule).where(DispatchSchedule.load_id == load.id))
    ).scalars().all()
    for schedule in schedules:
        schedule.load_id = None
        schedule.load = None
        schedule.status = "planned"

    load.packaging.clear()
    load.backload_packaging.clear()
    await db.flush()
    await db.delete(load)
    await db.flush()
    logger.info(f"Load {load.load_number} deleted")
