"""Dispatch planning: weekly view, demand roll-up and schedule promotion.

Promotion turns a DispatchSchedule into a scheduled Load exactly once. The
schedule's demand counts become packaging lines through the configured
``Settings.demand_packaging_codes`` mapping (demand category → packaging type
code); categories without a mapping, or whose code is unknown or inactive,
are skipped.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.config import settings
from packtrack.middleware.exceptions import BusinessLogicError
from packtrack.models.dispatch_schedule import DispatchSchedule
from packtrack.models.load import Load, LoadPackaging
from packtrack.models.packaging import PackagingType
from packtrack.models.site import Site
from packtrack.models.user import User
from packtrack.utils.numbering import generate_load_number

logger = logging.getLogger("packtrack.planner")

DEMAND_CATEGORIES = ("crates", "bins", "boxes", "pallets")
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def week_bounds(week_start: date | None = None, today: date | None = None) -> tuple[date, date]:
    """Monday-based week. ``week_start`` is used as given; default is this week."""
    if week_start is None:
        today = today or date.today()
        week_start = today - timedelta(days=today.weekday())
    return week_start, week_start + timedelta(days=6)


def group_by_day(
    schedules: list[DispatchSchedule],
    start: date,
) -> list[dict]:
    """Seven day buckets starting at ``start``, empty days included."""
    days = []
    for offset in range(7):
        day = start + timedelta(days=offset)
        days.append({
            "date": day,
            "day_name": DAY_NAMES[day.weekday()],
            "schedules": [s for s in schedules if s.dispatch_date == day],
        })
    return days


async def resolve_demand_lines(
    db: AsyncSession,
    schedule: DispatchSchedule,
    mapping: dict[str, str] | None = None,
) -> list[LoadPackaging]:
    """Packaging lines for a schedule's demand counts via the code mapping."""
    mapping = settings.demand_packaging_codes if mapping is None else mapping
    wanted = {
        category: mapping[category]
        for category in DEMAND_CATEGORIES
        if (getattr(schedule, category) or 0) > 0 and mapping.get(category)
    }
    if not wanted:
        return []

    result = await db.execute(
        select(PackagingType).where(
            PackagingType.code.in_(set(wanted.values())),
            PackagingType.is_active == True,  # noqa: E712
        )
    )
    by_code = {pt.code: pt for pt in result.scalars().all()}

    lines = []
    for category, code in wanted.items():
        packaging_type = by_code.get(code)
        if packaging_type is None:
            logger.warning(
                f"Schedule {schedule.id}: no active packaging type {code} for {category}; skipped"
            )
            continue
        line = LoadPackaging(
            packaging_type_id=packaging_type.id,
            quantity_dispatched=getattr(schedule, category),
            quantity_damaged=0,
            quantity_missing=0,
        )
        line.packaging_type = packaging_type
        lines.append(line)
    return lines


async def promote_schedule(
    db: AsyncSession,
    schedule: DispatchSchedule,
    user: User,
) -> Load:
    """Create the schedule's load, link it and mark the schedule confirmed."""
    if schedule.load_id:
        raise BusinessLogicError(
            "Load already created for this schedule", "SCHEDULE_ALREADY_PROMOTED"
        )
    if schedule.status == "cancelled":
        raise BusinessLogicError("Cannot create a load from a cancelled schedule")

    origin = await db.get(Site, schedule.origin_site_id)
    if origin is None:
        raise BusinessLogicError(f"Origin site not found: {schedule.origin_site_id}")

    load_number = await generate_load_number(db, origin.code, schedule.dispatch_date)
    load = Load(
        load_number=load_number,
        origin_site_id=schedule.origin_site_id,
        destination_site_id=schedule.destination_site_id,
        channel_id=schedule.channel_id,
        vehicle_id=schedule.vehicle_id,
        driver_id=schedule.driver_id,
        dispatch_date=schedule.dispatch_date,
        scheduled_departure_time=schedule.dispatch_time,
        expected_arrival_date=schedule.expected_arrival_date,
        estimated_arrival_time=schedule.expected_arrival_time,
        expected_farm_arrival_time=settings.default_farm_arrival_time,
        expected_farm_departure_time=settings.default_farm_departure_time,
        notes=schedule.notes,
        status="scheduled",
        has_discrepancy=False,
        has_overtime=False,
        farm_arrival_overtime_minutes=0,
        farm_departure_overtime_minutes=0,
        created_by=user.id,
        packaging=await resolve_demand_lines(db, schedule),
        backload_packaging=[],
    )
    db.add(load)
    await db.flush()
    await db.refresh(load)

    schedule.load_id = load.id
    schedule.load = load
    schedule.status = "confirmed"
    await db.flush()

    logger.info(f"Schedule {schedule.id} promoted to load {load.load_number}")
    return load


async def packaging_demand(
    db: AsyncSession,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[dict]:
    """Planned packaging per origin site, cancelled schedules excluded."""
    query = (
        select(
            Site.id,
            Site.code,
            Site.name,
            func.coalesce(func.sum(DispatchSchedule.crates), 0),
            func.coalesce(func.sum(DispatchSchedule.bins), 0),
            func.coalesce(func.sum(DispatchSchedule.boxes), 0),
            func.coalesce(func.sum(DispatchSchedule.pallets), 0),
            func.count(DispatchSchedule.id),
        )
        .join(Site, Site.id == DispatchSchedule.origin_site_id)
        .where(DispatchSchedule.status != "cancelled")
        .group_by(Site.id, Site.code, Site.name)
        .order_by(Site.name)
    )
    if start_date:
        query = query.where(DispatchSchedule.dispatch_date >= start_date)
    if end_date:
        query = query.where(DispatchSchedule.dispatch_date <= end_date)

    rows = (await db.execute(query)).all()
    return [
        {
            "site_id": site_id,
            "site_code": code,
            "site_name": name,
            "total_crates": int(crates),
            "total_bins": int(bins),
            "total_boxes": int(boxes),
            "total_pallets": int(pallets),
            "dispatch_count": count,
        }
        for site_id, code, name, crates, bins, boxes, pallets, count in rows
    ]
