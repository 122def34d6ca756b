"""Weekly planner routes: dispatch schedules and their promotion to loads.

Route overview:
  GET    /schedules                        list (date range, sites, status)
  GET    /schedules/week                   seven-day view from weekStart
  GET    /schedules/{schedule_id}
  POST   /schedules                        create (planned)
  PUT    /schedules/{schedule_id}          partial update
  DELETE /schedules/{schedule_id}          admin
  POST   /schedules/{schedule_id}/create-load  promote once to a scheduled load
  GET    /packaging-demand                 planned packaging per origin site
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.deps import get_current_user, require_role
from packtrack.database import get_db
from packtrack.middleware.exceptions import BusinessLogicError, ResourceNotFoundError
from packtrack.models.dispatch_schedule import DispatchSchedule
from packtrack.models.site import Site
from packtrack.models.user import User, UserRole
from packtrack.schemas.common import MessageResponse
from packtrack.schemas.load import LoadCreatedResponse, LoadOut
from packtrack.schemas.planner import (
    SCHEDULE_STATUSES,
    DemandResponse,
    DemandRow,
    ScheduleCreate,
    ScheduleListResponse,
    ScheduleOut,
    ScheduleResponse,
    ScheduleUpdate,
    WeekDay,
    WeekResponse,
)
from packtrack.services import planner

router = APIRouter()

planners = require_role(UserRole.ADMIN, UserRole.DISPATCHER)


async def _get_schedule(db: AsyncSession, schedule_id: str) -> DispatchSchedule:
    schedule = await db.get(DispatchSchedule, schedule_id)
    if not schedule:
        raise ResourceNotFoundError("Schedule", schedule_id)
    return schedule


async def _check_site(db: AsyncSession, site_id: str, label: str) -> None:
    if not await db.get(Site, site_id):
        raise BusinessLogicError(f"{label} site not found: {site_id}", "INVALID_SITE")


def _schedule_query(start: date | None, end: date | None):
    stmt = select(DispatchSchedule)
    if start:
        stmt = stmt.where(DispatchSchedule.dispatch_date >= start)
    if end:
        stmt = stmt.where(DispatchSchedule.dispatch_date <= end)
    return stmt.order_by(DispatchSchedule.dispatch_date, DispatchSchedule.dispatch_time)


# ── GET /schedules ───────────────────────────────────────────

@router.get("/schedules", response_model=ScheduleListResponse)
async def list_schedules(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    origin_site_id: str | None = Query(None, alias="originSiteId"),
    destination_site_id: str | None = Query(None, alias="destinationSiteId"),
    status_filter: str | None = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    stmt = _schedule_query(start_date, end_date)
    if origin_site_id:
        stmt = stmt.where(DispatchSchedule.origin_site_id == origin_site_id)
    if destination_site_id:
        stmt = stmt.where(DispatchSchedule.destination_site_id == destination_site_id)
    if status_filter:
        stmt = stmt.where(DispatchSchedule.status == status_filter)

    result = await db.execute(stmt)
    return ScheduleListResponse(
        schedules=[ScheduleOut.model_validate(s) for s in result.scalars().all()]
    )


# ── GET /schedules/week (declared before /{schedule_id}) ─────

@router.get("/schedules/week", response_model=WeekResponse)
async def week_view(
    week_start: date | None = Query(None, alias="weekStart"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    start, end = planner.week_bounds(week_start)
    result = await db.execute(_schedule_query(start, end))
    days = planner.group_by_day(list(result.scalars().all()), start)
    return WeekResponse(
        week_start=start,
        week_end=end,
        days=[
            WeekDay(
                date=day["date"],
                day_name=day["day_name"],
                schedules=[ScheduleOut.model_validate(s) for s in day["schedules"]],
            )
            for day in days
        ],
    )


# ── GET /schedules/{schedule_id} ─────────────────────────────

@router.get("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(
    schedule_id: str,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    schedule = await _get_schedule(db, schedule_id)
    return ScheduleResponse(schedule=ScheduleOut.model_validate(schedule))


# ── POST /schedules ──────────────────────────────────────────

@router.post("/schedules", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    body: ScheduleCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(planners),
):
    await _check_site(db, body.origin_site_id, "Origin")
    await _check_site(db, body.destination_site_id, "Destination")

    schedule = DispatchSchedule(**body.model_dump(), status="planned", created_by=user.id)
    db.add(schedule)
    await db.flush()
    await db.refresh(schedule)
    return ScheduleResponse(schedule=ScheduleOut.model_validate(schedule))


# ── PUT /schedules/{schedule_id} ─────────────────────────────

@router.put("/schedules/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: str,
    body: ScheduleUpdate,
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(planners),
):
    schedule = await _get_schedule(db, schedule_id)
    updates = body.model_dump(exclude_unset=True)

    if "status" in updates and updates["status"] not in SCHEDULE_STATUSES:
        raise BusinessLogicError(f"Invalid schedule status: {updates['status']}", "INVALID_STATUS")
    for field in ("origin_site_id", "destination_site_id", "dispatch_date"):
        if field in updates and updates[field] is None:
            raise BusinessLogicError(f"{field} cannot be cleared")
    if "origin_site_id" in updates:
        await _check_site(db, updates["origin_site_id"], "Origin")
    if "destination_site_id" in updates:
        await _check_site(db, updates["destination_site_id"], "Destination")

    origin = updates.get("origin_site_id", schedule.origin_site_id)
    destination = updates.get("destination_site_id", schedule.destination_site_id)
    if origin == destination:
        raise BusinessLogicError("Origin and destination must differ", "INVALID_ROUTE")

    for key, value in updates.items():
        setattr(schedule, key, value)
    await db.flush()
    await db.refresh(schedule)
    return ScheduleResponse(schedule=ScheduleOut.model_validate(schedule))


# ── DELETE /schedules/{schedule_id} ──────────────────────────

@router.delete("/schedules/{schedule_id}", response_model=MessageResponse)
async def delete_schedule(
    schedule_id: str,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_role(UserRole.ADMIN)),
):
    """A promoted schedule's load is kept; only the plan is removed."""
    schedule = await _get_schedule(db, schedule_id)
    await db.delete(schedule)
    await db.flush()
    return MessageResponse(message="Schedule deleted")


# ── POST /schedules/{schedule_id}/create-load ────────────────

@router.post(
    "/schedules/{schedule_id}/create-load",
    response_model=LoadCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_load_from_schedule(
    schedule_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(planners),
):
    schedule = await _get_schedule(db, schedule_id)
    load = await planner.promote_schedule(db, schedule, user)
    return LoadCreatedResponse(load=LoadOut.model_validate(load), load_number=load.load_number)


# ── GET /packaging-demand ────────────────────────────────────

@router.get("/packaging-demand", response_model=DemandResponse)
async def packaging_demand(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    rows = await planner.packaging_demand(db, start_date, end_date)
    return DemandResponse(demand=[DemandRow(**row) for row in rows])
