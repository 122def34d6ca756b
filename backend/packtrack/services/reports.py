"""Statements, exception reports and export rows.

Statements reconcile what a site sent against what came back; exception
reports surface lost, short-shipped and overdue packaging using each
packaging type's expected turnaround window.
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.middleware.exceptions import ResourceNotFoundError
from packtrack.models.load import Load
from packtrack.models.packaging import PackagingMovement, PackagingType
from packtrack.models.site import Site
from packtrack.services.dashboard import in_transit_totals, site_balances
from packtrack.services.loads import IN_TRANSIT_STATUSES

DISPATCHED_STATUSES = (*IN_TRANSIT_STATUSES, "completed")
EXCEPTION_LOOKBACK_DAYS = 90
SHORT_ROUTE_THRESHOLD = 3


async def _get_site(db: AsyncSession, site_id: str) -> Site:
    site = await db.get(Site, site_id)
    if not site:
        raise ResourceNotFoundError("Site", site_id)
    return site


def _in_range(query, start: date | None, end: date | None):
    if start:
        query = query.where(Load.dispatch_date >= start)
    if end:
        query = query.where(Load.dispatch_date <= end)
    return query


def _type_row(totals: dict, packaging_type) -> dict:
    return totals.setdefault(packaging_type.id, {
        "packaging_type_id": packaging_type.id,
        "packaging_type_code": packaging_type.code,
        "packaging_type_name": packaging_type.name,
        "is_returnable": packaging_type.is_returnable,
        "sent": 0,
        "received": 0,
        "damaged": 0,
        "missing": 0,
        "returned": 0,
    })


# ── Statements ──────────────────────────────────────────────

async def farm_statement(
    db: AsyncSession,
    site_id: str,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """Packaging sent out by a farm vs. packaging that came back to it."""
    site = await _get_site(db, site_id)
    totals: dict[str, dict] = {}

    outgoing = (await db.execute(_in_range(
        select(Load).where(
            Load.origin_site_id == site_id, Load.status.in_(DISPATCHED_STATUSES)
        ),
        start, end,
    ))).scalars().all()
    for load in outgoing:
        for line in load.packaging:
            _type_row(totals, line.packaging_type)["sent"] += line.quantity_dispatched

    incoming = (await db.execute(_in_range(
        select(Load).where(Load.destination_site_id == site_id, Load.status == "completed"),
        start, end,
    ))).scalars().all()
    for load in incoming:
        for line in load.packaging:
            row = _type_row(totals, line.packaging_type)
            row["received"] += line.quantity_received or 0
            row["damaged"] += line.quantity_damaged or 0

    backloads = (await db.execute(_in_range(
        select(Load).where(Load.backload_site_id == site_id, Load.status == "completed"),
        start, end,
    ))).scalars().all()
    for load in backloads:
        for line in load.backload_packaging:
            row = _type_row(totals, line.packaging_type)
            row["returned"] += line.quantity_returned
            row["damaged"] += line.quantity_damaged

    for row in totals.values():
        back = row["received"] + row["returned"]
        row["outstanding"] = max(row["sent"] - back, 0) if row["is_returnable"] else 0

    return {
        "site": site,
        "start_date": start,
        "end_date": end,
        "packaging": sorted(totals.values(), key=lambda r: r["packaging_type_code"]),
        "inventory": await site_balances(db, site_id),
        "load_count": len(outgoing),
    }


async def depot_statement(
    db: AsyncSession,
    site_id: str,
    start: date | None = None,
    end: date | None = None,
) -> dict:
    """What a depot received (clean, damaged, missing) and sent on."""
    site = await _get_site(db, site_id)
    totals: dict[str, dict] = {}

    incoming = (await db.execute(_in_range(
        select(Load).where(Load.destination_site_id == site_id, Load.status == "completed"),
        start, end,
    ))).scalars().all()
    discrepancy_loads = 0
    for load in incoming:
        if load.has_discrepancy:
            discrepancy_loads += 1
        for line in load.packaging:
            row = _type_row(totals, line.packaging_type)
            row["received"] += line.quantity_received or 0
            row["damaged"] += line.quantity_damaged or 0
            row["missing"] += line.quantity_missing or 0

    outgoing = (await db.execute(_in_range(
        select(Load).where(
            Load.origin_site_id == site_id, Load.status.in_(DISPATCHED_STATUSES)
        ),
        start, end,
    ))).scalars().all()
    for load in outgoing:
        for line in load.packaging:
            _type_row(totals, line.packaging_type)["sent"] += line.quantity_dispatched

    return {
        "site": site,
        "start_date": start,
        "end_date": end,
        "packaging": sorted(totals.values(), key=lambda r: r["packaging_type_code"]),
        "inventory": await site_balances(db, site_id),
        "loads_received": len(incoming),
        "loads_with_discrepancy": discrepancy_loads,
    }


# ── Discrepancies ───────────────────────────────────────────

def _load_totals(load: Load) -> dict:
    return {
        "dispatched": sum(line.quantity_dispatched for line in load.packaging),
        "received": sum(line.quantity_received or 0 for line in load.packaging),
        "damaged": sum(line.quantity_damaged or 0 for line in load.packaging),
        "missing": sum(line.quantity_missing or 0 for line in load.packaging),
    }


async def discrepancy_report(
    db: AsyncSession,
    start: date | None = None,
    end: date | None = None,
    site_id: str | None = None,
    limit: int = 100,
) -> dict:
    query = select(Load).where(Load.has_discrepancy == True)  # noqa: E712
    query = _in_range(query, start, end)
    if site_id:
        query = query.where(
            (Load.origin_site_id == site_id) | (Load.destination_site_id == site_id)
        )
    loads = (await db.execute(
        query.order_by(Load.dispatch_date.desc(), Load.created_at.desc()).limit(limit)
    )).scalars().all()

    rows = [{"load": load, **_load_totals(load)} for load in loads]
    return {
        "discrepancies": rows,
        "totals": {
            "loads": len(rows),
            "damaged": sum(r["damaged"] for r in rows),
            "missing": sum(r["missing"] for r in rows),
        },
    }


# ── Packaging summary ───────────────────────────────────────

async def packaging_summary(db: AsyncSession) -> list[dict]:
    types = (await db.execute(
        select(PackagingType).order_by(PackagingType.code)
    )).scalars().all()
    balances = await site_balances(db)
    transit = {row["packaging_type_id"]: row["quantity"] for row in await in_transit_totals(db)}

    summary = []
    for packaging_type in types:
        rows = [b for b in balances if b["packaging_type_id"] == packaging_type.id]
        summary.append({
            "packaging_type_id": packaging_type.id,
            "packaging_type_code": packaging_type.code,
            "packaging_type_name": packaging_type.name,
            "is_returnable": packaging_type.is_returnable,
            "on_hand": sum(r["quantity"] for r in rows),
            "damaged": sum(r["quantity_damaged"] for r in rows),
            "in_transit": transit.get(packaging_type.id, 0),
            "site_count": sum(1 for r in rows if r["quantity"] > 0),
            "low_stock_sites": sum(1 for r in rows if r["status"] != "normal"),
        })
    return summary


# ── Exceptions ──────────────────────────────────────────────

async def exceptions_report(db: AsyncSession, today: date | None = None) -> dict:
    """Lost, short, aging and overdue packaging.

    lost     completed loads with missing units
    short    routes with SHORT_ROUTE_THRESHOLD+ discrepancies in the lookback
    aging    loads still in transit past a line's turnaround window
    overdue  returnable packaging on completed loads past its turnaround
    """
    today = today or date.today()
    since = today - timedelta(days=EXCEPTION_LOOKBACK_DAYS)

    recent = (await db.execute(
        select(Load).where(
            Load.dispatch_date >= since, Load.status.in_(DISPATCHED_STATUSES)
        )
    )).scalars().all()

    lost, aging, overdue = [], [], []
    routes: dict[tuple[str, str], dict] = defaultdict(lambda: {"count": 0, "load_numbers": []})

    for load in recent:
        age_days = (today - load.dispatch_date).days
        totals = _load_totals(load)

        if load.status == "completed" and totals["missing"] > 0:
            lost.append({"load": load, "missing": totals["missing"], "days": age_days})

        if load.has_discrepancy:
            route = routes[(load.origin_site_id, load.destination_site_id)]
            route["count"] += 1
            route["load_numbers"].append(load.load_number)
            route["origin_site_code"] = load.origin_site.code if load.origin_site else None
            route["destination_site_code"] = (
                load.destination_site.code if load.destination_site else None
            )

        for line in load.packaging:
            packaging_type = line.packaging_type
            if age_days <= packaging_type.expected_turnaround_days:
                continue
            entry = {
                "load": load,
                "packaging_type_code": packaging_type.code,
                "quantity": line.quantity_dispatched,
                "days": age_days,
                "turnaround_days": packaging_type.expected_turnaround_days,
            }
            if load.status in IN_TRANSIT_STATUSES:
                aging.append(entry)
            elif packaging_type.is_returnable:
                overdue.append(entry)

    short = [
        {
            "origin_site_id": origin,
            "destination_site_id": destination,
            "origin_site_code": info.get("origin_site_code"),
            "destination_site_code": info.get("destination_site_code"),
            "discrepancy_count": info["count"],
            "load_numbers": info["load_numbers"],
        }
        for (origin, destination), info in routes.items()
        if info["count"] >= SHORT_ROUTE_THRESHOLD
    ]

    return {
        "as_of": today,
        "lost": lost,
        "short": short,
        "aging": aging,
        "overdue": overdue,
    }


# ── Export rows ─────────────────────────────────────────────

async def load_export_rows(
    db: AsyncSession,
    start: date | None = None,
    end: date | None = None,
    status: str | None = None,
) -> list[dict]:
    query = _in_range(select(Load), start, end)
    if status:
        query = query.where(Load.status == status)
    loads = (await db.execute(
        query.order_by(Load.dispatch_date.desc(), Load.load_number)
    )).scalars().all()

    return [
        {
            "load_number": load.load_number,
            "dispatch_date": load.dispatch_date,
            "origin": load.origin_site.code if load.origin_site else None,
            "destination": load.destination_site.code if load.destination_site else None,
            "status": load.status,
            "on_time_status": load.on_time_status,
            "vehicle": load.vehicle.registration if load.vehicle else None,
            "driver": load.driver.full_name if load.driver else None,
            "channel": load.channel.code if load.channel else None,
            "has_discrepancy": load.has_discrepancy,
            "has_overtime": load.has_overtime,
            "actual_departure_time": load.actual_departure_time,
            "actual_arrival_time": load.actual_arrival_time,
            **_load_totals(load),
        }
        for load in loads
    ]


async def inventory_export_rows(db: AsyncSession, site_id: str | None = None) -> list[dict]:
    return await site_balances(db, site_id)


async def movement_export_rows(
    db: AsyncSession,
    start: date | None = None,
    end: date | None = None,
    site_id: str | None = None,
) -> list[dict]:
    query = select(PackagingMovement)
    if start:
        query = query.where(PackagingMovement.recorded_at >= datetime.combine(start, time.min))
    if end:
        query = query.where(
            PackagingMovement.recorded_at < datetime.combine(end + timedelta(days=1), time.min)
        )
    if site_id:
        query = query.where(PackagingMovement.site_id == site_id)
    movements = (await db.execute(
        query.order_by(PackagingMovement.recorded_at.desc())
    )).scalars().all()

    return [
        {
            "recorded_at": m.recorded_at,
            "site": m.site_code,
            "packaging_type": m.packaging_type_code,
            "movement_type": m.movement_type,
            "quantity": m.quantity,
            "quantity_damaged": m.quantity_damaged,
            "direction": m.direction,
            "reference_number": m.reference_number,
            "notes": m.notes,
        }
        for m in movements
    ]
