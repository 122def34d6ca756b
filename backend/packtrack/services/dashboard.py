"""Read-side composition for the dashboard.

Everything here is computed from the current database state on each call;
nothing is cached or maintained incrementally.
"""

from collections import defaultdict
from datetime import date, datetime, time, timedelta

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.middleware.exceptions import ResourceNotFoundError
from packtrack.models.alert import Alert
from packtrack.models.load import Load, LoadPackaging
from packtrack.models.packaging import (
    PackagingMovement,
    PackagingType,
    SitePackagingInventory,
    SitePackagingThreshold,
)
from packtrack.models.site import Site
from packtrack.models.user import User
from packtrack.services.inventory import stock_status
from packtrack.services.loads import IN_TRANSIT_STATUSES


def _day_range(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


async def site_balances(db: AsyncSession, site_id: str | None = None) -> list[dict]:
    """Inventory joined to thresholds with a normal/warning/critical status."""
    query = (
        select(SitePackagingInventory, SitePackagingThreshold)
        .join(Site, Site.id == SitePackagingInventory.site_id)
        .outerjoin(
            SitePackagingThreshold,
            and_(
                SitePackagingThreshold.site_id == SitePackagingInventory.site_id,
                SitePackagingThreshold.packaging_type_id == SitePackagingInventory.packaging_type_id,
            ),
        )
        .where(Site.is_active == True)  # noqa: E712
    )
    if site_id:
        query = query.where(SitePackagingInventory.site_id == site_id)

    rows = []
    for inventory, threshold in (await db.execute(query)).all():
        min_threshold = threshold.min_threshold if threshold else None
        rows.append({
            "site_id": inventory.site_id,
            "site_code": inventory.site_code,
            "site_name": inventory.site_name,
            "packaging_type_id": inventory.packaging_type_id,
            "packaging_type_code": inventory.packaging_type_code,
            "packaging_type_name": inventory.packaging_type_name,
            "quantity": inventory.quantity,
            "quantity_damaged": inventory.quantity_damaged,
            "min_threshold": min_threshold,
            "max_threshold": threshold.max_threshold if threshold else None,
            "status": stock_status(inventory.quantity, min_threshold),
        })
    rows.sort(key=lambda r: (r["site_name"] or "", r["packaging_type_code"] or ""))
    return rows


async def in_transit_totals(db: AsyncSession) -> list[dict]:
    """Dispatched quantity per packaging type over loads still on the road."""
    query = (
        select(
            PackagingType.id,
            PackagingType.code,
            PackagingType.name,
            func.coalesce(func.sum(LoadPackaging.quantity_dispatched), 0),
            func.count(func.distinct(Load.id)),
        )
        .join(LoadPackaging, LoadPackaging.packaging_type_id == PackagingType.id)
        .join(Load, Load.id == LoadPackaging.load_id)
        .where(Load.status.in_(IN_TRANSIT_STATUSES))
        .group_by(PackagingType.id, PackagingType.code, PackagingType.name)
        .order_by(PackagingType.code)
    )
    return [
        {
            "packaging_type_id": pt_id,
            "packaging_type_code": code,
            "packaging_type_name": name,
            "quantity": int(quantity),
            "load_count": load_count,
        }
        for pt_id, code, name, quantity, load_count in (await db.execute(query)).all()
    ]


async def todays_loads(db: AsyncSession, today: date | None = None) -> dict:
    today = today or date.today()
    start, end = _day_range(today)

    async def _count(*conditions) -> int:
        result = await db.execute(select(func.count(Load.id)).where(*conditions))
        return result.scalar() or 0

    return {
        "dispatched_today": await _count(
            Load.actual_departure_time >= start, Load.actual_departure_time < end
        ),
        "received_today": await _count(
            Load.confirmed_receipt_at >= start, Load.confirmed_receipt_at < end
        ),
        "currently_in_transit": await _count(Load.status.in_(IN_TRANSIT_STATUSES)),
        "pending_dispatch": await _count(
            Load.status.in_(("scheduled", "loading")), Load.dispatch_date <= today
        ),
    }


async def recent_discrepancies(db: AsyncSession, limit: int = 10) -> list[Load]:
    result = await db.execute(
        select(Load)
        .where(Load.has_discrepancy == True)  # noqa: E712
        .order_by(Load.confirmed_receipt_at.desc(), Load.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def open_alerts(db: AsyncSession, limit: int = 20) -> list[Alert]:
    result = await db.execute(
        select(Alert)
        .where(Alert.is_acknowledged == False)  # noqa: E712
        .order_by(Alert.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def summary(db: AsyncSession, today: date | None = None) -> dict:
    balances = await site_balances(db)
    return {
        "site_balances": balances,
        "in_transit": await in_transit_totals(db),
        "todays_loads": await todays_loads(db, today),
        "recent_discrepancies": await recent_discrepancies(db),
        "alerts": await open_alerts(db),
        "low_stock": [b for b in balances if b["status"] != "normal"],
    }


async def site_detail(db: AsyncSession, site_id: str) -> dict:
    site = await db.get(Site, site_id)
    if not site:
        raise ResourceNotFoundError("Site", site_id)

    outgoing = await db.execute(
        select(Load)
        .where(Load.origin_site_id == site_id)
        .order_by(Load.dispatch_date.desc(), Load.created_at.desc())
        .limit(10)
    )
    incoming = await db.execute(
        select(Load)
        .where(Load.destination_site_id == site_id)
        .order_by(Load.dispatch_date.desc(), Load.created_at.desc())
        .limit(10)
    )
    return {
        "site": site,
        "inventory": await site_balances(db, site_id),
        "outgoing_loads": list(outgoing.scalars().all()),
        "incoming_loads": list(incoming.scalars().all()),
    }


async def loads_summary(db: AsyncSession, days: int = 30, today: date | None = None) -> dict:
    since = (today or date.today()) - timedelta(days=days)

    by_status = dict(
        (await db.execute(
            select(Load.status, func.count(Load.id))
            .where(Load.dispatch_date >= since)
            .group_by(Load.status)
        )).all()
    )
    by_on_time = dict(
        (await db.execute(
            select(Load.on_time_status, func.count(Load.id))
            .where(Load.dispatch_date >= since, Load.on_time_status.is_not(None))
            .group_by(Load.on_time_status)
        )).all()
    )
    flags = (await db.execute(
        select(
            func.count(Load.id),
            func.count(Load.id).filter(Load.has_discrepancy == True),  # noqa: E712
            func.count(Load.id).filter(Load.has_overtime == True),  # noqa: E712
        ).where(Load.dispatch_date >= since)
    )).one()

    return {
        "days": days,
        "total": flags[0] or 0,
        "with_discrepancy": flags[1] or 0,
        "with_overtime": flags[2] or 0,
        "by_status": by_status,
        "by_on_time_status": by_on_time,
    }


async def packaging_trends(db: AsyncSession, days: int = 30, today: date | None = None) -> list[dict]:
    """Daily totals of stock moving in and out, across all sites."""
    since = datetime.combine((today or date.today()) - timedelta(days=days), time.min)
    result = await db.execute(
        select(PackagingMovement.recorded_at, PackagingMovement.quantity)
        .where(PackagingMovement.recorded_at >= since)
    )

    buckets: dict[date, dict] = defaultdict(lambda: {"incoming": 0, "outgoing": 0, "movements": 0})
    for recorded_at, quantity in result.all():
        bucket = buckets[recorded_at.date()]
        if quantity > 0:
            bucket["incoming"] += quantity
        else:
            bucket["outgoing"] += -quantity
        bucket["movements"] += 1

    return [{"date": day, **totals} for day, totals in sorted(buckets.items())]


async def route_volumes(db: AsyncSession, days: int = 30, today: date | None = None) -> list[dict]:
    since = (today or date.today()) - timedelta(days=days)
    result = await db.execute(
        select(Load).where(Load.dispatch_date >= since, Load.status != "cancelled")
    )

    routes: dict[tuple[str, str], dict] = {}
    for load in result.scalars().all():
        key = (load.origin_site_id, load.destination_site_id)
        route = routes.setdefault(key, {
            "origin_site_id": load.origin_site_id,
            "origin_site_code": load.origin_site.code if load.origin_site else None,
            "destination_site_id": load.destination_site_id,
            "destination_site_code": (
                load.destination_site.code if load.destination_site else None
            ),
            "load_count": 0,
            "total_dispatched": 0,
            "discrepancy_count": 0,
        })
        route["load_count"] += 1
        route["total_dispatched"] += load.total_dispatched
        if load.has_discrepancy:
            route["discrepancy_count"] += 1

    return sorted(routes.values(), key=lambda r: r["load_count"], reverse=True)


async def acknowledge_alert(db: AsyncSession, alert_id: str, user: User) -> Alert:
    alert = await db.get(Alert, alert_id)
    if not alert:
        raise ResourceNotFoundError("Alert", alert_id)
    if not alert.is_acknowledged:
        alert.is_acknowledged = True
        alert.acknowledged_by = user.id
        alert.acknowledged_at = datetime.utcnow()
        await db.flush()
    return alert
