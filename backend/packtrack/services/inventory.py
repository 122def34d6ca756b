"""Inventory & movement ledger.

Every balance change goes through ``set_inventory_level``: it computes
``delta = new - current``, appends one PackagingMovement carrying the signed
delta when it is nonzero, then writes the new absolute quantity to the
SitePackagingInventory row (creating it on first touch).

Load dispatch and receipt use ``apply_inventory_delta``, which reads the
current balance and feeds the resulting level through the same path.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.config import settings
from packtrack.middleware.exceptions import ResourceNotFoundError
from packtrack.models.alert import Alert
from packtrack.models.packaging import (
    PackagingMovement,
    PackagingType,
    SitePackagingInventory,
    SitePackagingThreshold,
)
from packtrack.models.site import Site

logger = logging.getLogger("packtrack.inventory")

MANUAL_ADJUSTMENT_NOTE = "Manual inventory adjustment"

# Lifetime counter bumped for each load-driven movement type
_COUNTERS = {
    "dispatch": "total_dispatched",
    "receipt": "total_received",
    "backload_return": "total_returned",
}


def stock_status(
    quantity: int,
    min_threshold: int | None,
    warning_ratio: float | None = None,
) -> str:
    """Classify a balance against its minimum threshold.

    critical: at or below the minimum
    warning:  within ``warning_ratio`` (default 120%) of the minimum
    normal:   anything else, or no threshold configured
    """
    if min_threshold is None:
        return "normal"
    ratio = settings.stock_warning_ratio if warning_ratio is None else warning_ratio
    if quantity <= min_threshold:
        return "critical"
    if quantity <= min_threshold * ratio:
        return "warning"
    return "normal"


async def get_or_create_inventory(
    db: AsyncSession,
    site_id: str,
    packaging_type_id: str,
) -> SitePackagingInventory:
    result = await db.execute(
        select(SitePackagingInventory).where(
            SitePackagingInventory.site_id == site_id,
            SitePackagingInventory.packaging_type_id == packaging_type_id,
        )
    )
    inventory = result.scalar_one_or_none()
    if inventory:
        return inventory

    site = await db.get(Site, site_id)
    if not site:
        raise ResourceNotFoundError("Site", site_id)
    packaging_type = await db.get(PackagingType, packaging_type_id)
    if not packaging_type:
        raise ResourceNotFoundError("Packaging type", packaging_type_id)

    inventory = SitePackagingInventory(
        site_id=site_id,
        packaging_type_id=packaging_type_id,
        quantity=0,
        quantity_damaged=0,
        handling_count=0,
        total_dispatched=0,
        total_received=0,
        total_returned=0,
    )
    inventory.site = site
    inventory.packaging_type = packaging_type
    db.add(inventory)
    await db.flush()
    return inventory


async def set_inventory_level(
    db: AsyncSession,
    *,
    site_id: str,
    packaging_type_id: str,
    quantity: int,
    user_id: str | None,
    movement_type: str = "adjustment",
    quantity_damaged: int | None = None,
    load_id: str | None = None,
    notes: str | None = None,
    reference_number: str | None = None,
    counted: bool = False,
) -> tuple[SitePackagingInventory, PackagingMovement | None]:
    """Set the absolute balance for a (site, packaging type) pair.

    Returns the inventory row and the appended movement (None when neither
    the quantity nor the damaged count changed).
    """
    inventory = await get_or_create_inventory(db, site_id, packaging_type_id)

    delta = quantity - inventory.quantity
    damaged_delta = 0
    if quantity_damaged is not None:
        damaged_delta = quantity_damaged - inventory.quantity_damaged

    movement = None
    if delta != 0 or damaged_delta != 0:
        movement = PackagingMovement(
            site_id=site_id,
            packaging_type_id=packaging_type_id,
            load_id=load_id,
            movement_type=movement_type,
            quantity=delta,
            quantity_damaged=damaged_delta,
            direction="out" if delta < 0 else "in",
            reference_number=reference_number,
            notes=notes,
            recorded_by=user_id,
            recorded_at=datetime.utcnow(),
        )
        movement.site = inventory.site
        movement.packaging_type = inventory.packaging_type
        db.add(movement)
        logger.info(
            f"{movement_type}: {inventory.site_code}/{inventory.packaging_type_code} "
            f"{inventory.quantity} -> {quantity} ({delta:+d})"
        )

    if quantity < 0:
        logger.warning(
            f"Negative balance at {inventory.site_code}/{inventory.packaging_type_code}: {quantity}"
        )

    inventory.quantity = quantity
    if quantity_damaged is not None:
        inventory.quantity_damaged = quantity_damaged
    if counted:
        inventory.last_counted_at = datetime.utcnow()
        inventory.last_counted_by = user_id

    await db.flush()
    if delta < 0:
        await raise_low_stock_alert(db, inventory)
    return inventory, movement


async def apply_inventory_delta(
    db: AsyncSession,
    *,
    site_id: str,
    packaging_type_id: str,
    delta: int,
    movement_type: str,
    user_id: str | None,
    load_id: str | None = None,
    damaged_delta: int = 0,
    notes: str | None = None,
    reference_number: str | None = None,
) -> tuple[SitePackagingInventory, PackagingMovement | None]:
    """Shift a balance by ``delta`` through the ledger (load dispatch/receipt)."""
    inventory = await get_or_create_inventory(db, site_id, packaging_type_id)

    counter = _COUNTERS.get(movement_type)
    if counter and delta:
        setattr(inventory, counter, getattr(inventory, counter) + abs(delta))
    inventory.handling_count += 1

    new_damaged = None
    if damaged_delta:
        new_damaged = inventory.quantity_damaged + damaged_delta

    return await set_inventory_level(
        db,
        site_id=site_id,
        packaging_type_id=packaging_type_id,
        quantity=inventory.quantity + delta,
        quantity_damaged=new_damaged,
        user_id=user_id,
        movement_type=movement_type,
        load_id=load_id,
        notes=notes,
        reference_number=reference_number,
    )


async def raise_low_stock_alert(
    db: AsyncSession,
    inventory: SitePackagingInventory,
) -> Alert | None:
    """Open a low_stock alert when a balance falls to its alert threshold.

    At most one unacknowledged low_stock alert exists per pair.
    """
    threshold = (
        await db.execute(
            select(SitePackagingThreshold).where(
                SitePackagingThreshold.site_id == inventory.site_id,
                SitePackagingThreshold.packaging_type_id == inventory.packaging_type_id,
                SitePackagingThreshold.alert_enabled == True,  # noqa: E712
            )
        )
    ).scalar_one_or_none()
    if not threshold or stock_status(inventory.quantity, threshold.min_threshold) != "critical":
        return None

    open_alert = (
        await db.execute(
            select(Alert.id).where(
                Alert.alert_type == "low_stock",
                Alert.site_id == inventory.site_id,
                Alert.packaging_type_id == inventory.packaging_type_id,
                Alert.is_acknowledged == False,  # noqa: E712
            )
        )
    ).first()
    if open_alert:
        return None

    alert = Alert(
        alert_type="low_stock",
        severity="critical",
        site_id=inventory.site_id,
        packaging_type_id=inventory.packaging_type_id,
        message=(
            f"{inventory.packaging_type_code} at {inventory.site_code} is at "
            f"{inventory.quantity} (minimum {threshold.min_threshold})"
        ),
        is_acknowledged=False,
    )
    db.add(alert)
    await db.flush()
    logger.warning(alert.message)
    return alert
