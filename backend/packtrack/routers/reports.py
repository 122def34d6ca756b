"""Report routes: statements, exceptions and exports.

Route overview:
  GET /farm-statement/{site_id}     sent vs. returned per packaging type
  GET /depot-statement/{site_id}    received / damaged / missing per type
  GET /discrepancies                loads received short or damaged
  GET /packaging-summary            network-wide totals per type
  GET /exceptions                   lost, short, aging, overdue
  GET /export/loads                 CSV (default) or JSON
  GET /export/inventory
  GET /export/movements
"""

from datetime import date

from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.deps import get_current_user
from packtrack.database import get_db
from packtrack.models.user import User
from packtrack.schemas.report import (
    DepotStatementResponse,
    DiscrepancyReportResponse,
    ExceptionsResponse,
    FarmStatementResponse,
    PackagingSummaryResponse,
)
from packtrack.services import reports
from packtrack.utils.csv_export import Column, csv_response, label, render_csv

router = APIRouter()

LOAD_COLUMNS = [
    Column("Load Number", "load_number"),
    Column("Dispatch Date", "dispatch_date"),
    Column("Origin", "origin"),
    Column("Destination", "destination"),
    Column("Status", "status"),
    Column("On Time", "on_time_status", fmt=label),
    Column("Vehicle", "vehicle"),
    Column("Driver", "driver"),
    Column("Channel", "channel"),
    Column("Dispatched", "dispatched"),
    Column("Received", "received"),
    Column("Damaged", "damaged"),
    Column("Missing", "missing"),
    Column("Discrepancy", "has_discrepancy"),
    Column("Overtime", "has_overtime"),
    Column("Departed", "actual_departure_time"),
    Column("Arrived", "actual_arrival_time"),
]

INVENTORY_COLUMNS = [
    Column("Site Code", "site_code"),
    Column("Site", "site_name"),
    Column("Packaging Code", "packaging_type_code"),
    Column("Packaging", "packaging_type_name"),
    Column("Quantity", "quantity"),
    Column("Damaged", "quantity_damaged"),
    Column("Min Threshold", "min_threshold"),
    Column("Max Threshold", "max_threshold"),
    Column("Status", "status"),
]

MOVEMENT_COLUMNS = [
    Column("Recorded At", "recorded_at"),
    Column("Site", "site"),
    Column("Packaging", "packaging_type"),
    Column("Type", "movement_type", fmt=label),
    Column("Quantity", "quantity"),
    Column("Damaged", "quantity_damaged"),
    Column("Direction", "direction"),
    Column("Reference", "reference_number"),
    Column("Notes", "notes"),
]


def _export(rows: list[dict], columns: list[Column], name: str, fmt: str):
    if fmt == "json":
        return JSONResponse({name: jsonable_encoder(rows)})
    filename = f"{name}-{date.today().isoformat()}.csv"
    return csv_response(render_csv(rows, columns), filename)


# ── Statements ──────────────────────────────────────────────

@router.get("/farm-statement/{site_id}", response_model=FarmStatementResponse)
async def farm_statement(
    site_id: str,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    data = await reports.farm_statement(db, site_id, start_date, end_date)
    return FarmStatementResponse.model_validate(data)


@router.get("/depot-statement/{site_id}", response_model=DepotStatementResponse)
async def depot_statement(
    site_id: str,
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    data = await reports.depot_statement(db, site_id, start_date, end_date)
    return DepotStatementResponse.model_validate(data)


# ── Discrepancies / summary / exceptions ────────────────────

@router.get("/discrepancies", response_model=DiscrepancyReportResponse)
async def discrepancies(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    site_id: str | None = Query(None, alias="siteId"),
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    data = await reports.discrepancy_report(db, start_date, end_date, site_id, limit)
    return DiscrepancyReportResponse.model_validate(data)


@router.get("/packaging-summary", response_model=PackagingSummaryResponse)
async def packaging_summary(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return PackagingSummaryResponse.model_validate(
        {"summary": await reports.packaging_summary(db)}
    )


@router.get("/exceptions", response_model=ExceptionsResponse)
async def exceptions(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    return ExceptionsResponse.model_validate(await reports.exceptions_report(db))


# ── Exports ─────────────────────────────────────────────────

@router.get("/export/loads")
async def export_loads(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    status: str | None = Query(None),
    format: str = Query("csv", pattern="^(csv|json)$"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    rows = await reports.load_export_rows(db, start_date, end_date, status)
    return _export(rows, LOAD_COLUMNS, "loads", format)


@router.get("/export/inventory")
async def export_inventory(
    site_id: str | None = Query(None, alias="siteId"),
    format: str = Query("csv", pattern="^(csv|json)$"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    rows = await reports.inventory_export_rows(db, site_id)
    return _export(rows, INVENTORY_COLUMNS, "inventory", format)


@router.get("/export/movements")
async def export_movements(
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    site_id: str | None = Query(None, alias="siteId"),
    format: str = Query("csv", pattern="^(csv|json)$"),
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    rows = await reports.movement_export_rows(db, start_date, end_date, site_id)
    return _export(rows, MOVEMENT_COLUMNS, "movements", format)
