"""Load: one shipment of packaging between two sites.

Lifecycle:  scheduled → loading → departed → in_transit → arrived_depot → completed
            (cancelled from any non-terminal state)

Loads carry a version counter; a write against a row that changed since it
was read raises StaleDataError instead of silently overwriting.
"""

import uuid
from datetime import date, datetime, time

from sqlalchemy import (
    Boolean, Date, DateTime, ForeignKey, Integer, String, Text, Time,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from packtrack.database import Base


class Load(Base):
    __tablename__ = "loads"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    load_number: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False, index=True
    )

    # ── Route ────────────────────────────────────────────────
    origin_site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id"), nullable=False, index=True
    )
    destination_site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id"), nullable=False, index=True
    )
    channel_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("channels.id"))
    vehicle_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("vehicles.id"))
    driver_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("drivers.id"))

    # ── Schedule vs actual ───────────────────────────────────
    dispatch_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    expected_arrival_date: Mapped[date | None] = mapped_column(Date)
    scheduled_departure_time: Mapped[time | None] = mapped_column(Time)
    actual_departure_time: Mapped[datetime | None] = mapped_column(DateTime)
    estimated_arrival_time: Mapped[time | None] = mapped_column(Time)
    actual_arrival_time: Mapped[datetime | None] = mapped_column(DateTime)

    # scheduled | loading | departed | in_transit | arrived_depot | completed | cancelled
    status: Mapped[str] = mapped_column(String(20), default="scheduled", index=True)
    # early | on_time | delayed
    on_time_status: Mapped[str | None] = mapped_column(String(10))

    # ── Farm waypoint ────────────────────────────────────────
    expected_farm_arrival_time: Mapped[time | None] = mapped_column(Time)
    expected_farm_departure_time: Mapped[time | None] = mapped_column(Time)
    actual_farm_arrival_time: Mapped[datetime | None] = mapped_column(DateTime)
    actual_farm_departure_time: Mapped[datetime | None] = mapped_column(DateTime)
    farm_arrival_overtime_minutes: Mapped[int] = mapped_column(Integer, default=0)
    farm_departure_overtime_minutes: Mapped[int] = mapped_column(Integer, default=0)
    has_overtime: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    # ── Depot waypoint ───────────────────────────────────────
    arrived_depot_at: Mapped[datetime | None] = mapped_column(DateTime)
    departed_depot_at: Mapped[datetime | None] = mapped_column(DateTime)

    # ── Reconciliation ───────────────────────────────────────
    has_discrepancy: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    discrepancy_notes: Mapped[str | None] = mapped_column(Text)

    # ── Backload (return leg) ────────────────────────────────
    backload_site_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("sites.id"))
    backload_notes: Mapped[str | None] = mapped_column(Text)

    notes: Mapped[str | None] = mapped_column(Text)

    # ── Audit ────────────────────────────────────────────────
    created_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    confirmed_dispatch_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    confirmed_dispatch_at: Mapped[datetime | None] = mapped_column(DateTime)
    confirmed_receipt_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    confirmed_receipt_at: Mapped[datetime | None] = mapped_column(DateTime)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    origin_site = relationship("Site", foreign_keys=[origin_site_id], lazy="selectin")
    destination_site = relationship("Site", foreign_keys=[destination_site_id], lazy="selectin")
    backload_site = relationship("Site", foreign_keys=[backload_site_id], lazy="selectin")
    channel = relationship("Channel", lazy="selectin")
    vehicle = relationship("Vehicle", lazy="selectin")
    driver = relationship("Driver", lazy="selectin")
    packaging = relationship(
        "LoadPackaging", back_populates="load", lazy="selectin",
        cascade="all, delete-orphan", order_by="LoadPackaging.created_at",
    )
    backload_packaging = relationship(
        "BackloadPackaging", back_populates="load", lazy="selectin",
        cascade="all, delete-orphan", order_by="BackloadPackaging.created_at",
    )

    @property
    def packaging_count(self) -> int:
        return len(self.packaging)

    @property
    def total_dispatched(self) -> int:
        return sum(line.quantity_dispatched for line in self.packaging)


class LoadPackaging(Base):
    """One packaging type shipped on a load."""
    __tablename__ = "load_packaging"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    load_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("loads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    packaging_type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("packaging_types.id"), nullable=False
    )
    quantity_dispatched: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_received: Mapped[int | None] = mapped_column(Integer)
    quantity_damaged: Mapped[int] = mapped_column(Integer, default=0)
    quantity_missing: Mapped[int] = mapped_column(Integer, default=0)

    product_type_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("product_types.id"))
    product_variety_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("product_varieties.id")
    )
    product_grade_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("product_grades.id"))
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    load = relationship("Load", back_populates="packaging")
    packaging_type = relationship("PackagingType", lazy="selectin")


class BackloadPackaging(Base):
    """Packaging carried back on the return leg, credited to the backload site."""
    __tablename__ = "backload_packaging"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    load_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("loads.id", ondelete="CASCADE"), nullable=False, index=True
    )
    packaging_type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("packaging_types.id"), nullable=False
    )
    quantity_returned: Mapped[int] = mapped_column(Integer, default=0)
    quantity_damaged: Mapped[int] = mapped_column(Integer, default=0)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    load = relationship("Load", back_populates="backload_packaging")
    packaging_type = relationship("PackagingType", lazy="selectin")
