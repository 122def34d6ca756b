"""DispatchSchedule: a planned dispatch, promoted to a Load at most once.

Lifecycle:  planned → confirmed → packaging_sent → loading → in_transit →
            delivered → completed  (cancelled at any point)
"""

import uuid
from datetime import date, datetime, time

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from packtrack.database import Base


class DispatchSchedule(Base):
    __tablename__ = "dispatch_schedules"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # ── When ─────────────────────────────────────────────────
    dispatch_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    dispatch_time: Mapped[time | None] = mapped_column(Time)
    expected_arrival_date: Mapped[date | None] = mapped_column(Date)
    expected_arrival_time: Mapped[time | None] = mapped_column(Time)

    # ── Route ────────────────────────────────────────────────
    origin_site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id"), nullable=False, index=True
    )
    destination_site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id"), nullable=False
    )
    channel_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("channels.id"))
    vehicle_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("vehicles.id"))
    driver_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("drivers.id"))

    # ── Packaging demand ─────────────────────────────────────
    crates: Mapped[int] = mapped_column(Integer, default=0)
    bins: Mapped[int] = mapped_column(Integer, default=0)
    boxes: Mapped[int] = mapped_column(Integer, default=0)
    pallets: Mapped[int] = mapped_column(Integer, default=0)

    # ── Planning dates ───────────────────────────────────────
    packaging_eta_farm: Mapped[date | None] = mapped_column(Date)
    packaging_supplied_date: Mapped[date | None] = mapped_column(Date)
    ripening_start_date: Mapped[date | None] = mapped_column(Date)
    sales_despatch_date: Mapped[date | None] = mapped_column(Date)
    packaging_collection_date: Mapped[date | None] = mapped_column(Date)
    packaging_delivery_farm_date: Mapped[date | None] = mapped_column(Date)

    # ── Recurrence ───────────────────────────────────────────
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False)
    # weekly | biweekly | monthly
    recurrence_pattern: Mapped[str | None] = mapped_column(String(20))
    recurrence_day_of_week: Mapped[int | None] = mapped_column(Integer)
    parent_schedule_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("dispatch_schedules.id")
    )

    customer_name: Mapped[str | None] = mapped_column(String(255))
    product_type: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)

    status: Mapped[str] = mapped_column(String(20), default="planned", index=True)

    # Set once when promoted
    load_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("loads.id"), unique=True
    )

    created_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __mapper_args__ = {"version_id_col": version}

    origin_site = relationship("Site", foreign_keys=[origin_site_id], lazy="selectin")
    destination_site = relationship("Site", foreign_keys=[destination_site_id], lazy="selectin")
    channel = relationship("Channel", lazy="selectin")
    vehicle = relationship("Vehicle", lazy="selectin")
    driver = relationship("Driver", lazy="selectin")
    load = relationship("Load", lazy="selectin")

    @property
    def load_number(self) -> str | None:
        return self.load.load_number if self.load else None
