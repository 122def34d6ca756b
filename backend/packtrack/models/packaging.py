"""Packaging types, per-site balances and the movement ledger.

SitePackagingInventory holds the current balance for each (site, packaging
type) pair. It is a materialized cache: every change to it is recorded as a
PackagingMovement row carrying the signed delta, so the ledger can replay
any balance.

SitePackagingThreshold drives the dashboard's normal / warning / critical
stock classification and the low-stock alerts.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, DateTime, Float, ForeignKey, Integer, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from packtrack.database import Base


class PackagingType(Base):
    __tablename__ = "packaging_types"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    code: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    capacity_kg: Mapped[float | None] = mapped_column(Float)
    capacity_liters: Mapped[float | None] = mapped_column(Float)
    weight_empty_kg: Mapped[float | None] = mapped_column(Float)
    dimensions_cm: Mapped[str | None] = mapped_column(String(50))

    # Days a returnable unit may stay away before it counts as overdue
    expected_turnaround_days: Mapped[int] = mapped_column(Integer, default=14)
    is_returnable: Mapped[bool] = mapped_column(Boolean, default=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class SitePackagingInventory(Base):
    """Current on-hand balance per site and packaging type."""
    __tablename__ = "site_packaging_inventory"
    __table_args__ = (
        UniqueConstraint("site_id", "packaging_type_id", name="uq_inventory_site_type"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id"), nullable=False, index=True
    )
    packaging_type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("packaging_types.id"), nullable=False, index=True
    )
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    quantity_damaged: Mapped[int] = mapped_column(Integer, default=0)

    last_counted_at: Mapped[datetime | None] = mapped_column(DateTime)
    last_counted_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))

    # Lifetime counters
    handling_count: Mapped[int] = mapped_column(Integer, default=0)
    total_dispatched: Mapped[int] = mapped_column(Integer, default=0)
    total_received: Mapped[int] = mapped_column(Integer, default=0)
    total_returned: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    site = relationship("Site", lazy="selectin")
    packaging_type = relationship("PackagingType", lazy="selectin")

    @property
    def site_code(self) -> str | None:
        return self.site.code if self.site else None

    @property
    def site_name(self) -> str | None:
        return self.site.name if self.site else None

    @property
    def packaging_type_code(self) -> str | None:
        return self.packaging_type.code if self.packaging_type else None

    @property
    def packaging_type_name(self) -> str | None:
        return self.packaging_type.name if self.packaging_type else None


class PackagingMovement(Base):
    """Append-only audit ledger of inventory changes."""
    __tablename__ = "packaging_movements"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id"), nullable=False, index=True
    )
    packaging_type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("packaging_types.id"), nullable=False, index=True
    )
    load_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("loads.id"), index=True
    )

    # adjustment | dispatch | receipt | backload_return | damage | loss |
    # repair | purchase | disposal | transfer
    movement_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)

    # Signed delta applied to the balance
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_damaged: Mapped[int] = mapped_column(Integer, default=0)
    # in | out
    direction: Mapped[str] = mapped_column(String(3), nullable=False)

    reference_number: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)
    recorded_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, index=True
    )

    site = relationship("Site", lazy="selectin")
    packaging_type = relationship("PackagingType", lazy="selectin")

    @property
    def site_code(self) -> str | None:
        return self.site.code if self.site else None

    @property
    def packaging_type_code(self) -> str | None:
        return self.packaging_type.code if self.packaging_type else None


class SitePackagingThreshold(Base):
    __tablename__ = "site_packaging_thresholds"
    __table_args__ = (
        UniqueConstraint("site_id", "packaging_type_id", name="uq_threshold_site_type"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    site_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("sites.id"), nullable=False, index=True
    )
    packaging_type_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("packaging_types.id"), nullable=False
    )
    min_threshold: Mapped[int] = mapped_column(Integer, default=0)
    max_threshold: Mapped[int | None] = mapped_column(Integer)
    alert_enabled: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    site = relationship("Site", lazy="selectin")
    packaging_type = relationship("PackagingType", lazy="selectin")

    @property
    def site_code(self) -> str | None:
        return self.site.code if self.site else None

    @property
    def packaging_type_code(self) -> str | None:
        return self.packaging_type.code if self.packaging_type else None
