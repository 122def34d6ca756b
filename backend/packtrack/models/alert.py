"""Alert: operational warnings surfaced on the dashboard.

Raised by the inventory ledger (low_stock) and by receipt confirmation
(discrepancy); stays open until someone acknowledges it.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from packtrack.database import Base


class Alert(Base):
    __tablename__ = "alerts"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # low_stock | discrepancy
    alert_type: Mapped[str] = mapped_column(String(30), nullable=False, index=True)
    # info | warning | critical
    severity: Mapped[str] = mapped_column(String(10), nullable=False, default="warning")

    site_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("sites.id"), index=True)
    load_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("loads.id"))
    packaging_type_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("packaging_types.id")
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)

    is_acknowledged: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    acknowledged_by: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"))
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, index=True)

    site = relationship("Site", lazy="selectin")
