"""Aggregate model imports for Alembic auto-detection."""

# Identity
from packtrack.models.user import User, UserRole  # noqa: F401

# Reference data
from packtrack.models.site import Site, SiteType  # noqa: F401
from packtrack.models.packaging import (  # noqa: F401
    PackagingMovement,
    PackagingType,
    SitePackagingInventory,
    SitePackagingThreshold,
)
from packtrack.models.product import ProductGrade, ProductType, ProductVariety  # noqa: F401
from packtrack.models.fleet import Channel, Driver, Vehicle  # noqa: F401

# Operational
from packtrack.models.load import BackloadPackaging, Load, LoadPackaging  # noqa: F401
from packtrack.models.dispatch_schedule import DispatchSchedule  # noqa: F401
from packtrack.models.alert import Alert  # noqa: F401
