"""Reference data for a fresh installation.

Every insert is keyed on the table's natural key (name, code, registration,
email), so running the seed twice leaves the database unchanged.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from packtrack.auth.password import hash_password
from packtrack.config import settings
from packtrack.models.fleet import Channel, Driver, Vehicle
from packtrack.models.packaging import PackagingType
from packtrack.models.product import ProductGrade, ProductType
from packtrack.models.site import Site, SiteType
from packtrack.models.user import User, UserRole

logger = logging.getLogger("packtrack.seed")

SITE_TYPES = [
    ("Farm", "Agricultural production facility"),
    ("Depot", "Distribution and storage facility"),
    ("Packhouse", "Packaging and processing facility"),
    ("Cold Store", "Cold storage facility"),
    ("Market", "Sales and distribution market"),
    ("Vendor", "Third-party vendor location"),
]

# code, name, site type, city, region
SITES = [
    ("BV", "Beitbridge Valley Farm", "Farm", "Beitbridge", "Matabeleland South"),
    ("CBC", "CBC Farm", "Farm", "Chipinge", "Manicaland"),
    ("HRE-DEPOT", "Harare Depot", "Depot", "Harare", "Harare"),
    ("BYO-DEPOT", "Bulawayo Depot", "Depot", "Bulawayo", "Bulawayo"),
    ("MTR-DEPOT", "Mutare Depot", "Depot", "Mutare", "Manicaland"),
    ("DAPPER", "Dapper Cold Store", "Cold Store", "Harare", "Harare"),
    ("FRESHMARK", "Freshmark Centurion", "Market", "Centurion", "Gauteng"),
    ("REZENDE", "Rezende Depot", "Depot", "Rezende", "Manicaland"),
]

# code, name, description, capacity kg, turnaround days, returnable
PACKAGING_TYPES = [
    ("BIN-500", "500kg Bin", "Large plastic bin for bulk produce", 500, 14, True),
    ("BIN-250", "250kg Bin", "Medium plastic bin for produce", 250, 14, True),
    ("CRATE-20", "20kg Crate", "Standard plastic crate", 20, 7, True),
    ("CRATE-10", "10kg Crate", "Small plastic crate", 10, 7, True),
    ("PALLET-STD", "Standard Pallet", "Standard wooden pallet", None, 30, True),
    ("PALLET-EURO", "Euro Pallet", "Euro specification pallet", None, 30, True),
    ("CARTON-10", "10kg Carton", "Cardboard carton", 10, 14, False),
    ("CARTON-5", "5kg Carton", "Small cardboard carton", 5, 14, False),
]

PRODUCT_TYPES = [
    ("CITRUS", "Citrus"),
    ("MANGO", "Mango"),
    ("AVOCADO", "Avocado"),
    ("BANANA", "Banana"),
    ("TOMATO", "Tomato"),
    ("ONION", "Onion"),
    ("POTATO", "Potato"),
    ("BLEND", "Mixed Blend"),
]

PRODUCT_GRADES = [
    ("A", "Grade A - Premium", 1),
    ("B", "Grade B - Standard", 2),
    ("C", "Grade C - Economy", 3),
    ("PROCESS", "Processing Grade", 4),
]

CHANNELS = [
    ("RETAIL", "Retail"),
    ("VENDOR", "Vendor"),
    ("VANSALES", "Van Sales"),
    ("DIRECT", "Direct"),
    ("MUNICIPAL", "Municipal"),
    ("EXPORT", "Export"),
]

VEHICLES = ["23H", "26H", "22H", "31H", "6H", "28H", "24H", "UD95", "32H", "4H"]

DRIVERS = [
    ("Phillimon", "Kwarire"),
    ("Peter", "Farai"),
    ("Bepete", "J"),
    ("Jackson", "TBA"),
]


async def _existing(db: AsyncSession, column) -> set:
    return set((await db.execute(select(column))).scalars().all())


async def seed_reference_data(db: AsyncSession) -> dict[str, int]:
    """Insert missing reference rows and return how many were added per table."""
    added: dict[str, int] = {}

    have = await _existing(db, SiteType.name)
    new_types = [SiteType(name=n, description=d) for n, d in SITE_TYPES if n not in have]
    db.add_all(new_types)
    added["site_types"] = len(new_types)
    await db.flush()

    type_ids = dict((await db.execute(select(SiteType.name, SiteType.id))).all())
    have = await _existing(db, Site.code)
    new_sites = [
        Site(code=code, name=name, site_type_id=type_ids.get(kind), city=city, region=region)
        for code, name, kind, city, region in SITES
        if code not in have
    ]
    db.add_all(new_sites)
    added["sites"] = len(new_sites)

    have = await _existing(db, PackagingType.code)
    new_packaging = [
        PackagingType(
            code=code,
            name=name,
            description=description,
            capacity_kg=capacity,
            expected_turnaround_days=turnaround,
            is_returnable=returnable,
        )
        for code, name, description, capacity, turnaround, returnable in PACKAGING_TYPES
        if code not in have
    ]
    db.add_all(new_packaging)
    added["packaging_types"] = len(new_packaging)

    have = await _existing(db, ProductType.code)
    new_products = [ProductType(code=c, name=n) for c, n in PRODUCT_TYPES if c not in have]
    db.add_all(new_products)
    added["product_types"] = len(new_products)

    have = await _existing(db, ProductGrade.code)
    new_grades = [
        ProductGrade(code=c, name=n, sort_order=order)
        for c, n, order in PRODUCT_GRADES
        if c not in have
    ]
    db.add_all(new_grades)
    added["product_grades"] = len(new_grades)

    have = await _existing(db, Channel.code)
    new_channels = [Channel(code=c, name=n) for c, n in CHANNELS if c not in have]
    db.add_all(new_channels)
    added["channels"] = len(new_channels)

    have = await _existing(db, Vehicle.registration)
    new_vehicles = [
        Vehicle(registration=reg, name=f"Truck {reg}", vehicle_type="Truck")
        for reg in VEHICLES
        if reg not in have
    ]
    db.add_all(new_vehicles)
    added["vehicles"] = len(new_vehicles)

    known_drivers = set((await db.execute(select(Driver.first_name, Driver.last_name))).all())
    new_drivers = [
        Driver(first_name=first, last_name=last)
        for first, last in DRIVERS
        if (first, last) not in known_drivers
    ]
    db.add_all(new_drivers)
    added["drivers"] = len(new_drivers)

    email = settings.seed_admin_email.lower()
    admin = await db.scalar(select(User).where(User.email == email))
    if admin is None:
        db.add(User(
            email=email,
            password_hash=hash_password(settings.seed_admin_password),
            first_name="System",
            last_name="Administrator",
            role=UserRole.ADMIN,
        ))
        added["users"] = 1
    else:
        added["users"] = 0

    await db.flush()
    logger.info(f"Seed complete: {added}")
    return added
