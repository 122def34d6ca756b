"""Management CLI.

Usage:
    python -m packtrack.cli init-db   # Create all tables (development; use alembic elsewhere)
    python -m packtrack.cli seed      # Insert reference data and the admin user
"""

import asyncio
import sys

import packtrack.models  # noqa: F401  (registers every table on Base.metadata)
from packtrack.database import Database
from packtrack.services.seed import seed_reference_data


async def init_db():
    db = Database()
    db.open()
    try:
        await db.create_all()
        print("Tables created.")
    finally:
        await db.close()


async def seed():
    db = Database()
    db.open()
    try:
        async with db.transaction() as session:
            added = await seed_reference_data(session)
        for table, count in added.items():
            print(f"  {table}: {count} added")
    finally:
        await db.close()


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "init-db":
        asyncio.run(init_db())
    elif cmd == "seed":
        asyncio.run(seed())
    else:
        print("Usage: python -m packtrack.cli [init-db|seed]")
