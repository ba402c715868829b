"""
Initialize the database: create all tables, optionally with demo data.
Run with: python -m scripts.init_db [--demo]
"""

import asyncio
import sys
from shiftdesk.database import engine, Base
from shiftdesk.models import User, Hospital, HospitalMembership, Shift, Availability, ShiftSwapRequest  # noqa: F401


async def init(with_demo: bool = False):
    print("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    print("All tables created successfully.")
    if with_demo:
        from shiftdesk.main import seed_demo_data
        await seed_demo_data()
        print("Demo hospital seeded.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init(with_demo="--demo" in sys.argv[1:]))
