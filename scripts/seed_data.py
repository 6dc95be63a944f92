"""
Seed Data Script - Populate the database with sample employees
=============================================================================
CONCEPT: Data Seeding

Seeding fills the database with realistic records so you can exercise the
API (paging, sorting, search, role filtering) without manual data entry.

Records are created through the ORM, so every name and role goes through
the same sanitizer as API input. The sample deliberately includes
non-ASCII names ("Zoë Saldaña", "Ñuño Pérez") and roles with digits and
underscores.

Creates the table first when AUTO_CREATE_SCHEMA=true (SQLite development
databases); otherwise run `alembic upgrade head` beforehand.

Run: python -m scripts.seed_data
=============================================================================
"""

import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import func, select

from employee_api.config import settings
from employee_api.db.engine import Base, async_session_maker, engine
from employee_api.db.models import Employee

SAMPLE_EMPLOYEES = [
    ("Bilbo Baggins", "Burglar"),
    ("Frodo Baggins", "Thief"),
    ("Samwise Gamgee", "Gardener"),
    ("Ada Lovelace", "Software Engineer"),
    ("Grace Hopper", "Principal Engineer"),
    ("Mary-Jane O'Neil", "Product Manager"),
    ("J. R. R. Tolkien", "Technical Writer"),
    ("Zoë Saldaña", "Designer"),
    ("Ñuño Pérez", "Data_Analyst-2"),
    ("Linus Torvalds", "Engineer II"),
    ("Margaret Hamilton", "Engineering Manager"),
    ("Alan Turing", "Research Scientist"),
]


async def seed_employees(session) -> None:
    """Insert SAMPLE_EMPLOYEES unless the table already has rows."""
    count = (await session.execute(select(func.count(Employee.id)))).scalar_one()
    if count > 0:
        print(f"  Employees table already has {count} records, skipping...")
        return

    employees = [Employee(name=name, role=role) for name, role in SAMPLE_EMPLOYEES]
    session.add_all(employees)
    await session.commit()
    print(f"  Created {len(employees)} employees")


async def main():
    print("Seeding database...")
    print("=" * 50)

    if settings.auto_create_schema:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        print("\nSeeding employees...")
        await seed_employees(session)

    print("\n" + "=" * 50)
    print("Seeding complete!")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
