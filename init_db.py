#!/usr/bin/env python3
"""Initialize the database for the embroidery portal API"""

import argparse
import asyncio

from sqlalchemy import select

from embroidery_api.core.config import settings
from embroidery_api.db.database import create_engine_and_sessionmaker, init_db
from embroidery_api.models import Employee, EmployeeRole


async def init_database(admin_id: str = None, admin_email: str = None):
    """Create all tables and optionally register an admin employee"""
    engine, session_factory = create_engine_and_sessionmaker(settings.DATABASE_URL)
    try:
        await init_db(engine)
        print("Database tables created")

        if admin_id:
            async with session_factory() as session:
                existing = await session.execute(select(Employee).where(Employee.id == admin_id))
                if existing.scalar_one_or_none() is None:
                    session.add(Employee(id=admin_id, email=admin_email, role=EmployeeRole.ADMIN))
                    await session.commit()
                    print(f"Admin employee {admin_id} created")
                else:
                    print(f"Employee {admin_id} already exists")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--admin-id", help="auth provider user id to register as admin")
    parser.add_argument("--admin-email")
    args = parser.parse_args()
    asyncio.run(init_database(args.admin_id, args.admin_email))
