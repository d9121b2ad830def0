"""
Create all tables from the ORM metadata.

Run once against a fresh database:
  python -m photo_intake.db.init_db
"""
import asyncio

from sqlalchemy.ext.asyncio import AsyncEngine

import photo_intake.core.models  # noqa: F401  (registers tables on Base.metadata)
from photo_intake.db.session import Base, engine


async def create_tables(bind: AsyncEngine) -> None:
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    await create_tables(engine)
    print("Tables:", ", ".join(sorted(Base.metadata.tables)))
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
