"""Script to create the scheduling tables without running migrations.

Intended for local development against a throwaway database; deployed
databases are managed with ``scripts/migrate.py``.
"""

import asyncio
import sys

from samagra.database import DATABASE_URL, engine
from samagra.models import metadata


async def init_db(drop_existing: bool = False) -> None:
    """Create all tables, optionally dropping them first."""
    async with engine.begin() as conn:
        if drop_existing:
            await conn.run_sync(metadata.drop_all)
            print("✓ Dropped existing tables")

        await conn.run_sync(metadata.create_all)

    await engine.dispose()
    print(f"✓ Database initialized: {', '.join(sorted(metadata.tables))}")


if __name__ == "__main__":
    drop = "--drop" in sys.argv[1:]
    if drop and DATABASE_URL.startswith("postgresql") and "--yes" not in sys.argv[1:]:
        print("Refusing to drop PostgreSQL tables without --yes", file=sys.stderr)
        sys.exit(1)
    asyncio.run(init_db(drop_existing=drop))
