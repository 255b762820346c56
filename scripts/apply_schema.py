#!/usr/bin/env python3
"""Apply migrations/001_sentinel_grab.sql: job queue tables."""
import asyncio
import os
from pathlib import Path

import asyncpg

MIGRATION = Path(__file__).resolve().parent.parent / "migrations" / "001_sentinel_grab.sql"


async def main():
    conn = await asyncpg.connect(os.environ["DATABASE_URL"], statement_cache_size=0)
    try:
        await conn.execute(MIGRATION.read_text(encoding="utf-8"))
        print("Migration 001 applied: sentinel_grab tables created")

        # Verify
        version = await conn.fetchval(
            "SELECT max(version) FROM sentinel_grab_schema_migrations"
        )
        print(f"Schema version {version}")
    finally:
        await conn.close()

if __name__ == "__main__":
    asyncio.run(main())
