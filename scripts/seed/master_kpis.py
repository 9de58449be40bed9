"""
Master KPI catalog seed (async, idempotent)
Run:  python scripts/seed/master_kpis.py
"""

import os, sys
import asyncio
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from udyam_kpi.core.config import Settings
from udyam_kpi.core.database import Collections, create_mongo_client, get_database
from udyam_kpi.core.logging_config import setup_logging
from udyam_kpi.db.init_db import ensure_indexes
from udyam_kpi.db.seeds.master_kpis import seed_master_kpis


async def main():
    settings = Settings()
    setup_logging(settings)
    client = create_mongo_client(settings)
    try:
        collections = Collections(get_database(client, settings), settings)
        await ensure_indexes(collections)
        created = await seed_master_kpis(collections.master_kpis)
        print(f"✅ Master KPI seed complete: {created} new KPI(s)")
    finally:
        await client.close()


if __name__ == "__main__":
    asyncio.run(main())
