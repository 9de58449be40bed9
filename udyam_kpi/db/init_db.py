import logging
from pymongo import ASCENDING
from udyam_kpi.core.database import Collections
from udyam_kpi.db.seeds.master_kpis import seed_master_kpis

logger = logging.getLogger(__name__)

async def ensure_indexes(collections: Collections):
    """Create the secondary indexes the handlers query by"""
    await collections.assignments.create_index(
        [("udyamMitraUid", ASCENDING), ("monthYear", ASCENDING)],
        name="agent_period",
    )
    await collections.assignments.create_index(
        [("udyamMitraUid", ASCENDING), ("kpiId", ASCENDING), ("monthYear", ASCENDING)],
        name="agent_kpi_period",
        unique=True,
    )
    await collections.master_kpis.create_index([("category", ASCENDING)], name="category")
    logger.info("Document store indexes ensured")

async def init_db(collections: Collections, seed: bool = True):
    """Prepare the document store on startup"""
    await ensure_indexes(collections)
    if seed:
        await seed_master_kpis(collections.master_kpis)
