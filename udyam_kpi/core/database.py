# udyam_kpi/core/database.py
import logging
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from udyam_kpi.core.config import Settings

logger = logging.getLogger(__name__)


def create_mongo_client(settings: Settings) -> AsyncMongoClient:
    """Create the document store client (MongoDB or Cosmos DB for MongoDB)"""
    timeout_ms = int(settings.HTTP_TIMEOUT_SECONDS * 1000)
    return AsyncMongoClient(
        settings.MONGODB_URL,
        serverSelectionTimeoutMS=timeout_ms,
        connectTimeoutMS=timeout_ms,
        # Cosmos DB for MongoDB does not support retryable writes
        retryWrites=False,
        tz_aware=True,
    )


def get_database(client: AsyncMongoClient, settings: Settings) -> AsyncDatabase:
    logger.info(f"Using document database '{settings.MONGODB_DATABASE}'")
    return client[settings.MONGODB_DATABASE]


class Collections:
    """Resolves the three logical collections from configured names"""

    def __init__(self, database, settings: Settings):
        self.database = database
        self.settings = settings

    @property
    def master_kpis(self):
        return self.database[self.settings.MASTER_KPI_COLLECTION]

    @property
    def assignments(self):
        return self.database[self.settings.ASSIGNMENT_COLLECTION]

    @property
    def user_profiles(self):
        return self.database[self.settings.USER_PROFILE_COLLECTION]
