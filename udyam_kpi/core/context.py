# udyam_kpi/core/context.py
import logging
from dataclasses import dataclass
from typing import Any, Optional

from udyam_kpi.auth.token_verifier import TokenVerifier
from udyam_kpi.core.config import Settings
from udyam_kpi.core.database import Collections, create_mongo_client, get_database
from udyam_kpi.core.firebase import FirebaseIdentityProvider

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """
    Everything a handler needs, built once at process start and shared
    through app.state instead of module-level singletons.
    """
    settings: Settings
    collections: Collections
    identity: Any
    verifier: TokenVerifier
    mongo_client: Optional[Any] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppContext":
        mongo_client = create_mongo_client(settings)
        database = get_database(mongo_client, settings)
        return cls(
            settings=settings,
            collections=Collections(database, settings),
            identity=FirebaseIdentityProvider.from_settings(settings),
            verifier=TokenVerifier(
                project_id=settings.FIREBASE_PROJECT_ID,
                certs_url=settings.FIREBASE_CERTS_URL,
                timeout=settings.HTTP_TIMEOUT_SECONDS,
            ),
            mongo_client=mongo_client,
        )

    async def close(self):
        await self.verifier.aclose()
        if self.mongo_client is not None:
            await self.mongo_client.close()
        logger.info("Application context closed")
