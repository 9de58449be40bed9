import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError, PyMongoError
from udyam_kpi.core.database import Collections
from udyam_kpi.core.exceptions import InvalidRequestError, NotFoundError, UpstreamError
from udyam_kpi.models.enums import KpiCategory
from udyam_kpi.schemas.kpi import MasterKpiCreate, MasterKpiResponse, MasterKpiUpdate
from udyam_kpi.utils.periods import natural_key

logger = logging.getLogger(__name__)

def to_master_response(document: Dict[str, Any]) -> MasterKpiResponse:
    return MasterKpiResponse(**{key: value for key, value in document.items() if key != "_id"})

class MasterKpiService:
    def __init__(self, collections: Collections):
        self.collection = collections.master_kpis

    async def list_master_kpis(self, category: Optional[KpiCategory] = None) -> List[Dict[str, Any]]:
        """Get master KPIs, optionally only one category, in natural id order"""
        query = {}
        if category is not None:
            query["category"] = KpiCategory(category).value
        try:
            documents = await self.collection.find(query).to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Error listing master KPIs: {str(e)}")
            raise UpstreamError("Error fetching master KPIs")
        return sorted(documents, key=lambda doc: natural_key(doc["_id"]))

    async def get_master_kpi(self, kpi_id: str) -> Dict[str, Any]:
        """Get master KPI by ID"""
        try:
            document = await self.collection.find_one({"_id": kpi_id})
        except PyMongoError as e:
            logger.error(f"Error getting master KPI {kpi_id}: {str(e)}")
            raise UpstreamError("Error fetching master KPI")
        if document is None:
            raise NotFoundError(f"Master KPI '{kpi_id}' not found")
        return document

    async def get_master_kpis_by_ids(self, kpi_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        if not kpi_ids:
            return {}
        try:
            documents = await self.collection.find({"_id": {"$in": list(kpi_ids)}}).to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Error getting master KPIs {kpi_ids}: {str(e)}")
            raise UpstreamError("Error fetching master KPIs")
        return {doc["_id"]: doc for doc in documents}

    async def create_master_kpi(self, kpi_create: MasterKpiCreate, created_by: str) -> Dict[str, Any]:
        """Create new master KPI (admin only)"""
        now = datetime.now(timezone.utc)
        document = {
            "_id": kpi_create.id,
            **kpi_create.model_dump(by_alias=True),
            "createdAt": now,
            "updatedAt": now,
            "updatedBy": created_by,
        }
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError:
            raise InvalidRequestError(f"Master KPI '{kpi_create.id}' already exists")
        except PyMongoError as e:
            logger.error(f"Error creating master KPI: {str(e)}")
            raise UpstreamError("Error creating master KPI")

        logger.info(f"Master KPI created: {kpi_create.id} by {created_by}")
        return document

    async def update_master_kpi(self, kpi_id: str, kpi_update: MasterKpiUpdate, updated_by: str) -> Dict[str, Any]:
        """Update master KPI display fields; the id itself never changes"""
        try:
            if kpi_update.id is not None and kpi_update.id != kpi_id:
                raise InvalidRequestError("KPI id cannot be changed once created")

            update_data = {
                key: value
                for key, value in kpi_update.model_dump(by_alias=True, exclude_unset=True, exclude={"id"}).items()
                # Only the optional text fields may be cleared
                if value is not None or key in ("description", "reportingFormat")
            }
            if not update_data:
                return await self.get_master_kpi(kpi_id)

            update_data["updatedAt"] = datetime.now(timezone.utc)
            update_data["updatedBy"] = updated_by
            result = await self.collection.update_one({"_id": kpi_id}, {"$set": update_data})
            if result.matched_count == 0:
                raise NotFoundError(f"Master KPI '{kpi_id}' not found")

            logger.info(f"Master KPI updated: {kpi_id} by {updated_by}")
            return await self.get_master_kpi(kpi_id)

        except HTTPException:
            raise
        except PyMongoError as e:
            logger.error(f"Error updating master KPI {kpi_id}: {str(e)}")
            raise UpstreamError("Error updating master KPI")
