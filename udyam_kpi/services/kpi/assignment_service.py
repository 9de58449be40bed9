import logging
from datetime import datetime, timezone
from pymongo.errors import PyMongoError
from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.core.database import Collections
from udyam_kpi.core.exceptions import NotFoundError, UpstreamError
from udyam_kpi.models.documents import assignment_id, display_fields
from udyam_kpi.schemas.kpi import AssignmentSummary, KpiAssignmentRequest
from udyam_kpi.services.kpi.master_kpi_service import MasterKpiService
from udyam_kpi.utils.periods import unique_in_order

logger = logging.getLogger(__name__)


class KpiAssignmentService:
    """Binds master KPIs to an agent for a period (admin only)"""

    def __init__(self, collections: Collections):
        self.assignments = collections.assignments
        self.master_service = MasterKpiService(collections)

    async def assign(self, claims: TokenClaims, assignment: KpiAssignmentRequest) -> AssignmentSummary:
        kpi_ids = unique_in_order(assignment.assigned_kpi_ids)
        uid = assignment.udyam_mitra_uid
        month_year = assignment.month_year

        # All-or-nothing: nothing is written unless every KPI exists
        masters = await self.master_service.get_master_kpis_by_ids(kpi_ids)
        missing = [kpi_id for kpi_id in kpi_ids if kpi_id not in masters]
        if missing:
            logger.warning(f"Assignment to {uid} for {month_year} rejected, unknown KPIs: {missing}")
            raise NotFoundError(f"Master KPI(s) not found: {', '.join(missing)}")

        now = datetime.now(timezone.utc)
        try:
            for kpi_id in kpi_ids:
                await self.assignments.update_one(
                    {"_id": assignment_id(uid, kpi_id, month_year)},
                    {
                        "$set": {
                            **display_fields(masters[kpi_id]),
                            "currentValue": 0,
                            "assignedBy": claims.uid,
                            "assignedAt": now,
                            "lastUpdated": now,
                        },
                        "$setOnInsert": {
                            "udyamMitraUid": uid,
                            "kpiId": kpi_id,
                            "monthYear": month_year,
                            "submissionHistory": [],
                        },
                    },
                    upsert=True,
                )
        except PyMongoError as e:
            logger.error(f"Error assigning KPIs to {uid}: {str(e)}")
            raise UpstreamError(f"Error assigning KPIs: {str(e)}")

        logger.info(f"Admin {claims.email} assigned {kpi_ids} to {uid} for {month_year}")
        return AssignmentSummary(
            udyamMitraUid=uid,
            monthYear=month_year,
            assignedKpiIds=kpi_ids,
            assignedBy=claims.uid,
            lastUpdated=now,
        )
