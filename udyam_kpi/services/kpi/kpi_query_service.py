import logging
from typing import Any, Dict, List, Optional
from pymongo.errors import PyMongoError
from udyam_kpi.auth.permissions import RoleChecker
from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.core.database import Collections
from udyam_kpi.core.exceptions import ForbiddenError, UpstreamError
from udyam_kpi.models.documents import DISPLAY_FIELDS
from udyam_kpi.models.enums import KpiCategory
from udyam_kpi.models.monthly_target import progress_percentage
from udyam_kpi.schemas.kpi import KpiView
from udyam_kpi.services.kpi.master_kpi_service import MasterKpiService
from udyam_kpi.utils.periods import current_period, natural_key

logger = logging.getLogger(__name__)


def build_kpi_view(
    kpi_id: str,
    source: Dict[str, Any],
    current_value=None,
    month_year: Optional[str] = None,
    assigned: Optional[bool] = None,
) -> KpiView:
    """Overlay a KPI's display fields with a current value"""
    fields = {name: source.get(name) for name in DISPLAY_FIELDS}
    try:
        progress = progress_percentage(fields["monthlyTarget"], current_value)
    except ValueError:
        logger.warning(f"KPI {kpi_id} has an unusable monthly target: {fields['monthlyTarget']!r}")
        progress = None
    return KpiView(
        id=kpi_id,
        **fields,
        currentValue=current_value,
        progressPercentage=progress,
        monthYear=month_year,
        assigned=assigned,
    )


class KpiQueryService:
    """Resolves which KPIs, with which current values, a caller should see"""

    def __init__(self, collections: Collections):
        self.assignments = collections.assignments
        self.master_service = MasterKpiService(collections)

    async def get_kpis(
        self,
        claims: TokenClaims,
        requested_uid: Optional[str] = None,
        month_year: Optional[str] = None,
    ) -> List[KpiView]:
        checker = RoleChecker(claims)

        if requested_uid is None:
            if not checker.is_admin:
                logger.warning(f"Non-admin {claims.uid} requested KPIs without a target UID")
                raise ForbiddenError("Forbidden: You are not authorized to view these KPIs.")
            logger.info(f"Admin {claims.email} fetching the master KPI list")
            masters = await self.master_service.list_master_kpis()
            return [build_kpi_view(master["_id"], master) for master in masters]

        checker.require_read(requested_uid)
        period = month_year or current_period()
        return await self.get_agent_kpis(requested_uid, period)

    async def get_agent_kpis(self, uid: str, month_year: str) -> List[KpiView]:
        """Merged KPIs of one agent for one period, falling back to the common set"""
        try:
            assignments = await self.assignments.find(
                {"udyamMitraUid": uid, "monthYear": month_year}
            ).to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Error fetching assignments for {uid} {month_year}: {str(e)}")
            raise UpstreamError("Error processing KPI request")

        if not assignments:
            logger.info(f"No KPI assignments found for {uid} for {month_year}; using common KPIs")
            commons = await self.master_service.list_master_kpis(category=KpiCategory.COMMON)
            return [
                build_kpi_view(master["_id"], master, current_value=0, month_year=month_year, assigned=False)
                for master in commons
            ]

        masters = await self.master_service.get_master_kpis_by_ids([doc["kpiId"] for doc in assignments])
        views = []
        for doc in sorted(assignments, key=lambda item: natural_key(item["kpiId"])):
            # Live master fields win; the denormalized copy covers deleted masters
            source = masters.get(doc["kpiId"], doc)
            current_value = doc.get("currentValue")
            views.append(
                build_kpi_view(
                    doc["kpiId"],
                    source,
                    current_value=0 if current_value is None else current_value,
                    month_year=month_year,
                    assigned=True,
                )
            )
        return views
