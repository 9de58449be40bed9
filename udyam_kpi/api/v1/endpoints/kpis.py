import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from udyam_kpi.api.dependencies import (
    get_assignment_service,
    get_current_claims,
    get_kpi_query_service,
    get_master_kpi_service,
    get_submission_service,
    require_admin,
)
from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.models.enums import AuthAction, KpiCategory
from udyam_kpi.schemas.kpi import (
    KpiAssignmentRequest,
    KpiAssignmentResponse,
    KpiQueryRequest,
    KpiSubmissionRequest,
    KpiSubmissionResponse,
    KpiView,
    MasterKpiCreate,
    MasterKpiResponse,
    MasterKpiUpdate,
)
from udyam_kpi.services.kpi.assignment_service import KpiAssignmentService
from udyam_kpi.services.kpi.kpi_query_service import KpiQueryService
from udyam_kpi.services.kpi.master_kpi_service import MasterKpiService, to_master_response
from udyam_kpi.services.kpi.submission_service import KpiSubmissionService

router = APIRouter()
logger = logging.getLogger(__name__)

# ============================================================================
# KPI QUERY / SUBMISSION / ASSIGNMENT
# ============================================================================

@router.post("/query", response_model=List[KpiView])
async def get_kpis(
    query: Optional[KpiQueryRequest] = None,
    kpi_query_service: KpiQueryService = Depends(get_kpi_query_service),
    current_user: TokenClaims = Depends(get_current_claims)
):
    """
    KPIs a caller should see, merged with submitted values.

    Admin without requestedUid gets the master list; otherwise the KPIs of
    requestedUid for monthYear (default: current month).
    """
    query = query or KpiQueryRequest()
    try:
        return await kpi_query_service.get_kpis(
            current_user,
            requested_uid=query.requested_uid,
            month_year=query.month_year,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get KPIs error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing KPI request"
        )

@router.post("/submissions", response_model=KpiSubmissionResponse)
async def update_kpi_submission(
    submission: KpiSubmissionRequest,
    submission_service: KpiSubmissionService = Depends(get_submission_service),
    current_user: TokenClaims = Depends(get_current_claims)
):
    """Record a new current value for one of the caller's own KPIs"""
    try:
        updated_kpi, history = await submission_service.submit(current_user, submission)
        return KpiSubmissionResponse(
            message="KPI upserted successfully",
            updatedKpi=updated_kpi,
            submissionHistory=history,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"KPI submission error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error processing KPI update"
        )

@router.post("/assignments", response_model=KpiAssignmentResponse)
async def assign_kpis_to_user(
    assignment: KpiAssignmentRequest,
    assignment_service: KpiAssignmentService = Depends(get_assignment_service),
    current_user: TokenClaims = Depends(require_admin(AuthAction.ASSIGN_KPI))
):
    """Assign KPIs to an agent for a period (admin only)"""
    try:
        summary = await assignment_service.assign(current_user, assignment)
        return KpiAssignmentResponse(
            message=f"KPIs assigned to {summary.udyam_mitra_uid} for {summary.month_year} successfully.",
            assignment=summary,
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Assign KPIs error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error assigning KPIs"
        )

# ============================================================================
# MASTER KPI CRUD
# ============================================================================

@router.get("/master", response_model=List[MasterKpiResponse])
async def get_master_kpis(
    category: Optional[KpiCategory] = Query(None),
    master_kpi_service: MasterKpiService = Depends(get_master_kpi_service),
    current_user: TokenClaims = Depends(get_current_claims)
):
    """Get master KPI catalog"""
    try:
        masters = await master_kpi_service.list_master_kpis(category=category)
        return [to_master_response(master) for master in masters]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get master KPIs error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get master KPIs"
        )

@router.get("/master/{kpi_id}", response_model=MasterKpiResponse)
async def get_master_kpi(
    kpi_id: str,
    master_kpi_service: MasterKpiService = Depends(get_master_kpi_service),
    current_user: TokenClaims = Depends(get_current_claims)
):
    """Get master KPI by ID"""
    try:
        return to_master_response(await master_kpi_service.get_master_kpi(kpi_id))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get master KPI error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get master KPI"
        )

@router.post("/master", response_model=MasterKpiResponse, status_code=status.HTTP_201_CREATED)
async def create_master_kpi(
    kpi_create: MasterKpiCreate,
    master_kpi_service: MasterKpiService = Depends(get_master_kpi_service),
    current_user: TokenClaims = Depends(require_admin(AuthAction.EDIT_MASTER_KPI))
):
    """Create new master KPI (admin only)"""
    try:
        created = await master_kpi_service.create_master_kpi(kpi_create, created_by=current_user.uid)
        return to_master_response(created)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Create master KPI error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create master KPI"
        )

@router.put("/master/{kpi_id}", response_model=MasterKpiResponse)
async def update_master_kpi(
    kpi_id: str,
    kpi_update: MasterKpiUpdate,
    master_kpi_service: MasterKpiService = Depends(get_master_kpi_service),
    current_user: TokenClaims = Depends(require_admin(AuthAction.EDIT_MASTER_KPI))
):
    """Update master KPI (admin only)"""
    try:
        updated = await master_kpi_service.update_master_kpi(kpi_id, kpi_update, updated_by=current_user.uid)
        return to_master_response(updated)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update master KPI error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update master KPI"
        )
