from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from udyam_kpi.auth.permissions import RoleChecker
from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.core.context import AppContext
from udyam_kpi.core.exceptions import UnauthenticatedError
from udyam_kpi.models.enums import AuthAction
from udyam_kpi.services.auth.user_service import UserService
from udyam_kpi.services.kpi.assignment_service import KpiAssignmentService
from udyam_kpi.services.kpi.kpi_query_service import KpiQueryService
from udyam_kpi.services.kpi.master_kpi_service import MasterKpiService
from udyam_kpi.services.kpi.submission_service import KpiSubmissionService
import logging

# Missing or non-Bearer headers are reported as 401 by get_current_claims
security = HTTPBearer(auto_error=False)
logger = logging.getLogger(__name__)

def get_app_context(request: Request) -> AppContext:
    return request.app.state.context

async def get_current_claims(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    context: AppContext = Depends(get_app_context),
) -> TokenClaims:
    """Verify the bearer token and return its claims"""
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError()

    claims = await context.verifier.verify(credentials.credentials)
    request.state.claims = claims
    return claims

def require_admin(action: AuthAction):
    """
    Dependency to require the admin role for an endpoint

    Examples:
        require_admin(AuthAction.ASSIGN_KPI)
    """
    async def admin_dependency(claims: TokenClaims = Depends(get_current_claims)) -> TokenClaims:
        RoleChecker(claims).require(action)
        return claims

    return admin_dependency

def get_master_kpi_service(context: AppContext = Depends(get_app_context)) -> MasterKpiService:
    return MasterKpiService(context.collections)

def get_kpi_query_service(context: AppContext = Depends(get_app_context)) -> KpiQueryService:
    return KpiQueryService(context.collections)

def get_submission_service(context: AppContext = Depends(get_app_context)) -> KpiSubmissionService:
    return KpiSubmissionService(context.collections, context.settings)

def get_assignment_service(context: AppContext = Depends(get_app_context)) -> KpiAssignmentService:
    return KpiAssignmentService(context.collections)

def get_user_service(context: AppContext = Depends(get_app_context)) -> UserService:
    return UserService(context.collections, context.identity, context.settings)
