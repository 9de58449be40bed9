from fastapi import APIRouter
from udyam_kpi.api.v1.endpoints import kpis, users

api_router = APIRouter()

# KPI routes
api_router.include_router(kpis.router, prefix="/kpis", tags=["KPIs"])

# User management routes
api_router.include_router(users.router, prefix="/users", tags=["Users"])
