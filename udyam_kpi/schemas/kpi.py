import math
from typing import Optional, List, Union
from pydantic import AliasChoices, BaseModel, Field, validator
from datetime import datetime

from udyam_kpi.models.enums import KpiCategory
from udyam_kpi.models.monthly_target import parse_monthly_target
from udyam_kpi.utils.periods import validate_period

KPI_ID_PATTERN = r"^[A-Za-z0-9_-]+$"

# ============================================================================
# MASTER KPI
# ============================================================================

class MasterKpiBase(BaseModel):
    kpi_name: str = Field(..., alias="kpiName", min_length=1)
    description: Optional[str] = None
    monthly_target: Union[int, float, str] = Field(..., alias="monthlyTarget")
    reporting_format: Optional[str] = Field(None, alias="reportingFormat")
    category: KpiCategory

    @validator("monthly_target")
    def validate_monthly_target(cls, v):
        return parse_monthly_target(v).to_wire()

    class Config:
        populate_by_name = True
        use_enum_values = True

class MasterKpiCreate(MasterKpiBase):
    id: str = Field(..., min_length=1, max_length=64, pattern=KPI_ID_PATTERN)

class MasterKpiUpdate(BaseModel):
    # Present only so an attempt to rename can be rejected
    id: Optional[str] = None
    kpi_name: Optional[str] = Field(None, alias="kpiName", min_length=1)
    description: Optional[str] = None
    monthly_target: Optional[Union[int, float, str]] = Field(None, alias="monthlyTarget")
    reporting_format: Optional[str] = Field(None, alias="reportingFormat")
    category: Optional[KpiCategory] = None

    @validator("monthly_target")
    def validate_monthly_target(cls, v):
        if v is None:
            return v
        return parse_monthly_target(v).to_wire()

    class Config:
        populate_by_name = True
        use_enum_values = True

class MasterKpiResponse(BaseModel):
    id: str
    kpi_name: str = Field(..., alias="kpiName")
    description: Optional[str] = None
    monthly_target: Union[int, float, str, None] = Field(None, alias="monthlyTarget")
    reporting_format: Optional[str] = Field(None, alias="reportingFormat")
    category: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True

# ============================================================================
# MERGED KPI VIEW (GetKPIs)
# ============================================================================

class KpiQueryRequest(BaseModel):
    requested_uid: Optional[str] = Field(None, alias="requestedUid")
    month_year: Optional[str] = Field(None, alias="monthYear")

    @validator("month_year")
    def validate_month_year(cls, v):
        if v is None:
            return v
        return validate_period(v)

    class Config:
        populate_by_name = True

class KpiView(BaseModel):
    """Master display fields overlaid with a submitted value"""
    id: str
    kpi_name: Optional[str] = Field(None, alias="kpiName")
    description: Optional[str] = None
    monthly_target: Union[int, float, str, None] = Field(None, alias="monthlyTarget")
    reporting_format: Optional[str] = Field(None, alias="reportingFormat")
    category: Optional[str] = None
    current_value: Optional[Union[int, float]] = Field(None, alias="currentValue")
    progress_percentage: Optional[int] = Field(None, alias="progressPercentage")
    month_year: Optional[str] = Field(None, alias="monthYear")
    assigned: Optional[bool] = None

    class Config:
        populate_by_name = True

# ============================================================================
# SUBMISSION (UpdateKpiSubmission)
# ============================================================================

class KpiSubmissionRequest(BaseModel):
    kpi_id: str = Field(..., alias="kpiId", min_length=1)
    submitted_value: Union[int, float] = Field(..., alias="submittedValue")
    udyam_mitra_id: Optional[str] = Field(None, alias="udyamMitraId")
    # Target UID; defaults to the caller and must equal it when given
    udyam_mitra_uid: Optional[str] = Field(None, alias="udyamMitraUid")
    submission_date: str = Field(..., alias="submissionDate", min_length=1)
    submission_month_year: str = Field(..., alias="submissionMonthYear")

    @validator("submitted_value")
    def validate_submitted_value(cls, v):
        if not math.isfinite(v):
            raise ValueError("Submitted value must be a finite number")
        return v

    @validator("submission_month_year")
    def validate_submission_month_year(cls, v):
        return validate_period(v)

    class Config:
        populate_by_name = True

class SubmissionHistoryEntry(BaseModel):
    value: Union[int, float]
    date: str
    month_year: str = Field(..., alias="monthYear")
    udyam_mitra_id: Optional[str] = Field(None, alias="udyamMitraId")
    submitted_by_uid: str = Field(..., alias="submittedByUid")
    submitted_by_email: Optional[str] = Field(None, alias="submittedByEmail")
    submitted_at: datetime = Field(..., alias="submittedAt")
    submission_type: str = Field(..., alias="submissionType")

    class Config:
        populate_by_name = True

class KpiSubmissionResponse(BaseModel):
    message: str
    updated_kpi: KpiView = Field(..., alias="updatedKpi")
    submission_history: List[SubmissionHistoryEntry] = Field(default_factory=list, alias="submissionHistory")

    class Config:
        populate_by_name = True

# ============================================================================
# ASSIGNMENT (AssignKPIsToUser)
# ============================================================================

class KpiAssignmentRequest(BaseModel):
    udyam_mitra_uid: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("udyamMitraUid", "udyamMitraId", "udyam_mitra_uid"),
    )
    assigned_kpi_ids: List[str] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("assignedKpiIds", "kpiIds", "assigned_kpi_ids"),
    )
    month_year: str = Field(..., validation_alias=AliasChoices("monthYear", "month_year"))

    @validator("month_year")
    def validate_month_year(cls, v):
        return validate_period(v)

    @validator("assigned_kpi_ids")
    def validate_kpi_ids(cls, v):
        if any(not kpi_id or not kpi_id.strip() for kpi_id in v):
            raise ValueError("KPI ids must be non-empty strings")
        return [kpi_id.strip() for kpi_id in v]

class AssignmentSummary(BaseModel):
    udyam_mitra_uid: str = Field(..., alias="udyamMitraUid")
    month_year: str = Field(..., alias="monthYear")
    assigned_kpi_ids: List[str] = Field(..., alias="assignedKpiIds")
    assigned_by: str = Field(..., alias="assignedBy")
    last_updated: datetime = Field(..., alias="lastUpdated")

    class Config:
        populate_by_name = True

class KpiAssignmentResponse(BaseModel):
    message: str
    assignment: AssignmentSummary
