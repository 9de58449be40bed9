"""
Document shapes kept in the document store.

Documents are plain dicts with camelCase keys; these helpers are the one
place that knows how they are keyed and which fields get denormalized.
"""
from datetime import datetime
from typing import Any, Dict, Optional

DISPLAY_FIELDS = ("kpiName", "description", "monthlyTarget", "reportingFormat", "category")


def assignment_id(uid: str, kpi_id: str, month_year: str) -> str:
    """Composite key of an Assignment/Submission document"""
    return f"{uid}:{kpi_id}:{month_year}"


def display_fields(master: Dict[str, Any]) -> Dict[str, Any]:
    return {name: master.get(name) for name in DISPLAY_FIELDS}


def new_assignment_document(
    uid: str,
    kpi_id: str,
    month_year: str,
    master: Dict[str, Any],
    current_value,
    now: datetime,
    assigned_by: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "_id": assignment_id(uid, kpi_id, month_year),
        "udyamMitraUid": uid,
        "kpiId": kpi_id,
        "monthYear": month_year,
        **display_fields(master),
        "currentValue": current_value,
        "submissionHistory": [],
        "assignedBy": assigned_by,
        "assignedAt": now if assigned_by else None,
        "lastUpdated": now,
    }


def history_entry(
    value,
    date: str,
    month_year: str,
    submitted_by_uid: str,
    submitted_by_email: Optional[str],
    udyam_mitra_id: Optional[str],
    submission_type: str,
    now: datetime,
) -> Dict[str, Any]:
    return {
        "value": value,
        "date": date,
        "monthYear": month_year,
        "udyamMitraId": udyam_mitra_id,
        "submittedByUid": submitted_by_uid,
        "submittedByEmail": submitted_by_email,
        "submittedAt": now,
        "submissionType": submission_type,
    }
