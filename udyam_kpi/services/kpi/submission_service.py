import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple
from fastapi import HTTPException
from pymongo.errors import DuplicateKeyError, PyMongoError
from udyam_kpi.auth.permissions import RoleChecker
from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.core.config import Settings
from udyam_kpi.core.database import Collections
from udyam_kpi.core.exceptions import NotFoundError, UpstreamError
from udyam_kpi.models.documents import assignment_id, history_entry, new_assignment_document
from udyam_kpi.models.enums import SubmissionType
from udyam_kpi.schemas.kpi import KpiSubmissionRequest, KpiView
from udyam_kpi.services.kpi.kpi_query_service import build_kpi_view
from udyam_kpi.services.kpi.master_kpi_service import MasterKpiService

logger = logging.getLogger(__name__)


class KpiSubmissionService:
    """Records an agent's current value for one KPI and period"""

    def __init__(self, collections: Collections, settings: Settings):
        self.assignments = collections.assignments
        self.master_service = MasterKpiService(collections)
        self.allow_unassigned = settings.ALLOW_UNASSIGNED_SUBMISSIONS

    async def submit(
        self, claims: TokenClaims, submission: KpiSubmissionRequest
    ) -> Tuple[KpiView, List[Dict[str, Any]]]:
        target_uid = submission.udyam_mitra_uid or claims.uid
        RoleChecker(claims).require_self(target_uid)

        doc_id = assignment_id(target_uid, submission.kpi_id, submission.submission_month_year)
        try:
            existing = await self.assignments.find_one({"_id": doc_id})
            if existing is not None:
                await self._append_submission(doc_id, claims, submission, SubmissionType.UPDATE)
            else:
                await self._create_from_submission(doc_id, target_uid, claims, submission)

            saved = await self.assignments.find_one({"_id": doc_id})

        except HTTPException:
            raise
        except PyMongoError as e:
            logger.error(f"Error in KPI submission for {doc_id}: {str(e)}")
            raise UpstreamError(f"Error processing KPI update: {str(e)}")

        logger.info(
            f"KPI {submission.kpi_id} for {target_uid} ({submission.submission_month_year}) "
            f"set to {submission.submitted_value}"
        )
        masters = await self.master_service.get_master_kpis_by_ids([submission.kpi_id])
        view = build_kpi_view(
            submission.kpi_id,
            masters.get(submission.kpi_id, saved),
            current_value=saved.get("currentValue"),
            month_year=saved.get("monthYear"),
            assigned=True,
        )
        return view, saved.get("submissionHistory", [])

    def _history_entry(self, claims: TokenClaims, submission: KpiSubmissionRequest, submission_type: SubmissionType, now: datetime):
        return history_entry(
            value=submission.submitted_value,
            date=submission.submission_date,
            month_year=submission.submission_month_year,
            submitted_by_uid=claims.uid,
            submitted_by_email=claims.email,
            udyam_mitra_id=submission.udyam_mitra_id,
            submission_type=submission_type.value,
            now=now,
        )

    async def _append_submission(self, doc_id: str, claims: TokenClaims, submission: KpiSubmissionRequest, submission_type: SubmissionType):
        now = datetime.now(timezone.utc)
        # $push keeps every history entry when submissions race
        await self.assignments.update_one(
            {"_id": doc_id},
            {
                "$set": {"currentValue": submission.submitted_value, "lastUpdated": now},
                "$push": {"submissionHistory": self._history_entry(claims, submission, submission_type, now)},
            },
        )

    async def _create_from_submission(self, doc_id: str, target_uid: str, claims: TokenClaims, submission: KpiSubmissionRequest):
        if not self.allow_unassigned:
            logger.warning(f"Rejected submission for unassigned KPI {doc_id}")
            raise NotFoundError(
                f"KPI '{submission.kpi_id}' is not assigned to {target_uid} for {submission.submission_month_year}"
            )

        master = await self.master_service.get_master_kpi(submission.kpi_id)
        logger.warning(f"No assignment for {doc_id}; creating it from the submission")

        now = datetime.now(timezone.utc)
        document = new_assignment_document(
            uid=target_uid,
            kpi_id=submission.kpi_id,
            month_year=submission.submission_month_year,
            master=master,
            current_value=submission.submitted_value,
            now=now,
        )
        document["submissionHistory"] = [
            self._history_entry(claims, submission, SubmissionType.INITIAL, now)
        ]
        try:
            await self.assignments.insert_one(document)
        except DuplicateKeyError:
            # Created concurrently by another call; record this one as an update
            await self._append_submission(doc_id, claims, submission, SubmissionType.UPDATE)
