"""
Master KPI catalog seed data (idempotent)
Run:  python scripts/seed/master_kpis.py
"""
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

# ----------------------------------------------------------------------
# SEED DATA
# ----------------------------------------------------------------------

MASTER_KPIS_SEED = [
    # =================== COMMON ===================
    {"id": "common1", "kpiName": "Enterprise Interactions (Field Visits)", "description": "No. of MSMEs, SHGs, informal enterprises met (field grievances)", "monthlyTarget": 10, "reportingFormat": "Field Visit Report with geo-tagged photos", "category": "common"},
    {"id": "common2", "kpiName": "Beneficiary Grievances Resolved", "description": "Grievances addressed for field enterprises", "monthlyTarget": 10, "reportingFormat": "Google Sheet", "category": "common"},
    {"id": "common3", "kpiName": "Baseline Surveys or Field Assessments", "description": "Surveys conducted for ground mapping", "monthlyTarget": 4, "reportingFormat": "Google Sheet", "category": "common"},
    {"id": "common4", "kpiName": "Scheme Applications Facilitated", "description": "Applications in PMFME, PMEGP, UDYAM, E-Shram, etc.", "monthlyTarget": 10, "reportingFormat": "Application copies/Screenshot of status", "category": "common"},
    {"id": "common5", "kpiName": "Follow-ups on Scheme Applications", "description": "Tracking and facilitating pending cases", "monthlyTarget": 5, "reportingFormat": "Tracking Sheet with outcome status", "category": "common"},
    {"id": "common6", "kpiName": "Workshops / EDP Organized", "description": "Mobilization, awareness events", "monthlyTarget": 2, "reportingFormat": "Attendance sheets, photos, videos", "category": "common"},
    {"id": "common7", "kpiName": "Financial Literacy or Formalization Support", "description": "1-to-1 guidance on PAN, GST, Udyam, New Industrial Policy, etc.", "monthlyTarget": 10, "reportingFormat": "Documentation list, Google Sheet", "category": "common"},
    {"id": "common8", "kpiName": "New Enterprise Cases Identified", "description": "New informal businesses identified and profiled", "monthlyTarget": 5, "reportingFormat": "Enterprise profiling Google Sheet", "category": "common"},
    {"id": "common9", "kpiName": "Credit Linkage Facilitation", "description": "Referrals to banks, NBFCs", "monthlyTarget": 5, "reportingFormat": "Bank interaction/follow-up record/ google sheet", "category": "common"},
    {"id": "common10", "kpiName": "Portal/MIS Updates & Data Entry", "description": "Timely data updates in MIS/Google Sheets", "monthlyTarget": 100, "reportingFormat": "MIS Portal/Google Sheet", "category": "common"},
    {"id": "common11", "kpiName": "Convergence & Departmental Coordination", "description": "Meetings with DICs, RD, Agri/Horti, etc.", "monthlyTarget": 2, "reportingFormat": "Meeting MoM or signed attendance list", "category": "common"},
    {"id": "common12", "kpiName": "Support to EDPs, RAMP, and Field Activities", "description": "Participation in Enterprise Development Programs or RAMP", "monthlyTarget": "As per deployment", "reportingFormat": "Program report signed by supervisor", "category": "common"},
    {"id": "common13", "kpiName": "Case Studies / Beneficiary Success Stories", "description": "Documenting success stories from the field", "monthlyTarget": 1, "reportingFormat": "Minimum 500 words + image/video", "category": "common"},
    {"id": "common14", "kpiName": "Pollution/Pollutant Check", "description": "Visit to Industrial Estate, and do proper reading of machine for pollution/pollutant", "monthlyTarget": 2, "reportingFormat": "Google sheet with geo tagged photos", "category": "common"},

    # =================== ECOSYSTEM & ENTERPRISE DEVELOPMENT ===================
    {"id": "eco1", "kpiName": "Loan Applications Supported", "monthlyTarget": 5, "reportingFormat": "Google Sheet", "category": "ecosystem"},
    {"id": "eco2", "kpiName": "Business Model/Plan Guidance Provided", "monthlyTarget": 5, "reportingFormat": "Google Sheet", "category": "ecosystem"},
    {"id": "eco3", "kpiName": "Artisans/Entrepreneurs Linked to Schemes", "monthlyTarget": 10, "reportingFormat": "Google Sheet", "category": "ecosystem"},
    {"id": "eco4", "kpiName": "Financial Literacy Sessions (Group) Conducted", "monthlyTarget": 5, "reportingFormat": "Photos/Videos/Google Sheet", "category": "ecosystem"},
    {"id": "eco5", "kpiName": "New Initiatives in Entrepreneurship Promotion", "monthlyTarget": 1, "reportingFormat": "Report/Google Sheet", "category": "ecosystem"},
    {"id": "eco6", "kpiName": "Enterprise/Business Ideas Scouted", "monthlyTarget": 1, "reportingFormat": "Report/Google Sheet", "category": "ecosystem"},

    # =================== HOSPITALITY & TOURISM ===================
    {"id": "hosp1", "kpiName": "Tourism Potential Sites Documented or Supported", "monthlyTarget": 2, "reportingFormat": "Photos/Videos/Google Sheet", "category": "hospitality"},
    {"id": "hosp2", "kpiName": "Tourism Promotion Events / Community Engagements", "monthlyTarget": 4, "reportingFormat": "Photos/Videos/Google Sheet", "category": "hospitality"},
    {"id": "hosp3", "kpiName": "Homestays/Tour Operators Onboarded/Assisted", "monthlyTarget": 5, "reportingFormat": "Google Sheet", "category": "hospitality"},
    {"id": "hosp4", "kpiName": "Local Youth/SHGs Trained in Tourism/Hospitality Services", "monthlyTarget": 10, "reportingFormat": "Google Sheet", "category": "hospitality"},

    # =================== AGRI / FOREST / ANIMAL HUSBANDRY ===================
    {"id": "agri1", "kpiName": "Agri/Forest-Based Enterprises Supported", "monthlyTarget": 5, "reportingFormat": "Google Sheet", "category": "agriForest"},
    {"id": "agri2", "kpiName": "SHGs Linked to Agri/Animal Husbandry/Processing Units", "monthlyTarget": 3, "reportingFormat": "Google Sheet", "category": "agriForest"},

    # =================== DBMS / MIS ===================
    {"id": "dbms1", "kpiName": "Portal/MIS Data Entry & Monitoring", "monthlyTarget": 100, "reportingFormat": "Google Sheet, MIS Portal", "category": "dbmsMIS"},
    {"id": "dbms2", "kpiName": "Data Validation, Error Rectification, and Reporting", "monthlyTarget": "Monthly Review", "reportingFormat": "Issue logs, rectification reports via email", "category": "dbmsMIS"},
    {"id": "dbms3", "kpiName": "Collaboration with Line Departments and Portal Developers", "monthlyTarget": "Continuous", "reportingFormat": "Meeting Notes, Email Records", "category": "dbmsMIS"},
]


async def seed_master_kpis(master_kpis_collection) -> int:
    """Insert catalog entries that are missing; existing (possibly edited) ones are left alone"""
    now = datetime.now(timezone.utc)
    created = 0
    for kpi in MASTER_KPIS_SEED:
        document = {
            "description": None,
            **kpi,
            "createdAt": now,
            "updatedAt": now,
            "updatedBy": "seed",
        }
        result = await master_kpis_collection.update_one(
            {"_id": kpi["id"]},
            {"$setOnInsert": document},
            upsert=True,
        )
        if result.upserted_id is not None:
            created += 1
    logger.info(f"Master KPI seed: {created} created, {len(MASTER_KPIS_SEED) - created} already present")
    return created
