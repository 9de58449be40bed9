from enum import Enum

# Enums
class UserRole(str, Enum):
    ADMIN = "admin"
    UDYAM_MITRA = "udyamMitra"   # Field agent

DEFAULT_ROLE = UserRole.UDYAM_MITRA

class KpiCategory(str, Enum):
    COMMON = "common"
    ECOSYSTEM = "ecosystem"
    HOSPITALITY = "hospitality"
    AGRI_FOREST = "agriForest"
    DBMS_MIS = "dbmsMIS"

class SubmissionType(str, Enum):
    INITIAL = "initial"
    UPDATE = "update"

class AuthAction(str, Enum):
    ASSIGN_KPI = "assign_kpi"
    SET_ROLE = "set_role"
    LIST_USERS = "list_users"
    EDIT_MASTER_KPI = "edit_master_kpi"
    EDIT_ANY_PROFILE = "edit_any_profile"

ADMIN_ONLY_ACTIONS = frozenset(AuthAction)
