# udyam_kpi/auth/permissions.py

from typing import Optional
import logging

from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.core.exceptions import ForbiddenError
from udyam_kpi.models.enums import ADMIN_ONLY_ACTIONS, AuthAction

logger = logging.getLogger(__name__)

ACTION_MESSAGES = {
    AuthAction.ASSIGN_KPI: "Permission denied: Only admin users can assign KPIs.",
    AuthAction.SET_ROLE: "Permission denied: Only users with 'admin' role can set other user roles.",
    AuthAction.LIST_USERS: "Permission denied: Only admin users can view users.",
    AuthAction.EDIT_MASTER_KPI: "Permission denied: Only admin users can edit master KPIs.",
    AuthAction.EDIT_ANY_PROFILE: "Permission denied: Only admin users can edit other user profiles.",
}


class RoleChecker:
    """
    Check what the caller may do from the role claim of their token
    """

    def __init__(self, claims: TokenClaims):
        self.claims = claims

    @property
    def is_admin(self) -> bool:
        return self.claims.is_admin

    def can(self, action: AuthAction) -> bool:
        if action in ADMIN_ONLY_ACTIONS:
            return self.is_admin
        return True

    def require(self, action: AuthAction, custom_message: Optional[str] = None):
        """Require an admin-only action or raise ForbiddenError"""
        if not self.can(action):
            message = custom_message or ACTION_MESSAGES.get(action, f"Insufficient permissions to {action.value}")
            logger.warning(f"Permission check failed for {self.claims.uid}: {message}")
            raise ForbiddenError(message)

    def is_self(self, target_uid: Optional[str]) -> bool:
        return target_uid is not None and target_uid == self.claims.uid

    def require_self(self, target_uid: Optional[str], custom_message: Optional[str] = None):
        """Self-scoped writes: the target must be the caller, whatever the role"""
        if not self.is_self(target_uid):
            message = custom_message or "Forbidden: You can only submit values for your own account."
            logger.warning(f"Ownership check failed: {self.claims.uid} acting on {target_uid}")
            raise ForbiddenError(message)

    def can_read(self, target_uid: Optional[str]) -> bool:
        return self.is_admin or self.is_self(target_uid)

    def require_read(self, target_uid: Optional[str], custom_message: Optional[str] = None):
        """Reads: admin may read anyone, an agent only themselves"""
        if not self.can_read(target_uid):
            message = custom_message or "Forbidden: You are not authorized to view these KPIs."
            logger.warning(f"Read check failed: {self.claims.uid} reading {target_uid}")
            raise ForbiddenError(message)
