import pytest

from udyam_kpi.auth.permissions import RoleChecker
from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.core.exceptions import ForbiddenError
from udyam_kpi.models.enums import AuthAction

ADMIN = TokenClaims(uid="ADMIN1", email="admin@udyam.test", role="admin")
AGENT = TokenClaims(uid="U1", email="u1@udyam.test")


def test_default_role_is_agent():
    assert AGENT.role == "udyamMitra"
    assert not AGENT.is_admin


@pytest.mark.parametrize("action", list(AuthAction))
def test_admin_only_actions(action):
    assert RoleChecker(ADMIN).can(action)
    assert not RoleChecker(AGENT).can(action)


def test_require_raises_with_action_message():
    with pytest.raises(ForbiddenError) as exc_info:
        RoleChecker(AGENT).require(AuthAction.SET_ROLE)
    assert exc_info.value.status_code == 403
    assert "set other user roles" in exc_info.value.detail


def test_require_self_applies_to_admins_too():
    RoleChecker(AGENT).require_self("U1")
    with pytest.raises(ForbiddenError):
        RoleChecker(AGENT).require_self("U2")
    with pytest.raises(ForbiddenError):
        RoleChecker(ADMIN).require_self("U1")


def test_read_access():
    assert RoleChecker(ADMIN).can_read("U1")
    assert RoleChecker(AGENT).can_read("U1")
    assert not RoleChecker(AGENT).can_read("U2")
    with pytest.raises(ForbiddenError) as exc_info:
        RoleChecker(AGENT).require_read("U2")
    assert exc_info.value.detail == "Forbidden: You are not authorized to view these KPIs."
