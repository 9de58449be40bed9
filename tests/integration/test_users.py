import pytest
from fastapi import status
from httpx import AsyncClient

from tests.conftest import ADMIN_UID, AGENT_UID, OTHER_AGENT_UID

USERS_URL = "/api/v1/users"
ROLE_URL = "/api/v1/users/role"


@pytest.mark.asyncio
class TestListUsers:
    """GetUsers"""

    async def test_list_users_with_agent_ids(self, client: AsyncClient, admin_headers, agent_headers):
        response = await client.put(f"{USERS_URL}/me/profile", json={"udyamMitraId": "UM-001"}, headers=agent_headers)
        assert response.status_code == status.HTTP_200_OK

        response = await client.get(USERS_URL, headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        users = response.json()
        assert sorted(user["uid"] for user in users) == sorted([ADMIN_UID, AGENT_UID, OTHER_AGENT_UID])

        by_uid = {user["uid"]: user for user in users}
        assert by_uid[AGENT_UID]["udyamMitraId"] == "UM-001"
        assert by_uid[OTHER_AGENT_UID]["udyamMitraId"] == "N/A"
        assert by_uid[OTHER_AGENT_UID]["role"] == "udyamMitra"
        assert by_uid[OTHER_AGENT_UID]["displayName"] == "Agent Two"
        assert by_uid[ADMIN_UID]["role"] == "admin"

    async def test_list_users_requires_admin(self, client: AsyncClient, agent_headers):
        response = await client.get(USERS_URL, headers=agent_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "Permission denied: Only admin users can view users."

    async def test_list_users_requires_token(self, client: AsyncClient):
        response = await client.get(USERS_URL)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.asyncio
class TestSetUserRole:
    """SetUserRole"""

    async def test_non_admin_forbidden(self, client: AsyncClient, agent_headers, identity):
        response = await client.post(ROLE_URL, json={"uid": OTHER_AGENT_UID, "role": "admin"}, headers=agent_headers)
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert identity.users[OTHER_AGENT_UID].custom_claims == {}

    async def test_promote_to_admin(self, client: AsyncClient, admin_headers, identity, database, tokens):
        response = await client.post(ROLE_URL, json={"uid": OTHER_AGENT_UID, "role": "admin"}, headers=admin_headers)
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["message"] == (
            "Custom claim 'role:admin' set for user U2. "
            "User will need to re-authenticate to apply the new role."
        )
        assert identity.users[OTHER_AGENT_UID].custom_claims == {"role": "admin"}
        assert identity.revoked == [OTHER_AGENT_UID]
        assert database["user_profiles"].documents[OTHER_AGENT_UID]["role"] == "admin"

        # A refreshed token carries the new claim
        refreshed = tokens.make(OTHER_AGENT_UID, role=identity.users[OTHER_AGENT_UID].custom_claims["role"])
        response = await client.get(USERS_URL, headers={"Authorization": f"Bearer {refreshed}"})
        assert response.status_code == status.HTTP_200_OK

    async def test_invalid_role(self, client: AsyncClient, admin_headers):
        response = await client.post(ROLE_URL, json={"uid": OTHER_AGENT_UID, "role": "superuser"}, headers=admin_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_missing_uid(self, client: AsyncClient, admin_headers):
        response = await client.post(ROLE_URL, json={"role": "admin"}, headers=admin_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_unknown_user(self, client: AsyncClient, admin_headers, identity):
        response = await client.post(ROLE_URL, json={"uid": "NOBODY", "role": "admin"}, headers=admin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert identity.revoked == []


@pytest.mark.asyncio
class TestProfiles:
    """Current user and profile endpoints"""

    async def test_me_without_profile(self, client: AsyncClient, agent_headers):
        response = await client.get(f"{USERS_URL}/me", headers=agent_headers)
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["uid"] == AGENT_UID
        assert data["role"] == "udyamMitra"
        assert data["profile"] is None

    async def test_update_own_profile(self, client: AsyncClient, agent_headers):
        response = await client.put(
            f"{USERS_URL}/me/profile", json={"udyamMitraId": " UM-001 ", "displayName": "Agent One"}, headers=agent_headers
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["udyamMitraId"] == "UM-001"
        assert data["displayName"] == "Agent One"
        assert data["email"] == "u1@udyam.test"
        assert data["role"] == "udyamMitra"

        response = await client.get(f"{USERS_URL}/me", headers=agent_headers)
        assert response.json()["profile"]["udyamMitraId"] == "UM-001"

    async def test_blank_agent_id_rejected(self, client: AsyncClient, agent_headers):
        response = await client.put(f"{USERS_URL}/me/profile", json={"udyamMitraId": "   "}, headers=agent_headers)
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    async def test_admin_updates_any_profile(self, client: AsyncClient, admin_headers):
        response = await client.put(
            f"{USERS_URL}/{OTHER_AGENT_UID}/profile", json={"udyamMitraId": "UM-002"}, headers=admin_headers
        )
        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["uid"] == OTHER_AGENT_UID
        assert data["udyamMitraId"] == "UM-002"
        assert data["displayName"] == "Agent Two"

    async def test_agent_cannot_update_other_profile(self, client: AsyncClient, agent_headers):
        response = await client.put(
            f"{USERS_URL}/{OTHER_AGENT_UID}/profile", json={"udyamMitraId": "UM-002"}, headers=agent_headers
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN

    async def test_update_unknown_user_profile(self, client: AsyncClient, admin_headers):
        response = await client.put(f"{USERS_URL}/NOBODY/profile", json={"udyamMitraId": "X"}, headers=admin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.asyncio
class TestRoot:
    async def test_root_and_health(self, client: AsyncClient):
        response = await client.get("/")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "active"

        response = await client.get("/health")
        assert response.json() == {"status": "healthy", "environment": "test"}
