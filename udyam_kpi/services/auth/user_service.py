import logging
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pymongo.errors import PyMongoError
from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.core.config import Settings
from udyam_kpi.core.database import Collections
from udyam_kpi.core.exceptions import UpstreamError
from udyam_kpi.models.enums import DEFAULT_ROLE, UserRole
from udyam_kpi.schemas.user import (
    PROFILE_NOT_AVAILABLE,
    CurrentUserResponse,
    UserListItem,
    UserProfileResponse,
    UserProfileUpdate,
)

logger = logging.getLogger(__name__)

def to_profile_response(document: Dict[str, Any]) -> UserProfileResponse:
    return UserProfileResponse(**{key: value for key, value in document.items() if key != "_id"})

class UserService:
    def __init__(self, collections: Collections, identity, settings: Settings):
        self.profiles = collections.user_profiles
        self.identity = identity
        self.batch_size = settings.USER_LIST_BATCH_SIZE

    async def list_users(self) -> List[UserListItem]:
        """All registered identities joined with their profile agent ID"""
        identities = await self.identity.list_users(max_results=self.batch_size)

        seen = set()
        unique_identities = []
        for identity_user in identities:
            if identity_user.uid in seen:
                continue
            seen.add(identity_user.uid)
            unique_identities.append(identity_user)
        uids = [identity_user.uid for identity_user in unique_identities]

        try:
            profiles = await self.profiles.find({"_id": {"$in": uids}}).to_list(length=None)
        except PyMongoError as e:
            logger.error(f"Error fetching user profiles: {str(e)}")
            raise UpstreamError("Error fetching users")
        profile_map = {profile["_id"]: profile for profile in profiles}

        users = []
        for identity_user in unique_identities:
            profile = profile_map.get(identity_user.uid) or {}
            users.append(UserListItem(
                uid=identity_user.uid,
                email=identity_user.email,
                displayName=identity_user.display_name,
                role=identity_user.custom_claims.get("role") or DEFAULT_ROLE.value,
                udyamMitraId=profile.get("udyamMitraId") or PROFILE_NOT_AVAILABLE,
            ))
        logger.info(f"Listed {len(users)} users")
        return users

    async def set_role(self, claims: TokenClaims, uid: str, role: str) -> str:
        """Set the role claim of a user and revoke their sessions"""
        role = UserRole(role).value
        identity_user = await self.identity.get_user(uid)

        custom_claims = {**identity_user.custom_claims, "role": role}
        await self.identity.set_custom_claims(uid, custom_claims)
        # Without revocation the old role lives on until the token expires
        await self.identity.revoke_sessions(uid)
        logger.info(f"Admin {claims.email} set custom claim 'role:{role}' for user {uid}. Tokens revoked.")

        await self._save_profile(
            uid,
            {"role": role},
            email=identity_user.email,
            display_name=identity_user.display_name,
        )
        return (
            f"Custom claim 'role:{role}' set for user {uid}. "
            "User will need to re-authenticate to apply the new role."
        )

    async def get_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.profiles.find_one({"_id": uid})
        except PyMongoError as e:
            logger.error(f"Error getting profile {uid}: {str(e)}")
            raise UpstreamError("Error fetching user profile")

    async def get_current_user(self, claims: TokenClaims) -> CurrentUserResponse:
        profile = await self.get_profile(claims.uid)
        return CurrentUserResponse(
            uid=claims.uid,
            email=claims.email,
            role=claims.role,
            profile=to_profile_response(profile) if profile else None,
        )

    async def update_own_profile(self, claims: TokenClaims, profile_update: UserProfileUpdate) -> Dict[str, Any]:
        changes = profile_update.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        return await self._save_profile(
            claims.uid,
            changes,
            email=claims.email,
            display_name=claims.name,
            role=claims.role,
        )

    async def update_profile(self, uid: str, profile_update: UserProfileUpdate) -> Dict[str, Any]:
        """Admin edit of any profile; the user must exist in the identity provider"""
        identity_user = await self.identity.get_user(uid)
        changes = profile_update.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
        return await self._save_profile(
            uid,
            changes,
            email=identity_user.email,
            display_name=identity_user.display_name,
            role=identity_user.custom_claims.get("role") or DEFAULT_ROLE.value,
        )

    async def _save_profile(
        self,
        uid: str,
        changes: Dict[str, Any],
        email: Optional[str] = None,
        display_name: Optional[str] = None,
        role: Optional[str] = None,
    ) -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        defaults = {"uid": uid, "email": email, "createdAt": now}
        if "displayName" not in changes:
            defaults["displayName"] = display_name
        if "role" not in changes:
            defaults["role"] = role or DEFAULT_ROLE.value
        if "udyamMitraId" not in changes:
            defaults["udyamMitraId"] = None
        try:
            await self.profiles.update_one(
                {"_id": uid},
                {"$set": {**changes, "updatedAt": now}, "$setOnInsert": defaults},
                upsert=True,
            )
            profile = await self.profiles.find_one({"_id": uid})
        except PyMongoError as e:
            logger.error(f"Error saving profile {uid}: {str(e)}")
            raise UpstreamError("Error saving user profile")
        logger.info(f"Profile saved for {uid}: {sorted(changes)}")
        return profile
