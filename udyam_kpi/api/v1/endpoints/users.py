import logging
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from udyam_kpi.api.dependencies import get_current_claims, get_user_service, require_admin
from udyam_kpi.auth.token_verifier import TokenClaims
from udyam_kpi.models.enums import AuthAction
from udyam_kpi.schemas.user import (
    CurrentUserResponse,
    MessageResponse,
    UserListItem,
    UserProfileResponse,
    UserProfileUpdate,
    UserRoleUpdate,
)
from udyam_kpi.services.auth.user_service import UserService, to_profile_response

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("", response_model=List[UserListItem])
async def get_users(
    user_service: UserService = Depends(get_user_service),
    current_user: TokenClaims = Depends(require_admin(AuthAction.LIST_USERS))
):
    """Get all registered users with their agent IDs (admin only)"""
    try:
        logger.info(f"Admin user {current_user.email} is fetching users.")
        return await user_service.list_users()
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get users error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching users"
        )

@router.post("/role", response_model=MessageResponse)
async def set_user_role(
    role_update: UserRoleUpdate,
    user_service: UserService = Depends(get_user_service),
    current_user: TokenClaims = Depends(require_admin(AuthAction.SET_ROLE))
):
    """Set the role of a user (admin only)"""
    try:
        message = await user_service.set_role(current_user, role_update.uid, role_update.role)
        return MessageResponse(message=message)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Set user role error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error setting user role"
        )

@router.get("/me", response_model=CurrentUserResponse)
async def get_me(
    user_service: UserService = Depends(get_user_service),
    current_user: TokenClaims = Depends(get_current_claims)
):
    """Get current user claims and profile"""
    try:
        return await user_service.get_current_user(current_user)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Get current user error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get current user"
        )

@router.put("/me/profile", response_model=UserProfileResponse)
async def update_my_profile(
    profile_update: UserProfileUpdate,
    user_service: UserService = Depends(get_user_service),
    current_user: TokenClaims = Depends(get_current_claims)
):
    """Update own profile (agent ID, display name)"""
    try:
        profile = await user_service.update_own_profile(current_user, profile_update)
        return to_profile_response(profile)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update profile error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update profile"
        )

@router.put("/{uid}/profile", response_model=UserProfileResponse)
async def update_user_profile(
    uid: str,
    profile_update: UserProfileUpdate,
    user_service: UserService = Depends(get_user_service),
    current_user: TokenClaims = Depends(require_admin(AuthAction.EDIT_ANY_PROFILE))
):
    """Update any user's profile (admin only)"""
    try:
        profile = await user_service.update_profile(uid, profile_update)
        return to_profile_response(profile)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Update user profile error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update user profile"
        )
