from typing import Optional
from pydantic import BaseModel, Field, validator
from datetime import datetime

from udyam_kpi.models.enums import UserRole

PROFILE_NOT_AVAILABLE = "N/A"

class MessageResponse(BaseModel):
    message: str

class UserRoleUpdate(BaseModel):
    uid: str = Field(..., min_length=1)
    role: UserRole

    class Config:
        use_enum_values = True

class UserListItem(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    role: str
    udyam_mitra_id: str = Field(PROFILE_NOT_AVAILABLE, alias="udyamMitraId")

    class Config:
        populate_by_name = True

class UserProfileUpdate(BaseModel):
    udyam_mitra_id: Optional[str] = Field(None, alias="udyamMitraId")
    display_name: Optional[str] = Field(None, alias="displayName")

    @validator("udyam_mitra_id")
    def udyam_mitra_id_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("udyamMitraId must not be blank")
        return v.strip() if v else v

    class Config:
        populate_by_name = True

class UserProfileResponse(BaseModel):
    uid: str
    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    role: Optional[str] = None
    udyam_mitra_id: Optional[str] = Field(None, alias="udyamMitraId")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    class Config:
        populate_by_name = True

class CurrentUserResponse(BaseModel):
    uid: str
    email: Optional[str] = None
    role: str
    profile: Optional[UserProfileResponse] = None
