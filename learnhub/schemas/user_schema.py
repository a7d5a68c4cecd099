from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime

from learnhub.models.enums import UserRole

class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None
    role: UserRole = UserRole.STUDENT

# Used when creating the local user row after Firebase verified the token
class UserCreateInternal(UserBase):
    firebase_uid: str

class UserDisplay(UserBase):
    id: int
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# Identity decoded from a Firebase ID token
class TokenData(BaseModel):
    firebase_uid: str
    email: EmailStr
    name: Optional[str] = None

class UserRegisterRequest(BaseModel):
    firebase_id_token: str
    full_name: Optional[str] = Field(None, max_length=255)

class UserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, max_length=255)

class AdminRoleUpdate(BaseModel):
    role: UserRole

class AdminUserStatusUpdate(BaseModel):
    is_active: bool

class AuthResponse(BaseModel):
    message: str
    user: Optional[UserDisplay] = None
