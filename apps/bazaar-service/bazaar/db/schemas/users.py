from datetime import datetime
from typing import List, Optional
from pydantic import field_validator

from .ads import Ad
from .common import ApiModel, Pagination


class UserBase(ApiModel):
    email: str
    full_name: str
    phone: Optional[str] = None


class UserCreate(UserBase):
    password: str

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, v: str) -> str:
        cleaned = (v or "").strip().lower()
        if "@" not in cleaned:
            raise ValueError("Invalid email address")
        return cleaned


class LoginRequest(ApiModel):
    email: str
    password: str


class User(UserBase):
    id: int
    role: str
    is_active: bool
    is_suspended: bool = False
    individual_verified: bool = False
    individual_verification_expires_at: Optional[datetime] = None
    verified_seller_name: Optional[str] = None
    business_name: Optional[str] = None
    business_verification_status: Optional[str] = None
    business_verification_expires_at: Optional[datetime] = None
    shop_slug: Optional[str] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime


class AuthResponse(ApiModel):
    token: str
    expires_at: Optional[datetime] = None
    user: User


class EditorCreate(ApiModel):
    email: str
    password: str
    full_name: str
    role: str = "editor"


class EditorUpdate(ApiModel):
    is_active: Optional[bool] = None
    role: Optional[str] = None


class ProfileUpdate(ApiModel):
    full_name: Optional[str] = None
    bio: Optional[str] = None
    location_id: Optional[int] = None


class Profile(User):
    bio: Optional[str] = None
    location_id: Optional[int] = None
    location_name: Optional[str] = None


class PublicProfile(ApiModel):
    id: int
    full_name: str
    bio: Optional[str] = None
    location_name: Optional[str] = None
    individual_verified: bool = False
    verified_seller_name: Optional[str] = None
    business_name: Optional[str] = None
    business_verification_status: Optional[str] = None
    shop_slug: Optional[str] = None
    created_at: datetime
    ads_count: int = 0


class ShopProfile(ApiModel):
    seller: PublicProfile
    ads: List[Ad]


class UserSuspendRequest(ApiModel):
    reason: str
    duration: Optional[int] = None


class ManagedUser(User):
    suspended_until: Optional[datetime] = None
    suspension_reason: Optional[str] = None
    suspended_at: Optional[datetime] = None
    suspended_by: Optional[int] = None
    ad_count: int = 0


class UserList(ApiModel):
    users: List[ManagedUser]
    pagination: Pagination
