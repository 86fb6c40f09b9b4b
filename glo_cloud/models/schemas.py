# glo_cloud/models/schemas.py

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from uuid import UUID

from .database import SharePermission, PublicPermission, Role

MIN_PASSWORD_LENGTH = 6

# User Schemas
class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        return v

class UserSummary(BaseModel):
    id: str
    email: str
    name: str
    role: str
    is_external: bool = False

class Token(BaseModel):
    access_token: str
    token_type: str
    user: UserSummary

class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    department: Optional[str] = None
    title: Optional[str] = None
    employee_id: Optional[str] = None
    mobile: Optional[str] = None
    phone_ext: Optional[str] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = None

class UserAdminUpdate(BaseModel):
    is_active: Optional[bool] = None
    role: Optional[Role] = None

# File Schemas
class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[UUID] = None

class FileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    parent_id: Optional[UUID] = None
    move_to_root: bool = False

# Share Schemas
class ShareCreate(BaseModel):
    shared_with: UUID
    permission: SharePermission = SharePermission.VIEW

class PublicShareCreate(BaseModel):
    password: Optional[str] = None
    max_downloads: Optional[int] = Field(None, ge=1)
    expires_at: Optional[datetime] = None
    permission: PublicPermission = PublicPermission.DOWNLOAD

class SharePassword(BaseModel):
    password: Optional[str] = None

# Activity Schemas
class ActivityResponse(BaseModel):
    id: str
    action: str
    details: Optional[str]
    ip_address: Optional[str]
    file: Optional[Dict[str, Any]]
    created_at: datetime

# Admin Schemas
class SystemSettingsPayload(BaseModel):
    max_file_size_mb: int = Field(100, ge=1)
    allowed_file_types: str = ""
    email_notifications: bool = True
    auto_approve_users: bool = False
    max_storage_per_user_mb: int = Field(1000, ge=1)
    session_timeout_hours: int = Field(24, ge=1)

class AnalyticsResponse(BaseModel):
    total_users: int
    total_files: int
    total_shares: int
    total_public_shares: int
    storage_used: int
    recent_activities: List[Dict[str, Any]]
