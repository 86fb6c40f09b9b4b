# glo_cloud/models/database.py

from sqlalchemy import (
    Column, String, Integer, DateTime, Boolean,
    ForeignKey, BigInteger, Text, UniqueConstraint, Uuid
)
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone
import enum
import uuid

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Role(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    EMPLOYEE = "EMPLOYEE"

ADMIN_ROLES = (Role.SUPER_ADMIN.value, Role.ADMIN.value)


class SharePermission(str, enum.Enum):
    VIEW = "VIEW"
    EDIT = "EDIT"
    FULL_ACCESS = "FULL_ACCESS"

# Internal shares that also allow downloading the content
DOWNLOAD_PERMISSIONS = (SharePermission.EDIT.value, SharePermission.FULL_ACCESS.value)


class PublicPermission(str, enum.Enum):
    VIEW = "VIEW"
    DOWNLOAD = "DOWNLOAD"


class ActivityAction(str, enum.Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    FILE_UPLOAD = "FILE_UPLOAD"
    FILE_DOWNLOAD = "FILE_DOWNLOAD"
    FILE_VIEW = "FILE_VIEW"
    FILE_DELETE = "FILE_DELETE"
    FILE_SHARE = "FILE_SHARE"
    FILE_EDIT = "FILE_EDIT"
    FOLDER_CREATE = "FOLDER_CREATE"
    USER_INVITE = "USER_INVITE"
    USER_UPDATE = "USER_UPDATE"
    USER_DELETE = "USER_DELETE"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    PROFILE_UPDATE = "PROFILE_UPDATE"
    SETTINGS_UPDATE = "SETTINGS_UPDATE"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default=Role.EMPLOYEE.value, nullable=False, index=True)
    is_active = Column(Boolean, default=False, nullable=False)
    is_external = Column(Boolean, default=False, nullable=False)
    employee_id = Column(String(50), unique=True, nullable=True)
    department = Column(String(255))
    title = Column(String(255))
    mobile = Column(String(50))
    phone_ext = Column(String(20))
    photo = Column(String(500))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


class File(Base):
    """A stored file or a folder; folders have is_folder set and size 0."""
    __tablename__ = "files"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    mime_type = Column(String(255), nullable=False, default="application/octet-stream")
    path = Column(String(1000), nullable=False)
    upload_path = Column(String(500))
    is_folder = Column(Boolean, default=False, nullable=False)
    parent_id = Column(Uuid(as_uuid=True), ForeignKey("files.id"), nullable=True, index=True)
    owner_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class FileShare(Base):
    __tablename__ = "file_shares"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    file_id = Column(Uuid(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    permission = Column(String(20), default=SharePermission.VIEW.value, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('file_id', 'user_id', name='unique_file_user'),
    )


class PublicShare(Base):
    __tablename__ = "public_shares"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    file_id = Column(Uuid(as_uuid=True), ForeignKey("files.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), unique=True, nullable=False)
    password = Column(String(255), nullable=True)  # bcrypt hash; legacy rows may hold plain text
    permission = Column(String(20), default=PublicPermission.DOWNLOAD.value, nullable=False)
    max_downloads = Column(Integer, nullable=True)
    downloads = Column(Integer, default=0, nullable=False)
    access_count = Column(Integer, default=0, nullable=False)
    last_accessed = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow)


class Activity(Base):
    __tablename__ = "activities"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    file_id = Column(Uuid(as_uuid=True), ForeignKey("files.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False, index=True)
    details = Column(Text)
    ip_address = Column(String(45))
    user_agent = Column(Text)
    created_at = Column(DateTime, default=utcnow, index=True)


class CompanySettings(Base):
    __tablename__ = "company_settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_name = Column(String(255), nullable=False)
    company_logo = Column(String(500))
    primary_color = Column(String(20))
    secondary_color = Column(String(20))
    contact_email = Column(String(255))
    contact_phone = Column(String(50))
    address = Column(Text)
    website = Column(String(255))
    description = Column(Text)
    is_configured = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class SystemSettings(Base):
    """Single-row upload and account policy edited from the admin panel."""
    __tablename__ = "system_settings"

    id = Column(Integer, primary_key=True, default=1)
    max_file_size_mb = Column(Integer, default=100, nullable=False)
    allowed_file_types = Column(Text, default="", nullable=False)
    email_notifications = Column(Boolean, default=True, nullable=False)
    auto_approve_users = Column(Boolean, default=False, nullable=False)
    max_storage_per_user_mb = Column(Integer, default=1000, nullable=False)
    session_timeout_hours = Column(Integer, default=24, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
