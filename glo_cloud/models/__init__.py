# glo_cloud/models/__init__.py
"""Database models and schemas"""
from .database import (
    Base, User, File, FileShare, PublicShare, Activity, CompanySettings, SystemSettings,
    Role, SharePermission, PublicPermission, ActivityAction,
)
__all__ = [
    "Base", "User", "File", "FileShare", "PublicShare", "Activity", "CompanySettings",
    "SystemSettings", "Role", "SharePermission", "PublicPermission", "ActivityAction",
]
