# glo_cloud/services/policy.py
"""Upload and account policy backed by the single system_settings row"""
from typing import List
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from ..models.database import SystemSettings
from .organization import split_extension

MB = 1024 * 1024


async def get_system_settings(db: AsyncSession) -> SystemSettings:
    """Return the settings row, creating it with defaults on first use.

    Startup creates the row, so concurrent requests never race on the insert.
    """
    result = await db.execute(select(SystemSettings).filter(SystemSettings.id == 1))
    row = result.scalar_one_or_none()
    if row is None:
        row = SystemSettings(
            id=1,
            max_file_size_mb=100,
            allowed_file_types="",
            email_notifications=True,
            auto_approve_users=False,
            max_storage_per_user_mb=1000,
            session_timeout_hours=24,
        )
        db.add(row)
        await db.commit()
    return row


def allowed_extensions(row: SystemSettings) -> List[str]:
    return [
        ext.strip().lower().lstrip(".")
        for ext in (row.allowed_file_types or "").split(",")
        if ext.strip()
    ]


def check_file_type(row: SystemSettings, filename: str):
    allowed = allowed_extensions(row)
    if not allowed:
        return
    _, ext = split_extension(filename)
    if ext.lower() not in allowed:
        raise HTTPException(status_code=400, detail=f"File type not allowed: {filename}")


def max_file_bytes(row: SystemSettings) -> int:
    return row.max_file_size_mb * MB


def check_quota(row: SystemSettings, used: int, incoming: int):
    if used + incoming > row.max_storage_per_user_mb * MB:
        raise HTTPException(status_code=413, detail="Storage quota exceeded")


def settings_to_dict(row: SystemSettings) -> dict:
    return {
        "max_file_size_mb": row.max_file_size_mb,
        "allowed_file_types": row.allowed_file_types,
        "email_notifications": row.email_notifications,
        "auto_approve_users": row.auto_approve_users,
        "max_storage_per_user_mb": row.max_storage_per_user_mb,
        "session_timeout_hours": row.session_timeout_hours,
    }
