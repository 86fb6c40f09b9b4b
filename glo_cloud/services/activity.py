# glo_cloud/services/activity.py
"""Activity logging service"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import Request
from ..models.database import Activity, ActivityAction
from ..utils.network import get_client_ip, get_user_agent

class ActivityService:
    """Handles activity logging"""

    @staticmethod
    async def log_activity(
        db: AsyncSession,
        user_id,
        action: ActivityAction,
        file_id=None,
        details: Optional[str] = None,
        request: Request = None,
    ) -> Activity:
        """Record one audit row and commit"""
        activity = Activity(
            user_id=user_id,
            file_id=file_id,
            action=action.value if isinstance(action, ActivityAction) else action,
            details=details,
            ip_address=get_client_ip(request) if request else None,
            user_agent=get_user_agent(request) if request else None,
        )
        db.add(activity)
        await db.commit()
        return activity

activity_service = ActivityService()
