# glo_cloud/routers/activity.py

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List
from ..dependencies import get_db, get_current_user
from ..models.database import User, File, Activity
from ..models.schemas import ActivityResponse

router = APIRouter(prefix="/api/activities", tags=["activity"])

RECENT_LIMIT = 10


@router.get("", response_model=List[ActivityResponse])
async def get_activities(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's most recent activity"""
    result = await db.execute(
        select(Activity, File.original_name)
        .outerjoin(File, File.id == Activity.file_id)
        .filter(Activity.user_id == current_user.id)
        .order_by(Activity.created_at.desc())
        .limit(RECENT_LIMIT)
    )

    return [
        ActivityResponse(
            id=str(activity.id),
            action=activity.action,
            details=activity.details,
            ip_address=activity.ip_address,
            file={"name": file_name} if file_name else None,
            created_at=activity.created_at,
        )
        for activity, file_name in result.all()
    ]
