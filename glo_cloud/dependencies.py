# glo_cloud/dependencies.py
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import Request, Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from .database import AsyncSessionLocal
from .models.database import User, Role, ActivityAction
from .services.auth import auth_service
from .services.activity import activity_service

# Security
security = HTTPBearer(auto_error=False)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with AsyncSessionLocal() as session:
        yield session

async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get the current authenticated user from JWT token"""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = await auth_service.get_user_from_token(credentials.credentials, db)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid token")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account deactivated")

    return user

async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """ADMIN or SUPER_ADMIN"""
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Forbidden")
    return current_user

async def require_super_admin(current_user: User = Depends(get_current_user)) -> User:
    if current_user.role != Role.SUPER_ADMIN.value:
        raise HTTPException(status_code=403, detail="Forbidden")
    return current_user

async def log_activity(
    db: AsyncSession,
    user_id,
    action: ActivityAction,
    file_id=None,
    details: str = None,
    request: Request = None,
):
    """Log user activity"""
    return await activity_service.log_activity(db, user_id, action, file_id, details, request)
