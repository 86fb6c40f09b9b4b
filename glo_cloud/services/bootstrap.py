# glo_cloud/services/bootstrap.py
"""First-run setup: super admin account and default branding"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from ..config import settings
from ..logging_config import get_logger
from ..models.database import User, Role, CompanySettings, SystemSettings
from .auth import auth_service
from .company import get_or_create_company_settings
from .policy import get_system_settings

logger = get_logger(__name__)


async def ensure_super_admin(db: AsyncSession) -> Optional[User]:
    result = await db.execute(select(User).filter(User.role == Role.SUPER_ADMIN.value).limit(1))
    existing = result.scalar_one_or_none()
    if existing:
        logger.info("Super admin already exists")
        return existing

    if not settings.SUPER_ADMIN_EMAIL or not settings.SUPER_ADMIN_PASSWORD:
        logger.warning("Super admin credentials not found in environment variables")
        return None

    admin = User(
        email=settings.SUPER_ADMIN_EMAIL.strip().lower(),
        name=settings.SUPER_ADMIN_NAME,
        password_hash=auth_service.get_password_hash(settings.SUPER_ADMIN_PASSWORD),
        role=Role.SUPER_ADMIN.value,
        is_active=True,
    )
    db.add(admin)
    await db.commit()
    logger.info("Super admin %s created", admin.email)
    return admin


async def ensure_default_company_settings(db: AsyncSession) -> CompanySettings:
    return await get_or_create_company_settings(db)


async def ensure_default_system_settings(db: AsyncSession) -> SystemSettings:
    return await get_system_settings(db)
