# glo_cloud/services/company.py
"""Company branding: settings row, logo storage and the public summary"""
import os
import uuid
from typing import Optional
import aiofiles
from fastapi import UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from ..config import settings
from ..models.database import CompanySettings
from ..utils.cache import cached, invalidate

PUBLIC_COMPANY_CACHE_KEY = "company:public"

LOGO_CONTENT_TYPES = {
    "ico": "image/x-icon",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "svg": "image/svg+xml",
    "gif": "image/gif",
}


def default_company_settings() -> CompanySettings:
    return CompanySettings(
        company_name=settings.DEFAULT_COMPANY_NAME,
        primary_color=settings.DEFAULT_PRIMARY_COLOR,
        secondary_color=settings.DEFAULT_SECONDARY_COLOR,
        is_configured=False,
    )


async def get_company_settings(db: AsyncSession) -> Optional[CompanySettings]:
    result = await db.execute(select(CompanySettings).order_by(CompanySettings.created_at).limit(1))
    return result.scalar_one_or_none()


async def get_or_create_company_settings(db: AsyncSession) -> CompanySettings:
    row = await get_company_settings(db)
    if row is None:
        row = default_company_settings()
        db.add(row)
        await db.commit()
    return row


async def save_logo(upload: UploadFile) -> str:
    """Store the logo under BRANDING_DIR; returns its public path /company/<name>"""
    ext = (upload.filename or "").rsplit(".", 1)[-1].lower() if "." in (upload.filename or "") else "png"
    filename = f"logo-{uuid.uuid4()}.{ext}"
    os.makedirs(settings.BRANDING_DIR, exist_ok=True)
    async with aiofiles.open(os.path.join(settings.BRANDING_DIR, filename), "wb") as f:
        await f.write(await upload.read())
    return f"/company/{filename}"


def logo_file_path(company_logo: str) -> str:
    return os.path.join(settings.BRANDING_DIR, os.path.basename(company_logo))


def logo_content_type(company_logo: str) -> str:
    ext = company_logo.rsplit(".", 1)[-1].lower() if "." in company_logo else ""
    return LOGO_CONTENT_TYPES.get(ext, "image/png")


def company_to_dict(row: CompanySettings) -> dict:
    return {
        "id": str(row.id),
        "company_name": row.company_name,
        "company_logo": row.company_logo,
        "primary_color": row.primary_color,
        "secondary_color": row.secondary_color,
        "contact_email": row.contact_email,
        "contact_phone": row.contact_phone,
        "address": row.address,
        "website": row.website,
        "description": row.description,
        "is_configured": row.is_configured,
        "updated_at": row.updated_at,
    }


@cached(PUBLIC_COMPANY_CACHE_KEY)
async def public_company_info(db: AsyncSession) -> dict:
    row = await get_or_create_company_settings(db)
    return {"company_name": row.company_name, "company_logo": row.company_logo}


async def invalidate_public_company_info():
    await invalidate(PUBLIC_COMPANY_CACHE_KEY)
