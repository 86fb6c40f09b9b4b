# glo_cloud/routers/admin.py

from fastapi import APIRouter, Depends, HTTPException, Request, UploadFile, File as FileParam, Form
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional
from ..dependencies import get_db, log_activity, require_admin, require_super_admin
from ..logging_config import get_logger
from ..models.database import User, File, FileShare, PublicShare, Activity, ActivityAction
from ..models.schemas import AnalyticsResponse, SystemSettingsPayload
from ..monitoring.metrics import storage_used_bytes
from ..services import company as company_service
from ..services import policy
from ..services.storage import storage_service
from ..config import settings

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = get_logger(__name__)


async def _count(db: AsyncSession, column) -> int:
    result = await db.execute(select(func.count(column)))
    return int(result.scalar() or 0)


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Totals across the whole installation plus the latest activity"""
    total_users = await _count(db, User.id)
    total_files = await _count(db, File.id)
    total_shares = await _count(db, FileShare.id)
    total_public_shares = await _count(db, PublicShare.id)

    size_result = await db.execute(select(func.coalesce(func.sum(File.size), 0)))
    storage_used = int(size_result.scalar() or 0)
    storage_used_bytes.set(storage_used)

    result = await db.execute(
        select(Activity, User.name, User.email, File.original_name)
        .join(User, User.id == Activity.user_id)
        .outerjoin(File, File.id == Activity.file_id)
        .order_by(Activity.created_at.desc())
        .limit(10)
    )
    recent = [
        {
            "id": str(activity.id),
            "action": activity.action,
            "details": activity.details,
            "created_at": activity.created_at.isoformat() if activity.created_at else None,
            "user": {"name": name, "email": email},
            "file": {"name": file_name} if file_name else None,
        }
        for activity, name, email, file_name in result.all()
    ]

    return AnalyticsResponse(
        total_users=total_users,
        total_files=total_files,
        total_shares=total_shares,
        total_public_shares=total_public_shares,
        storage_used=storage_used,
        recent_activities=recent,
    )


@router.get("/settings")
async def get_settings(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await policy.get_system_settings(db)
    return {"settings": policy.settings_to_dict(row)}


@router.put("/settings")
async def update_settings(
    payload: SystemSettingsPayload,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await policy.get_system_settings(db)
    for field, value in payload.model_dump().items():
        setattr(row, field, value.strip() if isinstance(value, str) else value)
    await db.commit()

    await log_activity(
        db, current_user.id, ActivityAction.SETTINGS_UPDATE,
        details="Updated system settings", request=request,
    )
    return {"settings": policy.settings_to_dict(row)}


@router.post("/files/resync-sizes")
async def resync_file_sizes(
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Correct recorded sizes from what is actually on disk"""
    result = await db.execute(select(File).filter(File.is_folder == False))  # noqa: E712
    checked = updated = missing = 0
    for file_obj in result.scalars().all():
        checked += 1
        actual = storage_service.size_on_disk(file_obj.path)
        if actual is None:
            missing += 1
            continue
        if actual != file_obj.size:
            logger.info("Size of %s corrected from %s to %s", file_obj.path, file_obj.size, actual)
            file_obj.size = actual
            updated += 1
    await db.commit()
    return {"checked": checked, "updated": updated, "missing": missing}


@router.get("/company")
async def get_company(
    current_user: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    row = await company_service.get_or_create_company_settings(db)
    return {"company": company_service.company_to_dict(row)}


@router.post("/company")
async def update_company(
    request: Request,
    company_name: str = Form(""),
    primary_color: str = Form(""),
    secondary_color: str = Form(""),
    contact_email: str = Form(""),
    contact_phone: str = Form(""),
    address: str = Form(""),
    website: str = Form(""),
    description: str = Form(""),
    logo: Optional[UploadFile] = FileParam(None),
    current_user: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Update branding; blank fields fall back to the defaults"""
    row = await company_service.get_or_create_company_settings(db)

    if logo is not None and logo.filename:
        ext = logo.filename.rsplit(".", 1)[-1].lower() if "." in logo.filename else ""
        if ext not in company_service.LOGO_CONTENT_TYPES:
            raise HTTPException(status_code=400, detail="Unsupported logo format")
        row.company_logo = await company_service.save_logo(logo)

    row.company_name = company_name.strip() or settings.DEFAULT_COMPANY_NAME
    row.primary_color = primary_color.strip() or settings.DEFAULT_PRIMARY_COLOR
    row.secondary_color = secondary_color.strip() or settings.DEFAULT_SECONDARY_COLOR
    row.contact_email = contact_email.strip() or None
    row.contact_phone = contact_phone.strip() or None
    row.address = address.strip() or None
    row.website = website.strip() or None
    row.description = description.strip() or None
    row.is_configured = True
    await db.commit()
    await company_service.invalidate_public_company_info()

    await log_activity(
        db, current_user.id, ActivityAction.SETTINGS_UPDATE,
        details=f"Updated company settings: {row.company_name}", request=request,
    )
    return {"company": company_service.company_to_dict(row)}
