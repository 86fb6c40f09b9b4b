# glo_cloud/routers/shares.py

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from datetime import timezone
import uuid
from ..dependencies import get_db, log_activity, get_current_user
from ..logging_config import get_logger
from ..models.database import User, FileShare, PublicShare, ActivityAction
from ..models.schemas import ShareCreate, PublicShareCreate
from ..monitoring.metrics import shares_created
from ..services import files as file_ops
from ..services import sharing

router = APIRouter(prefix="/api/files", tags=["sharing"])
logger = get_logger(__name__)


@router.post("/{file_id}/share")
async def share_file(
    file_id: uuid.UUID,
    share_data: ShareCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Share a file with another user; re-sharing updates the permission"""
    file_obj = await file_ops.get_file_or_404(db, file_id)
    file_ops.ensure_can_manage(current_user, file_obj)

    if share_data.shared_with == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot share with yourself")

    result = await db.execute(select(User).filter(User.id == share_data.shared_with))
    target = result.scalar_one_or_none()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")

    share = await file_ops.get_share_for(db, file_obj.id, target.id)
    if share:
        share.permission = share_data.permission.value
    else:
        share = FileShare(
            file_id=file_obj.id,
            user_id=target.id,
            permission=share_data.permission.value,
        )
        db.add(share)
        shares_created.labels(kind="internal").inc()
    await db.commit()

    await log_activity(
        db, current_user.id, ActivityAction.FILE_SHARE, file_obj.id,
        f"Shared {file_obj.original_name} with {target.email} ({share.permission})", request,
    )
    return {
        "share": {
            "id": str(share.id),
            "file_id": str(file_obj.id),
            "user_id": str(target.id),
            "permission": share.permission,
        }
    }


@router.get("/{file_id}/shares")
async def list_file_shares(
    file_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    file_obj = await file_ops.get_file_or_404(db, file_id)
    file_ops.ensure_can_manage(current_user, file_obj)

    result = await db.execute(
        select(FileShare, User)
        .join(User, User.id == FileShare.user_id)
        .filter(FileShare.file_id == file_obj.id)
        .order_by(FileShare.created_at.desc())
    )
    return [
        {
            "id": str(share.id),
            "permission": share.permission,
            "created_at": share.created_at,
            "user": {"id": str(user.id), "name": user.name, "email": user.email},
        }
        for share, user in result.all()
    ]


@router.delete("/{file_id}/share/{user_id}")
async def revoke_share(
    file_id: uuid.UUID,
    user_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    file_obj = await file_ops.get_file_or_404(db, file_id)
    file_ops.ensure_can_manage(current_user, file_obj)

    share = await file_ops.get_share_for(db, file_obj.id, user_id)
    if not share:
        raise HTTPException(status_code=404, detail="Share not found")

    await db.delete(share)
    await db.commit()

    await log_activity(
        db, current_user.id, ActivityAction.FILE_SHARE, file_obj.id,
        f"Revoked access to {file_obj.original_name}", request,
    )
    return {"message": "Share removed"}


@router.post("/{file_id}/public-share", status_code=201)
async def create_public_share(
    file_id: uuid.UUID,
    share_data: PublicShareCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a tokenized link usable without an account"""
    file_obj = await file_ops.get_file_or_404(db, file_id)
    file_ops.ensure_can_manage(current_user, file_obj)

    expires_at = share_data.expires_at
    if expires_at is not None and expires_at.tzinfo is not None:
        # stored naive UTC like every other timestamp
        expires_at = expires_at.astimezone(timezone.utc).replace(tzinfo=None)

    share = PublicShare(
        file_id=file_obj.id,
        token=sharing.generate_token(),
        password=sharing.hash_share_password(share_data.password),
        permission=share_data.permission.value,
        max_downloads=share_data.max_downloads,
        expires_at=expires_at,
        created_by=current_user.id,
    )
    db.add(share)
    await db.commit()
    shares_created.labels(kind="public").inc()
    logger.info("Public link created for file %s by %s", file_obj.id, current_user.email)

    await log_activity(
        db, current_user.id, ActivityAction.FILE_SHARE, file_obj.id,
        f"Created public link for {file_obj.original_name}", request,
    )
    return {"share": sharing.share_to_dict(share)}


@router.get("/{file_id}/public-share")
async def list_public_shares(
    file_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    file_obj = await file_ops.get_file_or_404(db, file_id)
    file_ops.ensure_can_manage(current_user, file_obj)

    result = await db.execute(
        select(PublicShare)
        .filter(PublicShare.file_id == file_obj.id, PublicShare.is_active == True)  # noqa: E712
        .order_by(PublicShare.created_at.desc())
    )
    return {"shares": [sharing.share_to_dict(s) for s in result.scalars().all()]}


@router.delete("/{file_id}/public-share")
async def delete_public_share(
    file_id: uuid.UUID,
    request: Request,
    share_id: Optional[uuid.UUID] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if share_id is None:
        raise HTTPException(status_code=400, detail="Share ID required")

    result = await db.execute(
        select(PublicShare).filter(PublicShare.id == share_id, PublicShare.file_id == file_id)
    )
    share = result.scalar_one_or_none()
    if not share:
        raise HTTPException(status_code=404, detail="Share not found")

    file_obj = await file_ops.get_file_or_404(db, file_id)
    if share.created_by != current_user.id:
        file_ops.ensure_can_manage(current_user, file_obj)

    await db.delete(share)
    await db.commit()

    await log_activity(
        db, current_user.id, ActivityAction.FILE_SHARE, file_obj.id,
        f"Removed public link for {file_obj.original_name}", request,
    )
    return {"message": "Public share removed"}
