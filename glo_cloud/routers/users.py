# glo_cloud/routers/users.py

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
import uuid
from ..dependencies import get_db, log_activity, get_current_user, require_admin, require_super_admin
from ..logging_config import get_logger
from ..models.database import User, File, FileShare, PublicShare, Activity, Role, ActivityAction
from ..models.schemas import UserAdminUpdate
from ..services import files as file_ops

router = APIRouter(prefix="/api/users", tags=["users"])
logger = get_logger(__name__)


def _admin_view(user: User) -> dict:
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "is_active": user.is_active,
        "is_external": user.is_external,
        "employee_id": user.employee_id,
        "department": user.department,
        "title": user.title,
        "mobile": user.mobile,
        "phone_ext": user.phone_ext,
        "created_at": user.created_at,
    }


@router.get("")
async def list_users(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Admins see everyone; other users get share targets only"""
    if current_user.is_admin:
        result = await db.execute(select(User).order_by(User.created_at.desc()))
        return {"users": [_admin_view(u) for u in result.scalars().all()]}

    result = await db.execute(
        select(User)
        .filter(User.is_active == True, User.id != current_user.id)  # noqa: E712
        .order_by(User.name.asc())
    )
    return {
        "users": [
            {"id": str(u.id), "email": u.email, "name": u.name}
            for u in result.scalars().all()
        ]
    }


@router.patch("/{user_id}")
async def update_user(
    user_id: uuid.UUID,
    update: UserAdminUpdate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Activate, deactivate or change the role of a user"""
    result = await db.execute(select(User).filter(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    is_super = current_user.role == Role.SUPER_ADMIN.value
    if not is_super and (
        user.role == Role.SUPER_ADMIN.value or update.role == Role.SUPER_ADMIN
    ):
        raise HTTPException(status_code=403, detail="Only a super admin can manage super admins")

    changes = []
    if update.is_active is not None and update.is_active != user.is_active:
        user.is_active = update.is_active
        changes.append("activated" if update.is_active else "deactivated")
    if update.role is not None and update.role.value != user.role:
        changes.append(f"role {user.role} -> {update.role.value}")
        user.role = update.role.value

    await db.commit()

    if changes:
        await log_activity(
            db, current_user.id, ActivityAction.USER_UPDATE,
            details=f"Updated {user.email}: {', '.join(changes)}", request=request,
        )
    return {"user": _admin_view(user)}


@router.delete("/{user_id}")
async def delete_user(
    user_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Remove a user together with their files, shares and history"""
    if user_id == current_user.id:
        raise HTTPException(status_code=400, detail="Cannot delete your own account")

    result = await db.execute(select(User).filter(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    email = user.email

    roots = await db.execute(
        select(File).filter(File.owner_id == user_id, File.parent_id == None)  # noqa: E711
    )
    removed = 0
    content_paths = []
    for root in roots.scalars().all():
        count, paths = await file_ops.delete_tree(db, root)
        removed += count
        content_paths.extend(paths)

    # items left behind under someone else's folder
    leftovers = await db.execute(select(File).filter(File.owner_id == user_id))
    for item in leftovers.scalars().all():
        count, paths = await file_ops.delete_tree(db, item)
        removed += count
        content_paths.extend(paths)

    await db.execute(delete(FileShare).where(FileShare.user_id == user_id))
    await db.execute(delete(PublicShare).where(PublicShare.created_by == user_id))
    await db.execute(delete(Activity).where(Activity.user_id == user_id))
    await db.execute(delete(User).where(User.id == user_id))
    await db.commit()
    file_ops.remove_content(content_paths)

    logger.info("Deleted user %s and %d file records", email, removed)
    await log_activity(
        db, current_user.id, ActivityAction.USER_DELETE,
        details=f"Deleted user {email}", request=request,
    )
    return {"message": "User deleted successfully", "files_removed": removed}
