# glo_cloud/routers/profile.py

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from email_validator import validate_email, EmailNotValidError
from typing import Optional
from ..dependencies import get_db, log_activity, get_current_user
from ..models.database import User, ActivityAction
from ..models.schemas import ProfileUpdate, MIN_PASSWORD_LENGTH
from ..services.auth import auth_service
from ..services.organization import is_valid_employee_id

router = APIRouter(prefix="/api/profile", tags=["profile"])

OPTIONAL_FIELDS = ("department", "title", "mobile", "phone_ext")


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def profile_to_dict(user: User) -> dict:
    return {
        "id": str(user.id),
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "employee_id": user.employee_id,
        "department": user.department,
        "title": user.title,
        "mobile": user.mobile,
        "phone_ext": user.phone_ext,
        "photo": user.photo,
        "is_external": user.is_external,
        "created_at": user.created_at,
    }


@router.get("")
async def get_profile(current_user: User = Depends(get_current_user)):
    return {"user": profile_to_dict(current_user)}


@router.put("")
async def update_profile(
    update: ProfileUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update the caller's own profile and, optionally, their password"""
    name = _clean(update.name)
    email = _clean(update.email)
    if not name or not email:
        raise HTTPException(status_code=400, detail="Name and email are required")

    try:
        email = validate_email(email, check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        raise HTTPException(status_code=400, detail="Please enter a valid email address")

    if email != current_user.email:
        result = await db.execute(select(User.id).filter(User.email == email, User.id != current_user.id))
        if result.first():
            raise HTTPException(status_code=400, detail="Email is already in use")

    employee_id = _clean(update.employee_id)
    if employee_id and not is_valid_employee_id(employee_id):
        raise HTTPException(
            status_code=400,
            detail="Employee ID may only contain letters, digits, dashes and underscores",
        )
    if employee_id and employee_id != current_user.employee_id:
        result = await db.execute(
            select(User.id).filter(User.employee_id == employee_id, User.id != current_user.id)
        )
        if result.first():
            raise HTTPException(status_code=400, detail="Employee ID is already in use")

    password_changed = False
    if update.new_password:
        if not update.current_password:
            raise HTTPException(status_code=400, detail="Current password is required")
        if not auth_service.verify_password(update.current_password, current_user.password_hash):
            raise HTTPException(status_code=400, detail="Current password is incorrect")
        if len(update.new_password) < MIN_PASSWORD_LENGTH:
            raise HTTPException(
                status_code=400,
                detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
            )
        current_user.password_hash = auth_service.get_password_hash(update.new_password)
        password_changed = True

    changes = []
    if name != current_user.name:
        changes.append("name")
        current_user.name = name
    if email != current_user.email:
        changes.append("email")
        current_user.email = email
    if employee_id != current_user.employee_id:
        changes.append("employee_id")
        current_user.employee_id = employee_id
    for field in OPTIONAL_FIELDS:
        value = _clean(getattr(update, field))
        if value != getattr(current_user, field):
            changes.append(field)
            setattr(current_user, field, value)

    await db.commit()

    if changes:
        await log_activity(
            db, current_user.id, ActivityAction.PROFILE_UPDATE,
            details=f"Updated profile: {', '.join(changes)}", request=request,
        )
    if password_changed:
        await log_activity(
            db, current_user.id, ActivityAction.PASSWORD_CHANGE,
            details="Password changed", request=request,
        )

    return {"user": profile_to_dict(current_user), "password_changed": password_changed}
