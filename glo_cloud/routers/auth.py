# glo_cloud/routers/auth.py
from datetime import timedelta
from fastapi import APIRouter, Depends, HTTPException, Form, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..dependencies import get_db, get_current_user, log_activity
from ..logging_config import get_logger
from ..services.auth import auth_service
from ..services.policy import get_system_settings
from ..models.database import User, Role, ActivityAction
from ..models.schemas import Token, UserCreate

router = APIRouter(prefix="/api/auth", tags=["authentication"])
logger = get_logger(__name__)


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    field = err.get("loc", ["input"])[-1]
    if field == "email":
        return "Please enter a valid email address"
    return str(err.get("msg", "Invalid input")).removeprefix("Value error, ")


@router.post("/register", status_code=201)
async def register(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    password: str = Form(""),
    db: AsyncSession = Depends(get_db),
):
    """Register a new user; accounts wait for admin approval unless auto-approve is on"""
    if not name or not email or not password:
        raise HTTPException(status_code=400, detail="Name, email, and password are required")

    try:
        data = UserCreate(name=name, email=email.strip().lower(), password=password)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_first_error(e))

    result = await db.execute(select(User).filter(User.email == data.email))
    if result.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="User with this email already exists")

    policy = await get_system_settings(db)

    user = User(
        name=data.name,
        email=data.email,
        password_hash=auth_service.get_password_hash(data.password),
        role=Role.EMPLOYEE.value,
        is_active=policy.auto_approve_users,
        is_external=False,
    )
    db.add(user)
    await db.commit()
    logger.info("User %s registered (active=%s)", user.email, user.is_active)

    await log_activity(
        db, user.id, ActivityAction.USER_INVITE,
        details="User registered and waiting for approval" if not user.is_active else "User registered",
        request=request,
    )

    message = (
        "Registration successful. You can sign in now."
        if user.is_active
        else "Registration successful. Please wait for admin approval."
    )
    return {"message": message, "user_id": str(user.id)}


@router.post("/login", response_model=Token)
async def login(
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    db: AsyncSession = Depends(get_db),
):
    """Login user"""
    user = await auth_service.authenticate(email, password, db)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is not active")

    await log_activity(
        db, user.id, ActivityAction.LOGIN,
        details="User logged in successfully", request=request,
    )

    policy = await get_system_settings(db)
    access_token = auth_service.token_for(user, timedelta(hours=policy.session_timeout_hours))

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": {
            "id": str(user.id),
            "email": user.email,
            "name": user.name,
            "role": user.role,
            "is_external": user.is_external,
        },
    }


@router.post("/logout")
async def logout(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Record the sign-out; tokens are stateless and simply dropped by the client"""
    await log_activity(db, current_user.id, ActivityAction.LOGOUT, details="User logged out", request=request)
    return {"message": "Logged out"}
