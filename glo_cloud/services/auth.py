# glo_cloud/services/auth.py
from datetime import timedelta
from typing import Optional
import uuid
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from ..config import settings
from ..models.database import User, utcnow

# Password hashing
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

class AuthService:
    """Handles authentication and authorization"""

    async def get_user_from_token(self, token: str, db: AsyncSession) -> Optional[User]:
        """Verify token and return the matching user, or None"""
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
            user_id = uuid.UUID(payload.get("sub") or "")
        except (JWTError, ValueError):
            return None

        result = await db.execute(select(User).filter(User.id == user_id))
        return result.scalar_one_or_none()

    async def authenticate(self, email: str, password: str, db: AsyncSession) -> Optional[User]:
        """Return the user when the credentials match"""
        result = await db.execute(select(User).filter(User.email == email.strip().lower()))
        user = result.scalar_one_or_none()
        if not user or not self.verify_password(password, user.password_hash):
            return None
        return user

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            # not a recognised hash
            return False

    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
        to_encode = data.copy()
        if expires_delta:
            expire = utcnow() + expires_delta
        else:
            expire = utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        to_encode.update({"exp": expire})
        encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
        return encoded_jwt

    def token_for(self, user: User, expires_delta: Optional[timedelta] = None) -> str:
        return self.create_access_token(
            {"sub": str(user.id), "email": user.email, "role": user.role},
            expires_delta,
        )


auth_service = AuthService()
