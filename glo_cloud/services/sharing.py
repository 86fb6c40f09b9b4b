# glo_cloud/services/sharing.py
"""Public share links: creation, lookup and the access checks every public
endpoint runs before touching the shared file.

The checks run in a fixed order:

1. the token must belong to an active share (404),
2. the share must not have expired (410),
3. the download limit must not be exhausted (429),
4. the password, when the share has one, must match (400 when missing,
   401 when wrong).
"""
import secrets
from datetime import datetime
from typing import Optional
from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from ..config import settings
from ..models.database import PublicShare, PublicPermission, File, User, utcnow
from .auth import pwd_context

TOKEN_BYTES = 32
BCRYPT_PREFIX = "$2"


def generate_token() -> str:
    """64 hex characters"""
    return secrets.token_hex(TOKEN_BYTES)


def share_url(token: str) -> str:
    return f"{settings.PUBLIC_BASE_URL}/share/{token}"


def hash_share_password(password: Optional[str]) -> Optional[str]:
    return pwd_context.hash(password) if password else None


def check_share_password(candidate: str, stored: str) -> bool:
    """bcrypt hashes are verified as such; older rows may hold plain text"""
    if stored.startswith(BCRYPT_PREFIX):
        try:
            return pwd_context.verify(candidate, stored)
        except ValueError:
            return False
    return secrets.compare_digest(candidate.encode(), stored.encode())


def is_expired(share: PublicShare, now: Optional[datetime] = None) -> bool:
    return share.expires_at is not None and share.expires_at < (now or utcnow())


def limit_reached(share: PublicShare) -> bool:
    return bool(share.max_downloads) and share.downloads >= share.max_downloads


async def resolve_share(db: AsyncSession, token: str) -> PublicShare:
    """Token lookup plus the expiry and download-limit checks"""
    result = await db.execute(
        select(PublicShare).filter(
            PublicShare.token == token,
            PublicShare.is_active == True,  # noqa: E712
        )
    )
    share = result.scalar_one_or_none()
    if not share:
        raise HTTPException(status_code=404, detail="Share link not found or expired")

    if is_expired(share):
        raise HTTPException(status_code=410, detail="Share link has expired")

    if limit_reached(share):
        raise HTTPException(status_code=429, detail="Download limit reached")

    return share


def verify_share_password(share: PublicShare, password: Optional[str]):
    if not share.password:
        return
    if not password:
        raise HTTPException(status_code=400, detail="Password required")
    if not check_share_password(password, share.password):
        raise HTTPException(status_code=401, detail="Invalid password")


def ensure_download_allowed(share: PublicShare):
    if share.permission == PublicPermission.VIEW.value:
        raise HTTPException(status_code=403, detail="Download not allowed")


async def load_shared_file(db: AsyncSession, share: PublicShare) -> File:
    result = await db.execute(select(File).filter(File.id == share.file_id))
    file_obj = result.scalar_one_or_none()
    if not file_obj:
        raise HTTPException(status_code=404, detail="Share link not found or expired")
    return file_obj


async def creator_name(db: AsyncSession, share: PublicShare) -> Optional[str]:
    result = await db.execute(select(User.name).filter(User.id == share.created_by))
    return result.scalar_one_or_none()


def share_to_dict(share: PublicShare) -> dict:
    return {
        "id": str(share.id),
        "token": share.token,
        "share_url": share_url(share.token),
        "has_password": bool(share.password),
        "permission": share.permission,
        "downloads": share.downloads,
        "max_downloads": share.max_downloads,
        "access_count": share.access_count,
        "expires_at": share.expires_at,
        "created_at": share.created_at,
    }
