# glo_cloud/routers/public.py

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from ..dependencies import get_db, log_activity
from ..logging_config import get_logger
from ..models.database import PublicShare, File, ActivityAction, utcnow
from ..models.schemas import SharePassword
from ..monitoring.metrics import public_share_access, files_downloaded
from ..services import files as file_ops
from ..services import sharing
from ..services.storage import storage_service, content_disposition

router = APIRouter(prefix="/api/share", tags=["public"])
logger = get_logger(__name__)

OUTCOMES = {
    400: "password_required",
    401: "invalid_password",
    403: "forbidden",
    404: "not_found",
    410: "expired",
    429: "limit_reached",
}


async def _open_share(db: AsyncSession, token: str, password: Optional[str]) -> PublicShare:
    """Run the full verification flow and count the outcome"""
    try:
        share = await sharing.resolve_share(db, token)
        sharing.verify_share_password(share, password)
    except HTTPException as e:
        public_share_access.labels(outcome=OUTCOMES.get(e.status_code, "error")).inc()
        raise
    return share


async def _share_info(db: AsyncSession, share: PublicShare, file_obj: File) -> dict:
    calculated_size = (
        await file_ops.folder_size(db, file_obj.id) if file_obj.is_folder else file_obj.size
    )
    return {
        "file": {
            "id": str(file_obj.id),
            "original_name": file_obj.original_name,
            "size": file_obj.size,
            "calculated_size": calculated_size,
            "mime_type": file_obj.mime_type,
            "is_folder": file_obj.is_folder,
            "created_at": file_obj.created_at,
        },
        "permission": share.permission,
        "downloads": share.downloads,
        "max_downloads": share.max_downloads,
        "expires_at": share.expires_at,
        "has_password": bool(share.password),
        "shared_by": await sharing.creator_name(db, share),
    }


@router.get("/{token}")
async def get_share_info(token: str, db: AsyncSession = Depends(get_db)):
    """Share landing data; password-protected links only reveal that a password is needed"""
    try:
        share = await sharing.resolve_share(db, token)
    except HTTPException as e:
        public_share_access.labels(outcome=OUTCOMES.get(e.status_code, "error")).inc()
        raise

    share.access_count = (share.access_count or 0) + 1
    share.last_accessed = utcnow()
    await db.commit()

    if share.password:
        public_share_access.labels(outcome="password_required").inc()
        return JSONResponse(
            status_code=401,
            content={"detail": "Password required", "has_password": True},
        )

    file_obj = await sharing.load_shared_file(db, share)
    public_share_access.labels(outcome="info").inc()
    return await _share_info(db, share, file_obj)


@router.post("/{token}")
async def verify_share(
    token: str,
    payload: Optional[SharePassword] = None,
    db: AsyncSession = Depends(get_db),
):
    """Check the password and return the share info"""
    share = await _open_share(db, token, payload.password if payload else None)
    file_obj = await sharing.load_shared_file(db, share)
    public_share_access.labels(outcome="verified").inc()
    return await _share_info(db, share, file_obj)


@router.get("/{token}/view")
async def view_shared_file(
    token: str,
    password: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """Inline content; allowed for VIEW and DOWNLOAD links alike"""
    share = await _open_share(db, token, password)
    file_obj = await sharing.load_shared_file(db, share)

    if file_obj.is_folder:
        raise HTTPException(status_code=400, detail="Cannot preview a folder")
    size = storage_service.size_on_disk(file_obj.path)
    if size is None:
        raise HTTPException(status_code=404, detail="File not found on disk")

    public_share_access.labels(outcome="view").inc()
    files_downloaded.labels(channel="public_view").inc()
    return StreamingResponse(
        storage_service.stream_full(file_obj.path),
        media_type=file_obj.mime_type or "application/octet-stream",
        headers={
            "Content-Length": str(size),
            "Content-Disposition": content_disposition("inline", file_obj.original_name),
        },
    )


@router.post("/{token}/download")
async def download_shared_file(
    token: str,
    request: Request,
    payload: Optional[SharePassword] = None,
    db: AsyncSession = Depends(get_db),
):
    """Attachment download; folders are sent as a ZIP of everything below them"""
    share = await _open_share(db, token, payload.password if payload else None)
    try:
        sharing.ensure_download_allowed(share)
    except HTTPException:
        public_share_access.labels(outcome="forbidden").inc()
        raise

    file_obj = await sharing.load_shared_file(db, share)

    if file_obj.is_folder:
        descendants = await file_ops.collect_descendants(db, file_obj.id)
        entries = file_ops.archive_entries(file_obj, descendants)
        body = storage_service.stream_zip(entries)
        filename = f"{file_obj.original_name}.zip"
        headers = {"Content-Disposition": content_disposition("attachment", filename)}
        media_type = "application/zip"
    else:
        size = storage_service.size_on_disk(file_obj.path)
        if size is None:
            raise HTTPException(status_code=404, detail="File not found on disk")
        body = storage_service.stream_full(file_obj.path)
        headers = {
            "Content-Disposition": content_disposition("attachment", file_obj.original_name),
            "Content-Length": str(size),
        }
        media_type = file_obj.mime_type or "application/octet-stream"

    share.downloads = (share.downloads or 0) + 1
    await db.commit()

    await log_activity(
        db, share.created_by, ActivityAction.FILE_DOWNLOAD, file_obj.id,
        f"Public download of {file_obj.original_name}", request,
    )
    public_share_access.labels(outcome="download").inc()
    files_downloaded.labels(channel="public").inc()
    logger.info("Public share %s downloaded (%d/%s)", share.id, share.downloads, share.max_downloads or "-")

    return StreamingResponse(body, media_type=media_type, headers=headers)
