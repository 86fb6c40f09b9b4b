# glo_cloud/routers/upload.py

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File as FileParam, Form, Request
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Dict, List, Optional
import uuid
from ..dependencies import get_db, log_activity, get_current_user
from ..logging_config import get_logger
from ..models.database import User, File, ActivityAction
from ..monitoring.metrics import files_uploaded, upload_bytes
from ..services import files as file_ops
from ..services import policy
from ..services.organization import (
    current_week_number, employee_identifier, employee_upload_path, unique_filename,
)
from ..services.storage import storage_service, guess_mime_type

router = APIRouter(prefix="/api/files", tags=["upload"])
logger = get_logger(__name__)

FOLDER_MIME_TYPE = "application/x-directory"


def _parse_parent_id(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid parent_id")


def _split_relative_path(relative_path: str) -> List[str]:
    """Path segments of a client-supplied relative path, rejecting traversal"""
    segments = [s for s in relative_path.replace("\\", "/").split("/") if s]
    if not segments or any(s in (".", "..") for s in segments):
        raise HTTPException(status_code=400, detail=f"Invalid path: {relative_path}")
    return segments


@router.post("/upload", status_code=201)
async def upload_file(
    request: Request,
    file: UploadFile = FileParam(...),
    parent_id: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Store one file in the caller's employee/week directory"""
    if not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")

    parent_uuid = _parse_parent_id(parent_id)
    if parent_uuid:
        await file_ops.get_owned_folder(db, parent_uuid, current_user.id)

    settings_row = await policy.get_system_settings(db)
    policy.check_file_type(settings_row, file.filename)

    employee_id = employee_identifier(current_user)
    week = current_week_number()
    upload_path = employee_upload_path(employee_id, str(current_user.id), week)
    stored_name = unique_filename(file.filename)
    relative_path = f"{upload_path}/{stored_name}"

    used = await file_ops.storage_used_by(db, current_user.id)
    size = await storage_service.save_upload(file, relative_path, policy.max_file_bytes(settings_row))
    try:
        policy.check_quota(settings_row, used, size)
    except HTTPException:
        storage_service.delete(relative_path)
        raise

    new_file = File(
        name=stored_name,
        original_name=file.filename,
        size=size,
        mime_type=guess_mime_type(file.filename, file.content_type),
        path=relative_path,
        upload_path=upload_path,
        is_folder=False,
        parent_id=parent_uuid,
        owner_id=current_user.id,
    )
    db.add(new_file)
    await db.commit()

    files_uploaded.labels(source="single").inc()
    upload_bytes.inc(size)
    logger.info("Stored %s (%d bytes) for %s", relative_path, size, current_user.email)

    await log_activity(
        db, current_user.id, ActivityAction.FILE_UPLOAD, new_file.id,
        f"Uploaded file: {file.filename} (employee {employee_id}, week {week})", request,
    )
    return {
        "file": file_ops.file_to_dict(new_file),
        "employee_id": employee_id,
        "week": week,
        "upload_path": upload_path,
    }


@router.post("/upload-folder", status_code=201)
async def upload_folder(
    request: Request,
    files: List[UploadFile] = FileParam(...),
    paths: List[str] = Form(...),
    parent_id: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Upload a directory tree.

    ``paths[i]`` is the relative path of ``files[i]`` inside the uploaded
    tree, e.g. ``reports/2024/q1.pdf``. Intermediate folders are created as
    folder records so the tree can be browsed afterwards.
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")
    if len(files) != len(paths):
        raise HTTPException(status_code=400, detail="Each file needs a matching path")

    parent_uuid = _parse_parent_id(parent_id)
    if parent_uuid:
        await file_ops.get_owned_folder(db, parent_uuid, current_user.id)

    settings_row = await policy.get_system_settings(db)
    entries = []
    for upload, relative_path in zip(files, paths):
        segments = _split_relative_path(relative_path)
        policy.check_file_type(settings_row, segments[-1])
        entries.append((upload, segments))

    employee_id = employee_identifier(current_user)
    week = current_week_number()
    upload_path = employee_upload_path(employee_id, str(current_user.id), week)
    max_bytes = policy.max_file_bytes(settings_row)
    used = await file_ops.storage_used_by(db, current_user.id)

    folder_ids: Dict[tuple, uuid.UUID] = {}
    folders_created = 0
    written: List[str] = []
    created: List[File] = []

    try:
        for upload, segments in entries:
            parent_for_file = parent_uuid
            for depth in range(1, len(segments)):
                key = tuple(segments[:depth])
                if key not in folder_ids:
                    folder_path = f"{upload_path}/{'/'.join(key)}"
                    storage_service.make_dirs(folder_path)
                    folder = File(
                        id=uuid.uuid4(),
                        name=key[-1],
                        original_name=key[-1],
                        size=0,
                        mime_type=FOLDER_MIME_TYPE,
                        path=folder_path,
                        upload_path=upload_path,
                        is_folder=True,
                        parent_id=folder_ids.get(key[:-1], parent_uuid),
                        owner_id=current_user.id,
                    )
                    db.add(folder)
                    folder_ids[key] = folder.id
                    folders_created += 1
                parent_for_file = folder_ids[key]

            original_name = segments[-1]
            stored_name = unique_filename(original_name)
            directory = "/".join([upload_path] + segments[:-1])
            relative = f"{directory}/{stored_name}"

            size = await storage_service.save_upload(upload, relative, max_bytes)
            written.append(relative)
            used += size
            policy.check_quota(settings_row, used, 0)

            new_file = File(
                name=stored_name,
                original_name=original_name,
                size=size,
                mime_type=guess_mime_type(original_name, upload.content_type),
                path=relative,
                upload_path=upload_path,
                is_folder=False,
                parent_id=parent_for_file,
                owner_id=current_user.id,
            )
            db.add(new_file)
            created.append(new_file)

        await db.commit()
    except HTTPException:
        await db.rollback()
        for relative in written:
            storage_service.delete(relative)
        raise

    total = sum(f.size for f in created)
    files_uploaded.labels(source="folder").inc(len(created))
    upload_bytes.inc(total)

    await log_activity(
        db, current_user.id, ActivityAction.FOLDER_CREATE,
        details=(
            f"Uploaded folder structure: {len(created)} files in {folders_created} folders "
            f"(employee {employee_id}, week {week})"
        ),
        request=request,
    )
    return {
        "files_uploaded": len(created),
        "folders_created": folders_created,
        "total_size": total,
        "files": [file_ops.file_to_dict(f) for f in created],
        "employee_id": employee_id,
        "week": week,
        "upload_path": upload_path,
    }
