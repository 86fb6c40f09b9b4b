# glo_cloud/routers/files.py

from fastapi import APIRouter, Depends, HTTPException, Request, Header, Response
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Dict, Optional
import uuid
from ..dependencies import get_db, log_activity, get_current_user, require_admin
from ..logging_config import get_logger
from ..models.database import User, File, FileShare, ActivityAction
from ..models.schemas import FileUpdate, FolderCreate
from ..monitoring.metrics import files_downloaded
from ..services import files as file_ops
from ..services.organization import (
    week_number, employee_identifier, employee_upload_path,
)
from ..services.storage import storage_service, parse_range_header, content_disposition

router = APIRouter(prefix="/api/files", tags=["files"])
logger = get_logger(__name__)


@router.get("")
async def list_files(
    parent_id: Optional[uuid.UUID] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's items in one folder, folders first then by name"""
    query = select(File).filter(File.owner_id == current_user.id)
    if parent_id:
        query = query.filter(File.parent_id == parent_id)
    else:
        query = query.filter(File.parent_id == None)  # noqa: E711
    query = query.order_by(File.is_folder.desc(), File.original_name.asc())

    result = await db.execute(query)
    owner = {"name": current_user.name, "email": current_user.email}
    return {"files": [{**file_ops.file_to_dict(f), "owner": owner} for f in result.scalars().all()]}


@router.get("/shared")
async def list_shared_with_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Files other users shared with the caller, newest share first"""
    result = await db.execute(
        select(FileShare, File, User)
        .join(File, File.id == FileShare.file_id)
        .join(User, User.id == File.owner_id)
        .filter(FileShare.user_id == current_user.id)
        .order_by(FileShare.created_at.desc())
    )
    return [
        {
            **file_ops.file_to_dict(f),
            "share": {
                "id": str(share.id),
                "permission": share.permission,
                "shared_by": {"name": owner.name, "email": owner.email},
            },
        }
        for share, f, owner in result.all()
    ]


@router.get("/organized")
async def organized_files(
    employee_id: Optional[str] = None,
    week: Optional[int] = None,
    current_user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Files grouped by employee, then by week of upload"""
    query = (
        select(File, User)
        .join(User, User.id == File.owner_id)
        .filter(File.is_folder == False)  # noqa: E712
        .order_by(File.created_at.desc())
    )
    if employee_id:
        query = query.filter(User.employee_id == employee_id)

    rows = (await db.execute(query)).all()

    grouped: Dict[str, Dict[int, list]] = {}
    employees: Dict[str, dict] = {}
    total_files = 0
    for f, owner in rows:
        file_week = week_number(f.created_at)
        if week is not None and file_week != week:
            continue
        emp_id = employee_identifier(owner)
        employees.setdefault(emp_id, {
            "id": str(owner.id), "name": owner.name, "email": owner.email,
            "employee_id": owner.employee_id,
        })
        grouped.setdefault(emp_id, {}).setdefault(file_week, []).append({
            **file_ops.file_to_dict(f),
            "week_number": file_week,
            "upload_path": f.path,
        })
        total_files += 1

    organized = []
    for emp_id in sorted(grouped):
        weeks = [
            {
                "week_number": wk,
                "week_key": f"week-{wk}",
                "files": items,
                "file_count": len(items),
                "total_size": sum(i["size"] for i in items),
            }
            for wk, items in sorted(grouped[emp_id].items(), reverse=True)
        ]
        organized.append({"employee_id": emp_id, "employee": employees[emp_id], "weeks": weeks})

    return {
        "organized_files": organized,
        "total_employees": len(organized),
        "total_files": total_files,
    }


@router.post("/folders", status_code=201)
async def create_folder(
    folder_data: FolderCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create an empty folder"""
    name = folder_data.name.strip()
    if not name or name in (".", "..") or "/" in name:
        raise HTTPException(status_code=400, detail="Invalid folder name")

    upload_path = employee_upload_path(employee_identifier(current_user), str(current_user.id))
    base = upload_path
    if folder_data.parent_id:
        parent = await file_ops.get_owned_folder(db, folder_data.parent_id, current_user.id)
        base = parent.path

    folder = File(
        name=name,
        original_name=name,
        size=0,
        mime_type="application/x-directory",
        path=f"{base}/{name}",
        upload_path=upload_path,
        is_folder=True,
        parent_id=folder_data.parent_id,
        owner_id=current_user.id,
    )
    db.add(folder)
    await db.commit()

    await log_activity(
        db, current_user.id, ActivityAction.FOLDER_CREATE, folder.id,
        f"Created folder: {name}", request,
    )
    return {"file": file_ops.file_to_dict(folder)}


@router.get("/{file_id}")
async def get_file(
    file_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """File metadata for owners, admins and share recipients"""
    file_obj = await file_ops.get_file_or_404(db, file_id)
    await file_ops.ensure_can_view(db, current_user, file_obj)

    await log_activity(
        db, current_user.id, ActivityAction.FILE_VIEW, file_obj.id,
        f"Viewed file: {file_obj.original_name}", request,
    )
    owner = await file_ops.owner_summary(db, file_obj.owner_id)
    return {"file": {**file_ops.file_to_dict(file_obj), "owner": owner}}


@router.patch("/{file_id}")
async def update_file(
    file_id: uuid.UUID,
    update: FileUpdate,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Rename and/or move an item"""
    file_obj = await file_ops.get_file_or_404(db, file_id)
    file_ops.ensure_can_manage(current_user, file_obj)

    changes = []
    if update.name is not None:
        new_name = update.name.strip()
        if not new_name or "/" in new_name or new_name in (".", ".."):
            raise HTTPException(status_code=400, detail="Invalid name")
        if new_name != file_obj.original_name:
            changes.append(f"renamed {file_obj.original_name} to {new_name}")
            file_obj.original_name = new_name
            if file_obj.is_folder:
                file_obj.name = new_name

    if update.move_to_root:
        if file_obj.parent_id is not None:
            file_obj.parent_id = None
            changes.append("moved to root")
    elif update.parent_id is not None and update.parent_id != file_obj.parent_id:
        parent = await file_ops.get_owned_folder(db, update.parent_id, file_obj.owner_id)
        if parent.id == file_obj.id:
            raise HTTPException(status_code=400, detail="Cannot move folder into itself")
        if file_obj.is_folder and await file_ops.is_descendant(db, parent.id, file_obj.id):
            raise HTTPException(status_code=400, detail="Cannot move folder into its own subfolder")
        file_obj.parent_id = parent.id
        changes.append(f"moved to {parent.original_name}")

    if not changes:
        return {"file": file_ops.file_to_dict(file_obj), "updated": False}

    await db.commit()
    await log_activity(
        db, current_user.id, ActivityAction.FILE_EDIT, file_obj.id,
        "; ".join(changes), request,
    )
    return {"file": file_ops.file_to_dict(file_obj), "updated": True}


@router.get("/{file_id}/view")
async def view_file(
    file_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Inline content for previews"""
    file_obj = await file_ops.get_file_or_404(db, file_id)
    await file_ops.ensure_can_view(db, current_user, file_obj, detail="Access denied")

    if file_obj.is_folder:
        raise HTTPException(status_code=400, detail="Cannot view folder")
    size = storage_service.size_on_disk(file_obj.path)
    if size is None:
        raise HTTPException(status_code=404, detail="File not found on disk")

    await log_activity(
        db, current_user.id, ActivityAction.FILE_VIEW, file_obj.id,
        f"Viewed file: {file_obj.original_name}", request,
    )
    files_downloaded.labels(channel="view").inc()

    return StreamingResponse(
        storage_service.stream_full(file_obj.path),
        media_type=file_obj.mime_type or "application/octet-stream",
        headers={
            "Content-Length": str(size),
            "Content-Disposition": content_disposition("inline", file_obj.original_name),
        },
    )


@router.get("/{file_id}/download")
@router.head("/{file_id}/download")
async def download_file(
    file_id: uuid.UUID,
    request: Request,
    range: Optional[str] = Header(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Attachment download with HTTP Range and HEAD support"""
    file_obj = await file_ops.get_file_or_404(db, file_id)
    await file_ops.ensure_can_download(db, current_user, file_obj)

    if file_obj.is_folder:
        raise HTTPException(status_code=400, detail="Cannot download folder")

    total_size = storage_service.size_on_disk(file_obj.path)
    if total_size is None:
        raise HTTPException(status_code=404, detail="File not found on disk")

    base_headers = {
        "Accept-Ranges": "bytes",
        "Content-Type": "application/octet-stream",
        "Content-Disposition": content_disposition("attachment", file_obj.original_name),
        "Cache-Control": "no-cache, no-store, must-revalidate",
    }

    if request.method == "HEAD":
        return Response(status_code=200, headers={**base_headers, "Content-Length": str(total_size)})

    parsed_range = parse_range_header(range, total_size) if total_size else None

    await log_activity(
        db, current_user.id, ActivityAction.FILE_DOWNLOAD, file_obj.id,
        f"Downloaded file: {file_obj.original_name}", request,
    )
    files_downloaded.labels(channel="internal").inc()

    if parsed_range:
        start, end = parsed_range
        headers = {
            **base_headers,
            "Content-Range": f"bytes {start}-{end}/{total_size}",
            "Content-Length": str(end - start + 1),
        }
        return StreamingResponse(
            storage_service.stream_range(file_obj.path, start, end),
            status_code=206,
            headers=headers,
            media_type="application/octet-stream",
        )

    return StreamingResponse(
        storage_service.stream_full(file_obj.path),
        status_code=200,
        headers={**base_headers, "Content-Length": str(total_size)},
        media_type="application/octet-stream",
    )


@router.delete("/{file_id}")
async def delete_file(
    file_id: uuid.UUID,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a file, or a folder with everything in it"""
    file_obj = await file_ops.get_file_or_404(db, file_id)
    file_ops.ensure_can_manage(current_user, file_obj)

    kind = "folder" if file_obj.is_folder else "file"
    original_name = file_obj.original_name
    removed, content_paths = await file_ops.delete_tree(db, file_obj)
    await db.commit()
    file_ops.remove_content(content_paths)
    logger.info("Deleted %s %s (%d records) for %s", kind, file_id, removed, current_user.email)

    await log_activity(
        db, current_user.id, ActivityAction.FILE_DELETE,
        details=f"Deleted {kind}: {original_name}", request=request,
    )
    return {"message": "File deleted successfully", "removed": removed}
