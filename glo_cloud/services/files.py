# glo_cloud/services/files.py
"""File tree queries, access checks and cascading deletes"""
from typing import Dict, List, Optional, Tuple
from fastapi import HTTPException
from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession
from ..models.database import (
    User, File, FileShare, PublicShare, Activity, DOWNLOAD_PERMISSIONS,
)
from .storage import storage_service


async def get_file_or_404(db: AsyncSession, file_id) -> File:
    result = await db.execute(select(File).filter(File.id == file_id))
    file_obj = result.scalar_one_or_none()
    if not file_obj:
        raise HTTPException(status_code=404, detail="File not found")
    return file_obj


def can_manage(user: User, file_obj: File) -> bool:
    """Owners and admins may share, edit and delete"""
    return file_obj.owner_id == user.id or user.is_admin


def ensure_can_manage(user: User, file_obj: File):
    if not can_manage(user, file_obj):
        raise HTTPException(status_code=403, detail="Forbidden")


async def get_share_for(db: AsyncSession, file_id, user_id) -> Optional[FileShare]:
    result = await db.execute(
        select(FileShare).filter(FileShare.file_id == file_id, FileShare.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def ensure_can_view(db: AsyncSession, user: User, file_obj: File, detail: str = "Forbidden"):
    """Owner, admins, or any internal share"""
    if can_manage(user, file_obj):
        return
    if not await get_share_for(db, file_obj.id, user.id):
        raise HTTPException(status_code=403, detail=detail)


async def ensure_can_download(db: AsyncSession, user: User, file_obj: File):
    """Owner, admins, or an EDIT / FULL_ACCESS share"""
    if can_manage(user, file_obj):
        return
    share = await get_share_for(db, file_obj.id, user.id)
    if not share or share.permission not in DOWNLOAD_PERMISSIONS:
        raise HTTPException(status_code=403, detail="Download access denied")


async def get_owned_folder(db: AsyncSession, folder_id, owner_id) -> File:
    result = await db.execute(
        select(File).filter(
            File.id == folder_id,
            File.owner_id == owner_id,
            File.is_folder == True,  # noqa: E712
        )
    )
    folder = result.scalar_one_or_none()
    if not folder:
        raise HTTPException(status_code=404, detail="Parent folder not found")
    return folder


async def collect_levels(db: AsyncSession, folder_id) -> List[List[File]]:
    """Items below a folder grouped by depth, shallowest first"""
    levels: List[List[File]] = []
    frontier = [folder_id]
    while frontier:
        result = await db.execute(select(File).filter(File.parent_id.in_(frontier)))
        children = list(result.scalars().all())
        if not children:
            break
        levels.append(children)
        frontier = [c.id for c in children if c.is_folder]
    return levels


async def collect_descendants(db: AsyncSession, folder_id) -> List[File]:
    """All items below a folder, parents before children"""
    return [item for level in await collect_levels(db, folder_id) for item in level]


async def is_descendant(db: AsyncSession, candidate_id, folder_id) -> bool:
    """True when candidate_id lies somewhere below folder_id"""
    descendants = await collect_descendants(db, folder_id)
    return any(d.id == candidate_id for d in descendants)


async def folder_size(db: AsyncSession, folder_id) -> int:
    """Recursive size of a folder's files"""
    return sum(f.size or 0 for f in await collect_descendants(db, folder_id) if not f.is_folder)


def archive_entries(root: File, descendants: List[File]):
    """(stored path, name inside the archive) for every file below root"""
    by_id: Dict = {d.id: d for d in descendants}

    def archive_name(item: File) -> str:
        parts = [item.original_name]
        parent_id = item.parent_id
        while parent_id is not None and parent_id != root.id and parent_id in by_id:
            parent = by_id[parent_id]
            parts.append(parent.original_name)
            parent_id = parent.parent_id
        return "/".join(reversed(parts))

    return [(d.path, archive_name(d)) for d in descendants if not d.is_folder]


async def delete_tree(db: AsyncSession, file_obj: File) -> Tuple[int, List[str]]:
    """Delete the records of an item and everything below it.

    Shares and public links go with the files and activity rows keep their
    history with file_id cleared. Returns the number of rows removed and the
    stored content paths; the caller commits, then calls remove_content.
    """
    levels = [[file_obj]]
    if file_obj.is_folder:
        levels.extend(await collect_levels(db, file_obj.id))
    items = [item for level in levels for item in level]
    ids = [i.id for i in items]

    await db.execute(delete(FileShare).where(FileShare.file_id.in_(ids)))
    await db.execute(delete(PublicShare).where(PublicShare.file_id.in_(ids)))
    await db.execute(update(Activity).where(Activity.file_id.in_(ids)).values(file_id=None))

    # deepest level first so the parent_id self-reference never dangles
    for level in reversed(levels):
        level_ids = [i.id for i in level]
        await db.execute(
            delete(File).where(File.id.in_(level_ids)).execution_options(synchronize_session=False)
        )
    return len(items), [i.path for i in items if not i.is_folder]


def remove_content(paths: List[str]) -> int:
    """Delete stored content once the records are gone"""
    return sum(1 for path in paths if storage_service.delete(path))


async def storage_used_by(db: AsyncSession, owner_id) -> int:
    result = await db.execute(
        select(func.coalesce(func.sum(File.size), 0)).filter(File.owner_id == owner_id)
    )
    return int(result.scalar() or 0)


async def owner_summary(db: AsyncSession, owner_id) -> Optional[Dict[str, str]]:
    result = await db.execute(select(User.name, User.email).filter(User.id == owner_id))
    row = result.first()
    return {"name": row.name, "email": row.email} if row else None


def file_to_dict(f: File) -> dict:
    return {
        "id": str(f.id),
        "name": f.name,
        "original_name": f.original_name,
        "size": f.size,
        "mime_type": f.mime_type,
        "is_folder": f.is_folder,
        "parent_id": str(f.parent_id) if f.parent_id else None,
        "owner_id": str(f.owner_id),
        "created_at": f.created_at.isoformat() if f.created_at else None,
        "updated_at": f.updated_at.isoformat() if f.updated_at else None,
    }
