# glo_cloud/services/storage.py

import os
import re
import asyncio
import mimetypes
import tempfile
import zipfile
from typing import AsyncGenerator, Iterable, Optional, Tuple
from urllib.parse import quote
import aiofiles
from fastapi import HTTPException, UploadFile
from ..config import settings
from ..logging_config import get_logger

logger = get_logger(__name__)

RANGE_RE = re.compile(r"bytes=(\d*)-(\d*)")
BLOCK_SIZE = 1024 * 1024
ZIP_SPOOL_LIMIT = 16 * 1024 * 1024


def parse_range_header(range_header: Optional[str], file_size: int) -> Optional[Tuple[int, int]]:
    """Parse Range header and return (start, end) inclusive byte offsets."""
    if not range_header:
        return None

    match = RANGE_RE.match(range_header.strip())
    if not match:
        raise HTTPException(status_code=416, detail="Invalid Range header")

    start_str, end_str = match.groups()

    # suffix-byte-range-spec, e.g. "bytes=-500" for the last 500 bytes
    if start_str == "":
        if end_str == "":
            raise HTTPException(status_code=416, detail="Invalid Range header")
        suffix_len = int(end_str)
        if suffix_len == 0:
            return None
        start = max(0, file_size - suffix_len)
        end = file_size - 1
    else:
        start = int(start_str)
        end = int(end_str) if end_str != "" else file_size - 1

    if start > end or start >= file_size:
        raise HTTPException(
            status_code=416,
            detail="Range Not Satisfiable",
            headers={"Content-Range": f"bytes */{file_size}"}
        )

    end = min(end, file_size - 1)
    return (start, end)


class StorageService:
    """Reads and writes file content under STORAGE_ROOT"""

    def __init__(self, root: Optional[str] = None):
        self._root = root

    @property
    def root(self) -> str:
        return os.path.abspath(self._root or settings.STORAGE_ROOT)

    def resolve(self, relative_path: str) -> str:
        """Absolute path for a stored relative path; refuses to leave the root"""
        full = os.path.abspath(os.path.join(self.root, relative_path))
        if full != self.root and not full.startswith(self.root + os.sep):
            raise HTTPException(status_code=400, detail="Invalid storage path")
        return full

    def size_on_disk(self, relative_path: str) -> Optional[int]:
        full = self.resolve(relative_path)
        if not os.path.isfile(full):
            return None
        return os.path.getsize(full)

    def make_dirs(self, relative_dir: str) -> str:
        full = self.resolve(relative_dir)
        os.makedirs(full, exist_ok=True)
        return full

    async def save_upload(self, upload: UploadFile, relative_path: str, max_bytes: Optional[int] = None) -> int:
        """Stream an upload to disk; returns the byte count.

        The partial file is removed when the upload exceeds ``max_bytes``.
        """
        full = self.resolve(relative_path)
        os.makedirs(os.path.dirname(full), exist_ok=True)

        written = 0
        try:
            async with aiofiles.open(full, "wb") as f:
                while True:
                    chunk = await upload.read(BLOCK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if max_bytes is not None and written > max_bytes:
                        raise HTTPException(status_code=413, detail="File exceeds the maximum allowed size")
                    await f.write(chunk)
        except HTTPException:
            self.delete(relative_path)
            raise
        return written

    async def write_bytes(self, relative_path: str, data: bytes) -> int:
        full = self.resolve(relative_path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        async with aiofiles.open(full, "wb") as f:
            await f.write(data)
        return len(data)

    async def read_bytes(self, relative_path: str) -> bytes:
        async with aiofiles.open(self.resolve(relative_path), "rb") as f:
            return await f.read()

    def delete(self, relative_path: str) -> bool:
        """Remove stored content; missing content is not an error"""
        try:
            os.remove(self.resolve(relative_path))
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Failed to delete %s: %s", relative_path, e)
            return False

    async def stream_range(self, relative_path: str, start: int, end: int,
                           block_size: int = BLOCK_SIZE) -> AsyncGenerator[bytes, None]:
        """Stream a byte range from a stored file."""
        async with aiofiles.open(self.resolve(relative_path), "rb") as f:
            await f.seek(start)
            remaining = end - start + 1
            while remaining > 0:
                chunk = await f.read(min(block_size, remaining))
                if not chunk:
                    break
                yield chunk
                remaining -= len(chunk)

    async def stream_full(self, relative_path: str, block_size: int = BLOCK_SIZE) -> AsyncGenerator[bytes, None]:
        """Stream an entire stored file."""
        async with aiofiles.open(self.resolve(relative_path), "rb") as f:
            while True:
                chunk = await f.read(block_size)
                if not chunk:
                    break
                yield chunk

    def _build_zip(self, entries: Iterable[Tuple[str, str]]):
        spool = tempfile.SpooledTemporaryFile(max_size=ZIP_SPOOL_LIMIT)
        with zipfile.ZipFile(spool, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for relative_path, arcname in entries:
                full = self.resolve(relative_path)
                if os.path.isfile(full):
                    archive.write(full, arcname)
                else:
                    logger.warning("Skipping missing file %s while zipping", relative_path)
        spool.seek(0)
        return spool

    async def stream_zip(self, entries: Iterable[Tuple[str, str]],
                         block_size: int = BLOCK_SIZE) -> AsyncGenerator[bytes, None]:
        """Zip (stored path, archive name) pairs off the event loop and stream the result."""
        loop = asyncio.get_running_loop()
        spool = await loop.run_in_executor(None, self._build_zip, list(entries))
        try:
            while True:
                chunk = spool.read(block_size)
                if not chunk:
                    break
                yield chunk
        finally:
            spool.close()


def guess_mime_type(filename: str, declared: Optional[str] = None) -> str:
    if declared and declared != "application/octet-stream":
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or declared or "application/octet-stream"


def content_disposition(disposition: str, filename: str) -> str:
    """Header value safe for non-ASCII names (RFC 6266 filename*)"""
    ascii_name = filename.encode("ascii", "ignore").decode() or "download"
    ascii_name = ascii_name.replace('"', '\\"')
    return f'{disposition}; filename="{ascii_name}"; filename*=UTF-8\'\'{quote(filename)}'


storage_service = StorageService()
