"""Tests for range parsing and the storage root guard."""

import pytest
from fastapi import HTTPException

from glo_cloud.services.storage import (
    StorageService,
    content_disposition,
    guess_mime_type,
    parse_range_header,
)


class TestParseRangeHeader:
    """HTTP Range header handling."""

    def test_no_header(self):
        assert parse_range_header(None, 100) is None

    def test_closed_range(self):
        assert parse_range_header('bytes=0-9', 100) == (0, 9)

    def test_open_ended_range(self):
        assert parse_range_header('bytes=90-', 100) == (90, 99)

    def test_suffix_range(self):
        assert parse_range_header('bytes=-10', 100) == (90, 99)

    def test_end_is_clamped(self):
        assert parse_range_header('bytes=50-500', 100) == (50, 99)

    def test_start_past_end_of_file(self):
        with pytest.raises(HTTPException) as exc_info:
            parse_range_header('bytes=100-', 100)
        assert exc_info.value.status_code == 416
        assert exc_info.value.headers['Content-Range'] == 'bytes */100'

    def test_malformed_header(self):
        with pytest.raises(HTTPException) as exc_info:
            parse_range_header('items=0-1', 100)
        assert exc_info.value.status_code == 416


class TestStorageService:
    """Reads and writes under the configured root."""

    def test_resolve_rejects_traversal(self, tmp_path):
        storage = StorageService(str(tmp_path))
        with pytest.raises(HTTPException) as exc_info:
            storage.resolve('../outside.txt')
        assert exc_info.value.status_code == 400

    async def test_write_read_delete(self, tmp_path):
        storage = StorageService(str(tmp_path))
        await storage.write_bytes('uploads/a/b.txt', b'data')

        assert storage.size_on_disk('uploads/a/b.txt') == 4
        assert await storage.read_bytes('uploads/a/b.txt') == b'data'
        assert storage.delete('uploads/a/b.txt') is True
        assert storage.delete('uploads/a/b.txt') is False
        assert storage.size_on_disk('uploads/a/b.txt') is None

    async def test_stream_range(self, tmp_path):
        storage = StorageService(str(tmp_path))
        await storage.write_bytes('f.bin', bytes(range(100)))

        chunks = [c async for c in storage.stream_range('f.bin', 10, 19, block_size=4)]
        assert b''.join(chunks) == bytes(range(10, 20))

    async def test_stream_zip_skips_missing(self, tmp_path):
        import io
        import zipfile

        storage = StorageService(str(tmp_path))
        await storage.write_bytes('one.txt', b'1')
        entries = [('one.txt', 'docs/one.txt'), ('gone.txt', 'docs/gone.txt')]

        data = b''.join([c async for c in storage.stream_zip(entries)])
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            assert archive.namelist() == ['docs/one.txt']


def test_content_disposition_non_ascii():
    value = content_disposition('attachment', 'résumé "v2".pdf')
    assert value.startswith('attachment; filename="rsum \\"v2\\".pdf"')
    assert "filename*=UTF-8''r%C3%A9sum%C3%A9%20%22v2%22.pdf" in value


def test_guess_mime_type():
    assert guess_mime_type('photo.png', 'application/octet-stream') == 'image/png'
    assert guess_mime_type('data.bin', 'application/x-custom') == 'application/x-custom'
    assert guess_mime_type('unknown.zzz') == 'application/octet-stream'
