"""Object paths and the storage adapters."""

from types import SimpleNamespace
from uuid import uuid4

import pytest
from supabase import StorageException

from studynotes.core.errors import StorageError
from studynotes.core.services.storage_service import (
    InMemoryStorageService,
    StorageService,
    build_object_path,
    safe_filename,
)


class FakeBucket:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.uploaded: dict[str, bytes] = {}
        self.removed: list[str] = []

    def upload(self, path, file, file_options=None):
        if self.fail:
            raise StorageException({"statusCode": 413, "message": "Payload too large"})
        self.uploaded[path] = file

    def get_public_url(self, path):
        return f"https://cdn.example/storage/v1/object/public/notes/{path}"

    def remove(self, paths):
        self.removed.extend(paths)


def _client(bucket: FakeBucket):
    return SimpleNamespace(storage=SimpleNamespace(from_=lambda name: bucket))


def test_object_path_layout():
    author_id = uuid4()

    assert build_object_path(author_id, "lecture 1.pdf", now_ms=1700000000000) == (
        f"notes/{author_id}/1700000000000-lecture 1.pdf"
    )


def test_safe_filename_drops_directories():
    assert safe_filename("../../etc/passwd") == "passwd"
    assert safe_filename("C:\\Users\\ada\\scan.png") == "scan.png"
    assert safe_filename("") == "upload"


@pytest.mark.asyncio
async def test_upload_returns_file_reference():
    bucket = FakeBucket()
    service = StorageService(_client(bucket), "notes")

    stored = await service.upload(uuid4(), "slides.pdf", b"%PDF-1.4", "application/pdf")

    assert stored.path in bucket.uploaded
    assert stored.file.name == "slides.pdf"
    assert stored.file.size == 8
    assert stored.file.url.endswith(stored.path)


@pytest.mark.asyncio
async def test_storage_failures_become_storage_error():
    service = StorageService(_client(FakeBucket(fail=True)), "notes")

    with pytest.raises(StorageError):
        await service.upload(uuid4(), "big.pdf", b"x")


@pytest.mark.asyncio
async def test_delete_removes_object():
    bucket = FakeBucket()
    service = StorageService(_client(bucket), "notes")

    await service.delete("notes/a/1-x.pdf")

    assert bucket.removed == ["notes/a/1-x.pdf"]


@pytest.mark.asyncio
async def test_in_memory_storage_round_trip():
    storage = InMemoryStorageService("notes")

    stored = await storage.upload(uuid4(), "a.png", b"png")
    assert storage.objects[stored.path] == b"png"
    assert stored.file.url.startswith("memory://notes/")

    await storage.delete(stored.path)
    with pytest.raises(StorageError):
        await storage.delete(stored.path)
