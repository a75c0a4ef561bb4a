from __future__ import annotations

import asyncio
import time
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

import httpx
from supabase import StorageException

from studynotes.core.errors import StorageError
from studynotes.core.models.base import AppBaseModel
from studynotes.core.models.note import NoteFile
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from supabase import Client


logger = get_logger(__name__)


class StoredFile(AppBaseModel):
    """An uploaded object: its bucket path and the reference kept on the note."""

    path: str
    file: NoteFile


def safe_filename(filename: str) -> str:
    return PurePosixPath(filename.replace("\\", "/")).name or "upload"


def build_object_path(author_id: UUID, filename: str, *, now_ms: int | None = None) -> str:
    """Object key: notes/{author_id}/{epoch_ms}-{filename}."""
    safe_name = safe_filename(filename)
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"notes/{author_id}/{stamp}-{safe_name}"


class StorageService:
    """Uploads note files to a Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str) -> None:
        self._client = client
        self._bucket = bucket

    async def upload(self, author_id: UUID, filename: str, data: bytes, content_type: str | None = None) -> StoredFile:
        path = build_object_path(author_id, filename)
        options = {"content-type": content_type or "application/octet-stream"}
        bucket = self._client.storage.from_(self._bucket)

        await self._run(lambda: bucket.upload(path=path, file=data, file_options=options))
        url = await self._run(lambda: bucket.get_public_url(path))
        logger.info("File uploaded", extra={"path": path, "size": len(data)})
        return StoredFile(
            path=path,
            file=NoteFile(url=url, name=safe_filename(filename), size=len(data)),
        )

    async def delete(self, path: str) -> None:
        bucket = self._client.storage.from_(self._bucket)
        await self._run(lambda: bucket.remove([path]))
        logger.info("File removed", extra={"path": path})

    @staticmethod
    async def _run(func: Callable[[], Any]) -> Any:
        try:
            return await asyncio.to_thread(func)
        except (StorageException, httpx.HTTPError) as err:
            raise StorageError(f"Storage request failed: {err}") from err


class InMemoryStorageService(StorageService):
    """Keeps uploaded bytes in a dict; used with the memory backend and tests."""

    def __init__(self, bucket: str = "notes") -> None:
        self._bucket = bucket
        self.objects: dict[str, bytes] = {}

    async def upload(self, author_id: UUID, filename: str, data: bytes, content_type: str | None = None) -> StoredFile:
        path = build_object_path(author_id, filename)
        self.objects[path] = data
        return StoredFile(
            path=path,
            file=NoteFile(url=f"memory://{self._bucket}/{path}", name=safe_filename(filename), size=len(data)),
        )

    async def delete(self, path: str) -> None:
        if self.objects.pop(path, None) is None:
            raise StorageError(f"No such object: {path}")
