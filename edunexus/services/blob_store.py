"""Blob store adapter: durable file upload/delete behind a small protocol.

Services only see ``BlobStore``; tests hand in fakes, the app wires
``LocalBlobStore`` which keeps files under ``settings.UPLOAD_DIR`` and serves
them from ``settings.MEDIA_URL``.
"""

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Protocol

from edunexus.config import settings
from edunexus.errors import UploadFailed
from edunexus.services.validation import file_too_large


@dataclass
class IncomingFile:
    """A file received from the transport layer, fully read into memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def read_upload(upload, *, limit: int, field: str, default_name: str) -> IncomingFile:
    """Read a multipart upload into an IncomingFile, never holding more than ``limit + 1`` bytes.

    ``upload`` is a Starlette/FastAPI ``UploadFile``. A declared size over
    the limit is refused before reading; otherwise the body is read with a
    bounded ``read`` so an undeclared oversize file fails after one chunk.
    """
    filename = upload.filename or default_name
    declared = getattr(upload, "size", None)
    if declared is not None and declared > limit:
        raise file_too_large(filename, limit, field)
    data = upload.file.read(limit + 1)
    if len(data) > limit:
        raise file_too_large(filename, limit, field)
    return IncomingFile(
        filename=filename,
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


@dataclass
class StoredBlob:
    url: str
    storage_id: str
    content_type: str
    duration_seconds: Optional[float] = None


class BlobStore(Protocol):
    def upload(
        self,
        data: bytes,
        *,
        folder: str,
        suggested_id: str,
        resource_kind: str,
        content_type: str,
        filename: str,
    ) -> StoredBlob:
        """Persist ``data`` and return where it lives. Raises UploadFailed."""
        ...

    def delete(self, storage_id: str, *, resource_kind: str) -> None:
        """Remove a stored object. Raises UploadFailed when the store refuses."""
        ...


class LocalBlobStore:
    """Filesystem-backed store. ``storage_id`` is the path below ``root``."""

    def __init__(self, root: str, media_url: str):
        self._root = Path(root)
        self._media_url = media_url.rstrip("/")

    def _resolve(self, storage_id: str) -> Path:
        path = (self._root / storage_id).resolve()
        root = self._root.resolve()
        if root != path and root not in path.parents:
            raise UploadFailed(f"Storage id outside upload root: {storage_id}")
        return path

    def upload(
        self,
        data: bytes,
        *,
        folder: str,
        suggested_id: str,
        resource_kind: str,
        content_type: str,
        filename: str,
    ) -> StoredBlob:
        ext = PurePosixPath(filename or "").suffix.lower()
        storage_id = f"{folder}/{suggested_id}{ext}"
        path = self._resolve(storage_id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise UploadFailed(f"Could not store {filename or storage_id}: {e}") from e

        return StoredBlob(
            url=f"{self._media_url}/{storage_id}",
            storage_id=storage_id,
            content_type=content_type,
            duration_seconds=None,  # no media probing on local disk
        )

    def delete(self, storage_id: str, *, resource_kind: str) -> None:
        path = self._resolve(storage_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise UploadFailed(f"Could not delete {storage_id}: {e}") from e


def get_blob_store() -> BlobStore:
    """FastAPI dependency returning the configured blob store."""
    return LocalBlobStore(settings.UPLOAD_DIR, settings.MEDIA_URL)
