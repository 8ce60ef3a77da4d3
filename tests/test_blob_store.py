"""Tests for the filesystem blob store and bounded upload reading."""

import io
from types import SimpleNamespace

import pytest

from edunexus.errors import UploadFailed, ValidationError
from edunexus.services.blob_store import LocalBlobStore, read_upload


class TestLocalBlobStore:
    def test_upload_writes_file_and_returns_url(self, tmp_path):
        store = LocalBlobStore(str(tmp_path), "/media/")
        blob = store.upload(
            b"hello",
            folder="assignments",
            suggested_id="a1_s1_0",
            resource_kind="auto",
            content_type="text/plain",
            filename="Notes.TXT",
        )

        assert blob.storage_id == "assignments/a1_s1_0.txt"
        assert blob.url == "/media/assignments/a1_s1_0.txt"
        assert blob.content_type == "text/plain"
        assert blob.duration_seconds is None
        assert (tmp_path / "assignments" / "a1_s1_0.txt").read_bytes() == b"hello"

    def test_delete_removes_file(self, tmp_path):
        store = LocalBlobStore(str(tmp_path), "/media")
        blob = store.upload(
            b"\x00", folder="lectures", suggested_id="c1_l1", resource_kind="video",
            content_type="video/mp4", filename="intro.mp4",
        )
        store.delete(blob.storage_id, resource_kind="video")
        assert not (tmp_path / "lectures" / "c1_l1.mp4").exists()

    def test_delete_missing_is_quiet(self, tmp_path):
        LocalBlobStore(str(tmp_path), "/media").delete("lectures/nothing.mp4", resource_kind="video")

    def test_paths_cannot_escape_root(self, tmp_path):
        store = LocalBlobStore(str(tmp_path / "uploads"), "/media")
        with pytest.raises(UploadFailed):
            store.delete("../outside.txt", resource_kind="auto")
        with pytest.raises(UploadFailed):
            store.upload(
                b"x", folder="..", suggested_id="escape", resource_kind="auto",
                content_type="text/plain", filename="x.txt",
            )

    def test_write_failure_raises_upload_failed(self, tmp_path):
        blocker = tmp_path / "assignments"
        blocker.write_text("a file where a directory should be")
        store = LocalBlobStore(str(tmp_path), "/media")
        with pytest.raises(UploadFailed):
            store.upload(
                b"x", folder="assignments", suggested_id="a", resource_kind="auto",
                content_type="text/plain", filename="x.txt",
            )


class RecordingFile(io.BytesIO):
    """BytesIO that remembers how many bytes each read handed out."""

    def __init__(self, data):
        super().__init__(data)
        self.reads = []

    def read(self, size=-1):
        chunk = super().read(size)
        self.reads.append(len(chunk))
        return chunk


def _upload(data, size=None, filename="answer.pdf", content_type="application/pdf"):
    return SimpleNamespace(
        filename=filename, content_type=content_type, size=size, file=RecordingFile(data)
    )


class TestReadUpload:
    def test_small_file_is_read(self):
        incoming = read_upload(_upload(b"hello", size=5), limit=10, field="files", default_name="attachment")
        assert incoming.data == b"hello"
        assert incoming.filename == "answer.pdf"
        assert incoming.content_type == "application/pdf"

    def test_declared_oversize_rejected_without_reading(self):
        upload = _upload(b"x" * 5_000_000, size=5_000_000)
        with pytest.raises(ValidationError, match="exceeds 10 bytes limit") as exc:
            read_upload(upload, limit=10, field="files", default_name="attachment")
        assert exc.value.field == "files"
        assert upload.file.reads == []

    def test_undeclared_oversize_stops_after_limit(self):
        """Without a declared size only limit + 1 bytes are ever pulled into memory."""
        upload = _upload(b"x" * 5_000_000, size=None)
        with pytest.raises(ValidationError):
            read_upload(upload, limit=10, field="files", default_name="attachment")
        assert upload.file.reads == [11]

    def test_missing_metadata_gets_defaults(self):
        upload = _upload(b"\x00", size=1, filename="", content_type=None)
        incoming = read_upload(upload, limit=10, field="video", default_name="video")
        assert incoming.filename == "video"
        assert incoming.content_type == "application/octet-stream"
