import asyncio
import io
from pathlib import Path
from zipfile import ZipFile

import pytest

from bundle_intake.config import settings
from bundle_intake.ingest import stage_upload, extract_bundle, UploadTooLargeError
from bundle_intake.storage import LocalStorage

class ChunkedUpload:
    """Async read() over fixed bytes, counting reads."""

    def __init__(self, data: bytes):
        self._buf = io.BytesIO(data)
        self.reads = 0

    async def read(self, size: int = -1) -> bytes:
        self.reads += 1
        return self._buf.read(size)

def make_zip(tmp_path: Path, files: dict) -> Path:
    zpath = tmp_path / "sample.zip"
    with ZipFile(zpath, "w") as z:
        for name, data in files.items():
            z.writestr(name, data)
    return zpath

def test_stage_upload_stops_reading_past_limit(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(settings, "MAX_ZIP_MB", 1)
    monkeypatch.setattr(settings, "COPY_CHUNK_BYTES", 256 * 1024)
    upload = ChunkedUpload(b"x" * (8 * 1024 * 1024))
    with pytest.raises(UploadTooLargeError):
        asyncio.run(stage_upload(tmp_path, upload, LocalStorage()))
    # 1 MiB fits in four chunks; the fifth crosses the limit
    assert upload.reads == 5
    assert not (tmp_path / "upload.zip").exists()

def test_stage_upload_within_limit(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(settings, "MAX_ZIP_MB", 1)
    upload = ChunkedUpload(b"PK-not-checked-here")
    path = asyncio.run(stage_upload(tmp_path, upload, LocalStorage()))
    assert path == tmp_path / "upload.zip"
    assert path.read_bytes() == b"PK-not-checked-here"

def test_extract_bundle_applies_settings(tmp_path: Path, monkeypatch):
    monkeypatch.setattr(settings, "MAX_FILES", 1)
    monkeypatch.setattr(settings, "MAX_FILE_MB", 1)
    monkeypatch.setattr(settings, "EXTENSION_FILTER", ".json")
    monkeypatch.setattr(settings, "CASE_SENSITIVE", False)
    z = make_zip(tmp_path, {"a.JSON": b"{}", "b.json": b"{}", "c.txt": b"c"})
    outcome = extract_bundle(z, tmp_path / "files")
    assert outcome.extracted_count == 1
    assert outcome.count_ceiling_hit
    assert (tmp_path / "files" / "a.json").exists()
