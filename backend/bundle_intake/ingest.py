from fastapi import UploadFile
from pathlib import Path
from typing import Optional, Sequence
import logging

from .config import settings
from .storage import Storage, LocalStorage, StreamLimitExceeded
from .utils.zip_safe import ExtractionRequest, ExtractionOutcome, ZipExtractor, ZipExtractionError

logger = logging.getLogger(__name__)

class UploadTooLargeError(ZipExtractionError):
    """Staged upload exceeds MAX_ZIP_MB."""
    pass

async def stage_upload(bundle_dir: Path, upload: UploadFile, storage: Optional[Storage] = None) -> Path:
    """Save uploaded zip to disk; return path."""
    storage = storage or LocalStorage()
    tmp_zip = bundle_dir / "upload.zip"
    max_bytes = settings.MAX_ZIP_MB * 1024 * 1024
    try:
        await storage.save_stream_to_file(upload, tmp_zip, max_bytes=max_bytes)
    except StreamLimitExceeded:
        raise UploadTooLargeError(f"Zip exceeds {max_bytes} bytes")
    return tmp_zip

def extract_bundle(zip_path: Path, files_dir: Path, *,
                   paths: Optional[Sequence[str]] = None,
                   extension: Optional[str] = None,
                   case_sensitive: Optional[bool] = None,
                   storage: Optional[Storage] = None) -> ExtractionOutcome:
    """Extract a staged bundle with the configured ceilings."""
    with open(zip_path, "rb") as source:
        request = ExtractionRequest(
            source_stream=source,
            output_root=files_dir,
            path_filters=paths,
            extension_filter=extension if extension is not None else settings.EXTENSION_FILTER,
            max_entry_count=settings.MAX_FILES,
            max_entry_size=settings.MAX_FILE_MB * 1024 * 1024,
            case_sensitive=settings.CASE_SENSITIVE if case_sensitive is None else case_sensitive,
            fail_on_size_ceiling=settings.FAIL_ON_SIZE_CEILING,
        )
        return ZipExtractor(storage).extract(request)
