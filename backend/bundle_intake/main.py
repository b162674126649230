from __future__ import annotations
import json
import hashlib
import logging
import zipfile
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, UploadFile, File, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .models import IngestResponse, BundleFilesResponse
from .ingest import stage_upload, extract_bundle, UploadTooLargeError
from .observability import get_metrics_collector
from .storage import LocalStorage
from .utils.file_safety import is_within_directory
from .utils.id_gen import bundle_id as new_bundle_id
from .utils.paths import normalize_string_for_path
from .utils.zip_safe import SizeCeilingExceeded, PathTraversalRejected

logger = logging.getLogger(__name__)

app = FastAPI(title="Bundle Intake")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.CORS_ORIGINS] if settings.CORS_ORIGINS else ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

storage = LocalStorage()

def bundle_dir(bundle_id: str) -> Path:
    data_dir = Path(settings.DATA_DIR)
    path = data_dir / bundle_id
    if not is_within_directory(data_dir, path) or path.resolve() == data_dir.resolve():
        raise HTTPException(400, detail="Invalid bundle id")
    return path

def require_bundle(bundle_id: str) -> Path:
    path = bundle_dir(bundle_id)
    if not storage.directory_exists(path):
        raise HTTPException(404, detail="Bundle not found")
    return path

def _settings_hash() -> str:
    payload = {
        "MAX_ZIP_MB": settings.MAX_ZIP_MB,
        "MAX_FILES": settings.MAX_FILES,
        "MAX_FILE_MB": settings.MAX_FILE_MB,
        "EXTENSION_FILTER": settings.EXTENSION_FILTER,
        "CASE_SENSITIVE": settings.CASE_SENSITIVE,
        "FAIL_ON_SIZE_CEILING": settings.FAIL_ON_SIZE_CEILING,
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True).encode("utf-8")).hexdigest()[:16]

@app.get("/health")
def health():
    return {"ok": True}

@app.get("/metrics")
def metrics():
    return get_metrics_collector().get_metrics_summary()

@app.post("/bundles", response_model=IngestResponse)
async def ingest_bundle(
    file: UploadFile = File(...),
    paths: Optional[List[str]] = Query(None),
    extension: Optional[str] = None,
    case_sensitive: Optional[bool] = None,
    owner: str = "bundle",
):
    if not (file.filename or "").lower().endswith(".zip"):
        raise HTTPException(400, detail="Only .zip uploads supported")

    bid = new_bundle_id(normalize_string_for_path(owner))
    bdir = bundle_dir(bid)
    files_dir = bdir / "files"
    storage.create_directory(files_dir)

    try:
        tmp_zip = await stage_upload(bdir, file, storage)
    except UploadTooLargeError as e:
        storage.delete_directory(bdir)
        raise HTTPException(413, detail=str(e))

    try:
        outcome = extract_bundle(tmp_zip, files_dir, paths=paths, extension=extension,
                                 case_sensitive=case_sensitive, storage=storage)
    except SizeCeilingExceeded as e:
        storage.delete_directory(bdir)
        raise HTTPException(413, detail=str(e))
    except (PathTraversalRejected, zipfile.BadZipFile) as e:
        logger.warning(f"Rejected bundle {bid}: {e}")
        storage.delete_directory(bdir)
        raise HTTPException(400, detail=f"Extraction failed: {e}")
    except OSError as e:
        logger.error(f"Failed to extract bundle {bid}: {e}")
        storage.delete_directory(bdir)
        raise HTTPException(400, detail=f"Extraction failed: {e}")
    finally:
        if storage.exists(tmp_zip):
            storage.delete_file(tmp_zip)

    return IngestResponse(
        bundleId=bid,
        extracted=outcome.succeeded,
        extractedCount=outcome.extracted_count,
        totalEntries=outcome.total_entries,
        sizeCeilingHit=outcome.size_ceiling_hit,
        countCeilingHit=outcome.count_ceiling_hit,
        skippedOversize=outcome.skipped_oversize,
        settingsHash=_settings_hash(),
    )

@app.get("/bundles/{bundle_id}/files", response_model=BundleFilesResponse)
def list_bundle_files(bundle_id: str, pattern: Optional[str] = None):
    files_dir = require_bundle(bundle_id) / "files"
    if not storage.directory_exists(files_dir):
        return BundleFilesResponse(bundleId=bundle_id, files=[])
    files = storage.get_files(files_dir, include_subdirectories=True, search_pattern=pattern)
    return BundleFilesResponse(
        bundleId=bundle_id,
        files=[p.relative_to(files_dir).as_posix() for p in files],
    )

@app.delete("/bundles/{bundle_id}")
def delete_bundle(bundle_id: str):
    storage.delete_directory(require_bundle(bundle_id))
    return {"ok": True}
