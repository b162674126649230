from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

def _bool(env: str, default: bool = False) -> bool:
    v = os.getenv(env)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")

def _optional_str(env: str) -> Optional[str]:
    v = os.getenv(env)
    return v or None

@dataclass
class Settings:
    # Storage
    DATA_DIR: str = os.getenv("DATA_DIR", "data")

    # Ceilings applied to every uploaded bundle
    MAX_ZIP_MB: int = int(os.getenv("MAX_ZIP_MB", "40"))
    MAX_FILE_MB: int = int(os.getenv("MAX_FILE_MB", "2"))
    MAX_FILES: int = int(os.getenv("MAX_FILES", "1000"))

    # Filtering
    EXTENSION_FILTER: Optional[str] = _optional_str("EXTENSION_FILTER")
    CASE_SENSITIVE: bool = _bool("CASE_SENSITIVE", False)
    FAIL_ON_SIZE_CEILING: bool = _bool("FAIL_ON_SIZE_CEILING", True)

    # Stream copy
    COPY_CHUNK_BYTES: int = int(os.getenv("COPY_CHUNK_BYTES", str(1024 * 1024)))

    # CORS
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "http://localhost:3000")

settings = Settings()
