from pydantic import BaseModel, Field
from typing import List

class IngestResponse(BaseModel):
    bundleId: str = Field(..., description="Bundle identifier")
    extracted: bool = Field(..., description="Whether at least one file was written")
    extractedCount: int = Field(..., description="Number of files written")
    totalEntries: int = Field(0, description="Entries in the uploaded archive")
    sizeCeilingHit: bool = Field(False, description="At least one entry exceeded MAX_FILE_MB")
    countCeilingHit: bool = Field(False, description="Extraction stopped at MAX_FILES")
    skippedOversize: List[str] = Field(default_factory=list, description="Entries skipped for size")
    settingsHash: str = Field(..., description="Hash of the ceilings applied")

class BundleFilesResponse(BaseModel):
    bundleId: str
    files: List[str] = Field(default_factory=list, description="Bundle-relative paths of extracted files")
