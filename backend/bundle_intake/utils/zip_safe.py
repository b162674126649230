"""
Filtered zip extraction with count/size ceilings and zip-slip protection.
"""
import io
import logging
import threading
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, List, Optional, Sequence, Union

from ..observability import ExtractionMetrics, get_metrics_collector
from ..storage import LocalStorage, Storage
from .file_safety import is_within_directory, resolve_destination
from .matching import EntryMatcher, is_directory_marker
from .paths import normalize_path, normalize_paths

logger = logging.getLogger(__name__)

class ZipExtractionError(Exception):
    """Zip extraction related errors."""
    pass

class SizeCeilingExceeded(ZipExtractionError):
    """Size ceiling was hit and nothing was extracted."""
    pass

class PathTraversalRejected(ZipExtractionError):
    """Entry resolves outside the output root, or a file entry onto the root itself."""

    def __init__(self, entry_name: str, destination: Path):
        super().__init__(f"Entry {entry_name} resolves outside the output root: {destination}")
        self.entry_name = entry_name
        self.destination = destination

class ExtractionCancelled(ZipExtractionError):
    """Cancellation was requested between entries."""
    pass


@dataclass
class ExtractionRequest:
    source_stream: BinaryIO
    output_root: Union[str, Path]
    path_filters: Optional[Sequence[str]] = None
    extension_filter: Optional[str] = None
    max_entry_count: Optional[int] = None
    max_entry_size: Optional[int] = None
    case_sensitive: bool = False
    fail_on_size_ceiling: bool = False
    cancel_event: Optional[threading.Event] = None


@dataclass
class ExtractionOutcome:
    extracted_count: int = 0
    size_ceiling_hit: bool = False
    count_ceiling_hit: bool = False
    total_entries: int = 0
    processed_entries: int = 0
    written_paths: List[Path] = field(default_factory=list)
    skipped_oversize: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.extracted_count > 0

    def __bool__(self) -> bool:
        return self.succeeded


def stream_is_empty(stream: BinaryIO) -> bool:
    """True only when the stream can report its length and that length is zero."""
    try:
        if not stream.seekable():
            return False
    except (AttributeError, ValueError):
        return False
    position = stream.tell()
    length = stream.seek(0, io.SEEK_END)
    stream.seek(position)
    return length <= 0


class ZipExtractor:
    """Single-pass extractor over the entries of one zip container."""

    def __init__(self, storage: Optional[Storage] = None,
                 metrics: Optional[ExtractionMetrics] = None):
        self.storage = storage or LocalStorage()
        self.metrics = metrics or get_metrics_collector()

    def _check_cancelled(self, request: ExtractionRequest) -> None:
        if request.cancel_event is not None and request.cancel_event.is_set():
            raise ExtractionCancelled("Extraction cancelled")

    def _destination(self, output_root: Path, entry_name: str, is_directory: bool) -> Path:
        # Files must land strictly below the root; a directory marker may name the root itself
        destination = resolve_destination(output_root, entry_name)
        if not is_within_directory(self.storage.real_path(output_root),
                                   self.storage.real_path(destination),
                                   strict=not is_directory):
            self.metrics.record_path_rejected(entry_name)
            raise PathTraversalRejected(entry_name, destination)
        return destination

    def extract(self, request: ExtractionRequest) -> ExtractionOutcome:
        """
        Extract the entries selected by the request.

        Args:
            request: Source stream, output root, filters and ceilings

        Returns:
            ExtractionOutcome with counters for this pass

        Raises:
            SizeCeilingExceeded: If opted in, the size ceiling was hit and nothing was written
            PathTraversalRejected: If a selected entry resolves outside the output root
            ExtractionCancelled: If the cancel event is set between entries
            zipfile.BadZipFile: If the container cannot be read
        """
        outcome = ExtractionOutcome()

        # Nothing in the stream, e.g. an update pushed without changes
        if stream_is_empty(request.source_stream):
            logger.info("Zip stream is empty, nothing to extract")
            self.metrics.record_archive(0, empty=True)
            return outcome

        case_sensitive = request.case_sensitive
        extension = request.extension_filter
        if extension is not None:
            extension = normalize_path(extension, case_sensitive)
        matcher = EntryMatcher(normalize_paths(request.path_filters, case_sensitive), extension)
        output_root = Path(request.output_root)
        max_count = request.max_entry_count
        max_size = request.max_entry_size

        with zipfile.ZipFile(request.source_stream, "r") as archive:
            infos = archive.infolist()
            outcome.total_entries = len(infos)

            for info in infos:
                self._check_cancelled(request)

                if max_count is not None and outcome.extracted_count >= max_count:
                    logger.warning(f"The maximum number of files to extract max_entry_count {max_count} "
                                   f"is exceeded. Total number of entries is {outcome.total_entries}, "
                                   f"processed {outcome.processed_entries}")
                    outcome.count_ceiling_hit = True
                    self.metrics.record_count_ceiling()
                    break

                outcome.processed_entries += 1
                entry_name = normalize_path(info.filename, case_sensitive)
                if not matcher.matches_path(entry_name):
                    continue

                is_directory = is_directory_marker(entry_name)
                destination = self._destination(output_root, entry_name, is_directory)
                if is_directory:
                    self.storage.ensure_dir(destination)
                    continue
                self.storage.ensure_dir(destination.parent)

                if not matcher.matches_extension(entry_name):
                    continue

                if max_size is not None and info.file_size > max_size:
                    logger.warning(f"Skipping file {info.filename} because max_entry_size {max_size} "
                                   f"is exceeded. Entry size is {info.file_size}.")
                    outcome.size_ceiling_hit = True
                    outcome.skipped_oversize.append(info.filename)
                    self.metrics.record_oversize_skip()
                    continue

                with archive.open(info) as entry_stream:
                    self.storage.write_stream(destination, entry_stream)
                outcome.extracted_count += 1
                outcome.written_paths.append(destination)

        self.metrics.record_archive(outcome.extracted_count)

        if request.fail_on_size_ceiling and outcome.size_ceiling_hit and outcome.extracted_count == 0:
            raise SizeCeilingExceeded("max_entry_size exceeded and no files were extracted")

        logger.info(f"Extracted {outcome.extracted_count} of {outcome.total_entries} entries to {output_root}")
        return outcome


def extract_zip_file(source_stream: BinaryIO, output_root: Union[str, Path],
                     paths_to_extract: Optional[Sequence[str]] = None,
                     extension_to_match: Optional[str] = None,
                     max_file_count: Optional[int] = None,
                     max_file_size: Optional[int] = None,
                     case_sensitive: bool = False,
                     fail_on_size_ceiling: bool = False, *,
                     storage: Optional[Storage] = None,
                     cancel_event: Optional[threading.Event] = None) -> bool:
    """Extract matching entries; True if at least one file was written."""
    request = ExtractionRequest(
        source_stream=source_stream,
        output_root=output_root,
        path_filters=paths_to_extract,
        extension_filter=extension_to_match,
        max_entry_count=max_file_count,
        max_entry_size=max_file_size,
        case_sensitive=case_sensitive,
        fail_on_size_ceiling=fail_on_size_ceiling,
        cancel_event=cancel_event,
    )
    return ZipExtractor(storage).extract(request).succeeded
