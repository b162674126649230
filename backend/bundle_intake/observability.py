"""
Extraction metrics for bundle intake.
Counts what the engine wrote, skipped and rejected across archives.
"""
from typing import Dict, Any, List
from dataclasses import dataclass, field
from threading import Lock

@dataclass
class ExtractionMetrics:
    """Thread-safe metrics collector for extraction runs."""

    archives_processed: int = 0
    archives_empty: int = 0
    entries_extracted: int = 0
    entries_skipped_oversize: int = 0
    count_ceiling_hits: int = 0
    paths_rejected: int = 0

    # Sample of rejected entry names, capped
    rejected_samples: List[str] = field(default_factory=list)

    _lock: Lock = field(default_factory=Lock)

    def record_archive(self, extracted: int, empty: bool = False):
        with self._lock:
            self.archives_processed += 1
            self.entries_extracted += extracted
            if empty:
                self.archives_empty += 1

    def record_oversize_skip(self):
        with self._lock:
            self.entries_skipped_oversize += 1

    def record_count_ceiling(self):
        with self._lock:
            self.count_ceiling_hits += 1

    def record_path_rejected(self, entry_name: str, sample_limit: int = 10):
        with self._lock:
            self.paths_rejected += 1
            if len(self.rejected_samples) < sample_limit:
                self.rejected_samples.append(entry_name)

    def get_metrics_summary(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "archives": {
                    "processed": self.archives_processed,
                    "empty": self.archives_empty,
                },
                "entries": {
                    "extracted": self.entries_extracted,
                    "skipped_oversize": self.entries_skipped_oversize,
                },
                "ceilings": {
                    "count_hits": self.count_ceiling_hits,
                },
                "rejections": {
                    "paths": self.paths_rejected,
                    "samples": list(self.rejected_samples),
                },
            }

    def reset(self):
        with self._lock:
            self.archives_processed = 0
            self.archives_empty = 0
            self.entries_extracted = 0
            self.entries_skipped_oversize = 0
            self.count_ceiling_hits = 0
            self.paths_rejected = 0
            self.rejected_samples = []

# Global metrics collector instance
_metrics_collector = ExtractionMetrics()

def get_metrics_collector() -> ExtractionMetrics:
    """Get the global metrics collector instance."""
    return _metrics_collector
