"""
Entry selection by path filters and extension.
"""
import posixpath
from typing import Iterable, Optional, Sequence


def is_directory_marker(name: str) -> bool:
    """True when the entry name has no final file segment (e.g. "docs/")."""
    return posixpath.basename(name) == ""


def matches_path_filters(name: str, filters: Sequence[str]) -> bool:
    """Bidirectional containment: a filter may be a fragment of the entry name
    or the entry name a fragment of the filter. No filters matches everything."""
    if not filters:
        return True
    return any(f in name or name in f for f in filters)


def matches_extension(name: str, extension: Optional[str]) -> bool:
    return extension is None or name.endswith(extension)


class EntryMatcher:
    """Decides inclusion for already-normalized entry names."""

    def __init__(self, path_filters: Iterable[str] = (), extension: Optional[str] = None):
        self.path_filters = list(path_filters)
        self.extension = extension

    def matches_path(self, name: str) -> bool:
        return matches_path_filters(name, self.path_filters)

    def matches_extension(self, name: str) -> bool:
        return matches_extension(name, self.extension)

