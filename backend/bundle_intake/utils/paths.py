"""
Path normalization shared by filter strings and archive entry names.

Zip entries always use "/" as separator, so anything compared against them is
normalized the same way first.
"""
from typing import Iterable, List, Optional


def normalize_path(path: str, case_sensitive: bool = False) -> str:
    """Replace backslashes with "/" and lowercase unless case_sensitive."""
    normalized = path.replace("\\", "/")
    if not case_sensitive:
        normalized = normalized.lower()
    return normalized


def normalize_paths(paths: Optional[Iterable[str]], case_sensitive: bool = False) -> List[str]:
    if paths is None:
        return []
    return [normalize_path(p, case_sensitive) for p in paths]


def normalize_string_for_path(value: str) -> str:
    """Make an arbitrary label usable as a single path segment.

    Replaces ':', ' ', '/' and '\\' with '_'.
    """
    return value.replace(":", "_").replace(" ", "_").replace("/", "_").replace("\\", "_")
