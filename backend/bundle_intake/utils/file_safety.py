"""
Destination resolution with protection against zip-slip.
"""
import os
from pathlib import Path
from typing import Union

PathLike = Union[str, Path]


def is_within_directory(directory: PathLike, target: PathLike, strict: bool = False) -> bool:
    """True when target lies inside directory.

    With strict=True the directory itself does not count as inside.
    """
    directory = os.path.abspath(directory)
    target = os.path.abspath(target)
    if strict and directory == target:
        return False
    return os.path.commonpath([directory]) == os.path.commonpath([directory, target])


def resolve_destination(output_root: PathLike, entry_name: str) -> Path:
    """Join an entry name onto the output root as an absolute path.

    Does not touch the filesystem. The result may lie outside output_root;
    check it with is_within_directory before writing.
    """
    return Path(os.path.abspath(os.path.join(str(output_root), entry_name)))
