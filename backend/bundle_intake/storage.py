"""Filesystem port used by the extraction engine and the intake pipeline.

The engine only needs ensure_dir/write_stream/exists; the rest are the helper
operations the service uses around it (listing, moving, cleanup, stream copy).
"""
from __future__ import annotations
import fnmatch
import inspect
import io
import logging
import os
import shutil
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Dict, Iterable, List, Optional, Set, Union

from .config import settings

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class StreamLimitExceeded(Exception):
    """Stream copy crossed its byte limit; the partial file was removed."""
    pass


class Storage:
    # Used by the extraction engine
    def ensure_dir(self, path: PathLike) -> None: raise NotImplementedError
    def write_stream(self, path: PathLike, source: BinaryIO) -> int: raise NotImplementedError
    def exists(self, path: PathLike) -> bool: raise NotImplementedError

    def real_path(self, path: PathLike) -> Path:
        """Absolute path used for containment checks."""
        return Path(os.path.abspath(path))

    # Helper operations
    def delete_directory(self, path: PathLike) -> None: raise NotImplementedError
    def delete_file(self, path: PathLike) -> None: raise NotImplementedError
    def get_files(self, directory: PathLike, include_subdirectories: bool = False,
                  search_pattern: Optional[str] = None) -> List[Path]: raise NotImplementedError
    def get_directories(self, directory: PathLike) -> List[Path]: raise NotImplementedError
    def directory_exists(self, path: PathLike) -> bool: raise NotImplementedError
    def move_file(self, source: PathLike, destination: PathLike) -> None: raise NotImplementedError

    def create_directory(self, path: PathLike) -> None:
        self.ensure_dir(path)

    async def save_stream_to_file(self, stream, file_path: PathLike,
                                  chunk_size: Optional[int] = None,
                                  max_bytes: Optional[int] = None) -> int:
        """Copy a byte stream into a new file, creating parent directories first.

        Accepts plain file objects and objects with an async read() such as
        fastapi.UploadFile; async reads are awaited between chunks. Reading
        stops as soon as more than max_bytes have arrived.

        Raises:
            StreamLimitExceeded: If the stream is longer than max_bytes
        """
        chunk_size = chunk_size or settings.COPY_CHUNK_BYTES
        self.ensure_dir(Path(file_path).parent)
        buffer = io.BytesIO()
        while True:
            chunk = stream.read(chunk_size)
            if inspect.isawaitable(chunk):
                chunk = await chunk
            if not chunk:
                break
            if max_bytes is not None and buffer.tell() + len(chunk) > max_bytes:
                raise StreamLimitExceeded(f"Stream exceeds {max_bytes} bytes")
            buffer.write(chunk)
        buffer.seek(0)
        written = self.write_stream(file_path, buffer)
        logger.debug(f"Saved stream to {file_path} ({written} bytes)")
        return written


class LocalStorage(Storage):
    """Filesystem-backed implementation."""

    def ensure_dir(self, path: PathLike) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)

    def write_stream(self, path: PathLike, source: BinaryIO) -> int:
        with open(path, "wb") as out:
            shutil.copyfileobj(source, out)
            return out.tell()

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def real_path(self, path: PathLike) -> Path:
        # Follows symlinks already on disk
        return Path(path).resolve(strict=False)

    def delete_directory(self, path: PathLike) -> None:
        shutil.rmtree(path)

    def delete_file(self, path: PathLike) -> None:
        Path(path).unlink()

    def get_files(self, directory: PathLike, include_subdirectories: bool = False,
                  search_pattern: Optional[str] = None) -> List[Path]:
        pattern = search_pattern or "*"
        root = Path(directory)
        candidates = root.rglob(pattern) if include_subdirectories else root.glob(pattern)
        return sorted(p for p in candidates if p.is_file())

    def get_directories(self, directory: PathLike) -> List[Path]:
        return sorted(p for p in Path(directory).iterdir() if p.is_dir())

    def directory_exists(self, path: PathLike) -> bool:
        return Path(path).is_dir()

    def move_file(self, source: PathLike, destination: PathLike) -> None:
        destination = Path(destination)
        if destination.exists():
            return
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))

    async def save_stream_to_file(self, stream, file_path: PathLike,
                                  chunk_size: Optional[int] = None,
                                  max_bytes: Optional[int] = None) -> int:
        chunk_size = chunk_size or settings.COPY_CHUNK_BYTES
        file_path = Path(file_path)
        self.ensure_dir(file_path.parent)
        written = 0
        exceeded = False
        with open(file_path, "wb") as f:
            while True:
                chunk = stream.read(chunk_size)
                if inspect.isawaitable(chunk):
                    chunk = await chunk
                if not chunk:
                    break
                if max_bytes is not None and written + len(chunk) > max_bytes:
                    exceeded = True
                    break
                f.write(chunk)
                written += len(chunk)
        if exceeded:
            file_path.unlink()
            raise StreamLimitExceeded(f"Stream exceeds {max_bytes} bytes")
        logger.debug(f"Saved stream to {file_path} ({written} bytes)")
        return written


class InMemoryStorage(Storage):
    """Dict-backed implementation for tests and dry runs.

    Paths are kept as absolute POSIX-style strings.
    """

    def __init__(self):
        self.files: Dict[str, bytes] = {}
        self.directories: Set[str] = set()

    @staticmethod
    def _key(path: PathLike) -> str:
        return str(PurePosixPath(Path(path).absolute()))

    def _add_parents(self, key: str) -> None:
        for parent in PurePosixPath(key).parents:
            self.directories.add(str(parent))

    def ensure_dir(self, path: PathLike) -> None:
        key = self._key(path)
        self.directories.add(key)
        self._add_parents(key)

    def write_stream(self, path: PathLike, source: BinaryIO) -> int:
        key = self._key(path)
        if str(PurePosixPath(key).parent) not in self.directories:
            raise FileNotFoundError(f"No such directory: {PurePosixPath(key).parent}")
        data = source.read()
        self.files[key] = data
        return len(data)

    def exists(self, path: PathLike) -> bool:
        key = self._key(path)
        return key in self.files or key in self.directories

    def read_bytes(self, path: PathLike) -> bytes:
        return self.files[self._key(path)]

    def _under(self, keys: Iterable[str], directory: PathLike, recursive: bool) -> List[str]:
        root = PurePosixPath(self._key(directory))
        found = []
        for key in keys:
            p = PurePosixPath(key)
            if p == root or root not in p.parents:
                continue
            if recursive or p.parent == root:
                found.append(key)
        return found

    def delete_directory(self, path: PathLike) -> None:
        key = self._key(path)
        if key not in self.directories:
            raise FileNotFoundError(f"No such directory: {path}")
        for f in self._under(list(self.files), path, recursive=True):
            del self.files[f]
        for d in self._under(list(self.directories), path, recursive=True):
            self.directories.discard(d)
        self.directories.discard(key)

    def delete_file(self, path: PathLike) -> None:
        key = self._key(path)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {path}")
        del self.files[key]

    def get_files(self, directory: PathLike, include_subdirectories: bool = False,
                  search_pattern: Optional[str] = None) -> List[Path]:
        keys = self._under(self.files, directory, include_subdirectories)
        if search_pattern:
            keys = [k for k in keys if fnmatch.fnmatch(PurePosixPath(k).name, search_pattern)]
        return sorted(Path(k) for k in keys)

    def get_directories(self, directory: PathLike) -> List[Path]:
        return sorted(Path(k) for k in self._under(self.directories, directory, recursive=False))

    def directory_exists(self, path: PathLike) -> bool:
        return self._key(path) in self.directories

    def move_file(self, source: PathLike, destination: PathLike) -> None:
        if self.exists(destination):
            return
        key = self._key(source)
        if key not in self.files:
            raise FileNotFoundError(f"No such file: {source}")
        data = self.files.pop(key)
        self.ensure_dir(Path(destination).parent)
        self.files[self._key(destination)] = data
