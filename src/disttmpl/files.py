"""File model for the build: single files and the collection the plugin works on."""

from __future__ import annotations

import fnmatch
import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class File(Protocol):
    name: str
    content: str


class FileCollection(Protocol):
    """The set of files known to the build."""

    @property
    def files(self) -> Sequence[File]: ...

    def find_files(self, finder: str) -> Sequence[File]: ...

    def find_by_name(self, name: str) -> Optional[File]: ...

    def add_file(self, file: File) -> None: ...

    def remove(self, file: File) -> None: ...


@dataclass(eq=False)
class InMemoryFile:
    """A file whose content lives in memory.

    Compared by identity, so two files with the same name and content are
    still distinct members of a collection.
    """

    name: str
    content: str = ""
    # permission bits to restore when written out
    mode: Optional[int] = None


@dataclass(eq=False)
class BinaryFile:
    """A file that is not UTF-8 text, passed through the build unchanged."""

    name: str
    data: bytes = b""
    mode: Optional[int] = None

    @property
    def content(self) -> str:
        raise ConfigurationError(f"{self.name} is not UTF-8 text and cannot be rendered")

    @content.setter
    def content(self, value: str) -> None:
        raise ConfigurationError(f"{self.name} is not UTF-8 text and cannot be replaced")


class InMemoryFileCollection:
    """List-backed FileCollection with finders registered as name globs."""

    def __init__(
        self,
        files: Iterable[File] = (),
        finders: Optional[Dict[str, List[str]]] = None,
    ) -> None:
        self._files: List[File] = []
        self.finders: Dict[str, List[str]] = dict(finders or {})
        for file in files:
            self.add_file(file)

    @property
    def files(self) -> List[File]:
        return list(self._files)

    def names(self) -> List[str]:
        return [f.name for f in self._files]

    def find_files(self, finder: str) -> List[File]:
        patterns = self.finders.get(finder)
        if patterns is None:
            raise ConfigurationError(f"Unknown finder: {finder}")
        return [
            f
            for f in self._files
            if any(fnmatch.fnmatchcase(f.name, p) for p in patterns)
        ]

    def find_by_name(self, name: str) -> Optional[File]:
        return next((f for f in self._files if f.name == name), None)

    def add_file(self, file: File) -> None:
        if self.find_by_name(file.name) is not None:
            raise ConfigurationError(f"Duplicate file name: {file.name}")
        self._files.append(file)

    def remove(self, file: File) -> None:
        self._files = [f for f in self._files if f is not file]


VCS_DIRS = frozenset({".git", ".hg", ".svn", ".bzr"})


def _read_file(path: Path, name: str) -> File:
    data = path.read_bytes()
    mode = stat.S_IMODE(path.stat().st_mode)
    try:
        # bytes.decode keeps line endings as they are on disk
        return InMemoryFile(name=name, content=data.decode("utf-8"), mode=mode)
    except UnicodeDecodeError:
        logger.debug(f"Keeping {name} as binary")
        return BinaryFile(name=name, data=data, mode=mode)


def load_directory(
    root: Path, finders: Optional[Dict[str, List[str]]] = None
) -> InMemoryFileCollection:
    """Read every regular file under ``root`` into a collection.

    File names are POSIX paths relative to ``root``. Version control
    directories are skipped. Files that are not UTF-8 are kept as BinaryFile.
    """
    if not root.is_dir():
        raise ConfigurationError(f"Source directory not found: {root}")
    collection = InMemoryFileCollection(finders=finders)
    for path in sorted(root.rglob("*")):
        relative = path.relative_to(root)
        if VCS_DIRS.intersection(relative.parts) or not path.is_file():
            continue
        collection.add_file(_read_file(path, relative.as_posix()))
    logger.debug(f"Loaded {len(collection.files)} files from {root}")
    return collection


def write_directory(collection: FileCollection, root: Path) -> List[Path]:
    """Write every file in the collection below ``root``."""
    written: List[Path] = []
    for file in collection.files:
        target = root / file.name
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(file, BinaryFile):
            target.write_bytes(file.data)
        else:
            target.write_bytes(file.content.encode("utf-8"))
        mode = getattr(file, "mode", None)
        if mode is not None:
            os.chmod(target, mode)
        written.append(target)
    logger.debug(f"Wrote {len(written)} files to {root}")
    return written
