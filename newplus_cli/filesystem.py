"""Filesystem capability used by discovery and materialization."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import List, Protocol

FILE_ATTRIBUTE_HIDDEN = 0x2


class FileSystem(Protocol):
    """The narrow set of filesystem operations the engine depends on."""

    def exists(self, path: Path) -> bool:
        ...

    def stat(self, path: Path) -> os.stat_result:
        ...

    def list_children(self, path: Path) -> List[Path]:
        ...

    def read_file_text(self, path: Path) -> str:
        ...

    def write_file_text(self, path: Path, content: str) -> None:
        ...

    def create_directory_recursive(self, path: Path) -> None:
        ...


class LocalFileSystem:
    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def exists(self, path: Path) -> bool:
        return path.exists()

    def stat(self, path: Path) -> os.stat_result:
        return path.stat()

    def list_children(self, path: Path) -> List[Path]:
        # scandir order, not sorted
        with os.scandir(path) as entries:
            return [Path(entry.path) for entry in entries]

    def read_file_text(self, path: Path) -> str:
        return path.read_bytes().decode(self.encoding)

    def write_file_text(self, path: Path, content: str) -> None:
        path.write_text(content, encoding=self.encoding)

    def create_directory_recursive(self, path: Path) -> None:
        path.mkdir(parents=True, exist_ok=True)


def is_directory(st: os.stat_result) -> bool:
    return stat.S_ISDIR(st.st_mode)


def is_hidden(path: Path, st: os.stat_result) -> bool:
    if path.name.startswith("."):
        return True
    return bool((getattr(st, "st_file_attributes", 0) or 0) & FILE_ATTRIBUTE_HIDDEN)
