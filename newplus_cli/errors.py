"""Error kinds raised by the template engine."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional


class NewPlusError(Exception):
    """Base class for every error raised by newplus_cli."""


class InvalidConfiguration(NewPlusError, ValueError):
    pass


class TemplatesRootNotFound(NewPlusError, FileNotFoundError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Templates directory not found or not a directory: {path}")


class ValidationErrorKind(str, Enum):
    EMPTY_NAME = "EmptyName"
    PATH_NOT_FOUND = "PathNotFound"
    TYPE_MISMATCH = "TypeMismatch"


class TemplateValidationError(NewPlusError, ValueError):
    def __init__(self, kind: ValidationErrorKind, message: str, path: Optional[Path] = None) -> None:
        self.kind = kind
        self.path = path
        super().__init__(f"[{kind.value}] {message}")


class ConflictDeclined(NewPlusError, RuntimeError):
    """Raised when existing output paths were not approved for overwrite."""

    def __init__(self, conflicts: Iterable[Path]) -> None:
        self.conflicts: List[Path] = list(conflicts)
        listed = ", ".join(str(p) for p in self.conflicts)
        super().__init__(f"Overwrite declined for existing path(s): {listed}")


class WriteFailure(NewPlusError, RuntimeError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to write {path}: {reason}")
