"""Turn a template plus a variable context into files on disk."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Callable, List, Optional, Sequence

from .errors import ConflictDeclined, WriteFailure
from .filesystem import FileSystem, LocalFileSystem, is_directory
from .templates import Template, TemplateType
from .variables import VariableContext, substitute

logger = logging.getLogger(__name__)

ConfirmOverwrite = Callable[[Sequence[Path]], bool]

INVALID_NAME_CHARS = re.compile(r'[<>:"|?*]')
RESERVED_WINDOWS_NAMES = re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])(\.|$)", re.IGNORECASE)


@dataclass(frozen=True)
class TemplateCreationResult:
    success: bool
    error: Optional[str] = None
    created_path: Optional[Path] = None
    overwritten: bool = False
    files_created: Optional[int] = None

    def __post_init__(self) -> None:
        if self.success and (self.created_path is None or self.files_created is None):
            raise ValueError("Successful result needs created_path and files_created")
        if not self.success and not self.error:
            raise ValueError("Failed result needs an error message")

    @classmethod
    def succeeded(cls, created_path: Path, files_created: int, overwritten: bool = False) -> "TemplateCreationResult":
        return cls(success=True, created_path=created_path, files_created=files_created, overwritten=overwritten)

    @classmethod
    def failed(cls, error: str) -> "TemplateCreationResult":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class PlannedFile:
    path: Path
    content: str


@dataclass
class MaterializationPlan:
    output_root: Path
    files: List[PlannedFile] = field(default_factory=list)
    conflicts: List[Path] = field(default_factory=list)


def validate_output_name(name: str) -> str:
    value = (name or "").strip()
    if not value:
        raise ValueError("Output name is required")
    if INVALID_NAME_CHARS.search(value):
        raise ValueError(f"Output name contains invalid characters: {value}")
    if RESERVED_WINDOWS_NAMES.match(value):
        raise ValueError(f"Output name is reserved on Windows: {value}")
    return value


def _safe_join(root: Path, relative: str) -> Path:
    parts = PurePosixPath(relative.replace("\\", "/")).parts
    if not parts or PureWindowsPath(relative).drive or relative.startswith(("/", "\\")) or ".." in parts:
        raise WriteFailure(root / relative, "resolved path escapes the output directory")
    return root.joinpath(*parts)


def plan_materialization(
    template: Template,
    target_directory: Path,
    context: VariableContext,
    replace_variables_in_filename: bool,
    output_name: Optional[str] = None,
    fs: Optional[FileSystem] = None,
) -> MaterializationPlan:
    """Compute output paths and contents and detect conflicts without writing anything."""
    fs = fs or LocalFileSystem()

    def _name(value: str) -> str:
        return substitute(value, context) if replace_variables_in_filename else value

    output_root = _safe_join(Path(target_directory), _name(output_name or template.relative_name))
    plan = MaterializationPlan(output_root=output_root)

    if template.type is TemplateType.FILE:
        content = template.files[0].content if template.files else ""
        plan.files.append(PlannedFile(output_root, substitute(content, context)))
    else:
        if fs.exists(output_root) and not is_directory(fs.stat(output_root)):
            plan.conflicts.append(output_root)
        for template_file in template.files:
            path = _safe_join(output_root, _name(template_file.relative_path))
            plan.files.append(PlannedFile(path, substitute(template_file.content, context)))

    plan.conflicts.extend(planned.path for planned in plan.files if fs.exists(planned.path))
    return plan


def materialize(
    template: Template,
    target_directory: Path,
    context: VariableContext,
    replace_variables_in_filename: bool = False,
    confirm_overwrite: Optional[ConfirmOverwrite] = None,
    output_name: Optional[str] = None,
    fs: Optional[FileSystem] = None,
) -> TemplateCreationResult:
    """Write ``template`` into ``target_directory``.

    Existing output paths are only overwritten when ``confirm_overwrite``
    returns True; without a callback a conflict is declined. Nothing is
    written before that decision. A write error stops the run and files
    already written stay on disk.
    """
    fs = fs or LocalFileSystem()

    try:
        plan = plan_materialization(
            template,
            target_directory,
            context,
            replace_variables_in_filename,
            output_name=output_name,
            fs=fs,
        )
    except WriteFailure as exc:
        logger.error("Cannot materialize %s: %s", template.name, exc)
        return TemplateCreationResult.failed(str(exc))

    overwritten = False
    if plan.conflicts:
        logger.info("Template %s conflicts with %s existing path(s)", template.name, len(plan.conflicts))
        if confirm_overwrite is None or not confirm_overwrite(list(plan.conflicts)):
            declined = ConflictDeclined(plan.conflicts)
            logger.info("%s", declined)
            return TemplateCreationResult.failed(str(declined))
        overwritten = True

    written = 0
    current = plan.output_root
    try:
        if template.type is TemplateType.FOLDER:
            fs.create_directory_recursive(plan.output_root)
        for planned in plan.files:
            current = planned.path
            fs.create_directory_recursive(planned.path.parent)
            fs.write_file_text(planned.path, planned.content)
            written += 1
    except OSError as exc:
        failure = WriteFailure(current, exc.strerror or str(exc))
        logger.error("%s (%s of %s files written, not rolled back)", failure, written, len(plan.files))
        return TemplateCreationResult.failed(str(failure))

    logger.info("Created %s from template %s (%s files)", plan.output_root, template.name, written)
    return TemplateCreationResult.succeeded(plan.output_root, files_created=written, overwritten=overwritten)
