"""Filesystem template discovery and validation."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import InitVar, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .config import Configuration
from .errors import TemplatesRootNotFound, TemplateValidationError, ValidationErrorKind
from .filesystem import FileSystem, LocalFileSystem, is_directory, is_hidden

logger = logging.getLogger(__name__)

TEMPLATE_METADATA_FILE = "template.json"
SORT_PREFIX_PATTERN = re.compile(r"^\d+[ ._-]+")


class TemplateType(str, Enum):
    FILE = "file"
    FOLDER = "folder"


@dataclass(frozen=True)
class TemplateFile:
    relative_path: str
    content: str


@dataclass(frozen=True)
class Template:
    """A validated file or folder template.

    Construction fails with ``TemplateValidationError`` when the name is empty,
    the path does not exist, or the declared type disagrees with what is on disk.
    Checks run in that order, against ``fs`` when one is given.
    """

    name: str
    original_name: str
    path: Path
    type: TemplateType
    relative_name: str
    is_directory: bool
    stat: Optional[os.stat_result] = None
    files: Tuple[TemplateFile, ...] = ()
    description: str = ""
    category: Optional[str] = None
    tags: Tuple[str, ...] = ()
    fs: InitVar[Optional[FileSystem]] = None

    def __post_init__(self, fs: Optional[FileSystem]) -> None:
        path = Path(self.path)
        object.__setattr__(self, "path", path)

        if not self.name or not self.name.strip():
            raise TemplateValidationError(
                ValidationErrorKind.EMPTY_NAME, f"Template name is empty for {path}", path
            )

        try:
            actual = (fs or LocalFileSystem()).stat(path)
        except OSError as exc:
            raise TemplateValidationError(
                ValidationErrorKind.PATH_NOT_FOUND, f"Template path does not exist: {path} ({exc.strerror})", path
            ) from exc

        try:
            declared = TemplateType(self.type)
        except ValueError as exc:
            raise TemplateValidationError(
                ValidationErrorKind.TYPE_MISMATCH, f"Unknown template type {self.type!r} for {path}", path
            ) from exc

        actual_is_dir = is_directory(actual)
        snapshot = self.stat if self.stat is not None else actual
        if (
            (declared is TemplateType.FOLDER) != actual_is_dir
            or bool(self.is_directory) != actual_is_dir
            or is_directory(snapshot) != actual_is_dir
        ):
            kind = "directory" if actual_is_dir else "file"
            raise TemplateValidationError(
                ValidationErrorKind.TYPE_MISMATCH,
                f"Template declared as {declared.value} but {path} is a {kind}",
                path,
            )

        object.__setattr__(self, "type", declared)
        object.__setattr__(self, "stat", snapshot)
        object.__setattr__(self, "files", tuple(self.files))
        object.__setattr__(self, "tags", tuple(self.tags))


@dataclass(frozen=True)
class TemplateDiscoveryOptions:
    recursive: bool = True
    type: Optional[TemplateType] = None
    category: Optional[str] = None
    tags: Tuple[str, ...] = ()
    include_hidden: bool = False


@dataclass
class DiscoveryResult:
    templates: List[Template] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def strip_sorting_prefix(name: str) -> str:
    stripped = SORT_PREFIX_PATTERN.sub("", name, count=1)
    return stripped or name


def derive_display_name(
    original_name: str,
    is_file: bool,
    hide_sorting_prefix: bool,
    hide_file_extensions: bool,
) -> str:
    name = original_name
    if hide_sorting_prefix:
        name = strip_sorting_prefix(name)
    if hide_file_extensions and is_file:
        stem, _ = os.path.splitext(name)
        name = stem or name
    return name


def _read_metadata(folder: Path, fs: FileSystem) -> Dict[str, Any]:
    meta_path = folder / TEMPLATE_METADATA_FILE
    if not fs.exists(meta_path):
        return {}
    try:
        payload = json.loads(fs.read_file_text(meta_path))
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValueError(f"Invalid {TEMPLATE_METADATA_FILE} in {folder}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"{meta_path} must contain a JSON object")
    return payload


def _load_folder_files(
    directory: Path,
    prefix: str,
    recursive: bool,
    fs: FileSystem,
    warnings: List[str],
) -> List[TemplateFile]:
    files: List[TemplateFile] = []
    for child in fs.list_children(directory):
        if not prefix and child.name == TEMPLATE_METADATA_FILE:
            continue
        relative = f"{prefix}/{child.name}" if prefix else child.name

        if is_directory(fs.stat(child)):
            if recursive:
                files.extend(_load_folder_files(child, relative, recursive, fs, warnings))
            continue

        try:
            content = fs.read_file_text(child)
        except UnicodeDecodeError as exc:
            message = f"Skipped non-text file {child}: {exc.reason}"
            logger.warning(message)
            warnings.append(message)
            continue
        files.append(TemplateFile(relative_path=relative, content=content))
    return files


def _build_template(
    child: Path,
    child_stat: os.stat_result,
    configuration: Configuration,
    options: TemplateDiscoveryOptions,
    fs: FileSystem,
    warnings: List[str],
) -> Template:
    directory = is_directory(child_stat)
    original_name = child.name
    name = derive_display_name(
        original_name,
        is_file=not directory,
        hide_sorting_prefix=configuration.hide_sorting_prefix,
        hide_file_extensions=configuration.hide_file_extensions,
    )
    relative_name = strip_sorting_prefix(original_name) if configuration.hide_sorting_prefix else original_name

    metadata: Dict[str, Any] = {}
    if directory:
        metadata = _read_metadata(child, fs)
        files = _load_folder_files(child, "", options.recursive, fs, warnings)
    else:
        files = [TemplateFile(relative_path=original_name, content=fs.read_file_text(child))]

    if "name" in metadata:
        name = str(metadata["name"] or "").strip()

    tags = metadata.get("tags") or []
    if isinstance(tags, str):
        tags = [tags]
    if not isinstance(tags, list):
        raise ValueError(f"{TEMPLATE_METADATA_FILE} tags must be a string or a list in {child}")
    category = metadata.get("category")
    if category is not None and not isinstance(category, str):
        raise ValueError(f"{TEMPLATE_METADATA_FILE} category must be a string in {child}")

    return Template(
        name=name,
        original_name=original_name,
        path=child,
        type=TemplateType.FOLDER if directory else TemplateType.FILE,
        relative_name=relative_name,
        is_directory=directory,
        stat=child_stat,
        files=tuple(files),
        description=str(metadata.get("description", "")),
        category=category,
        tags=tuple(str(tag) for tag in tags),
        fs=fs,
    )


def _matches(template: Template, options: TemplateDiscoveryOptions) -> bool:
    if options.category and template.category != options.category:
        return False
    if options.tags and not set(options.tags) & set(template.tags):
        return False
    return True


def list_templates(
    configuration: Configuration,
    options: Optional[TemplateDiscoveryOptions] = None,
    fs: Optional[FileSystem] = None,
) -> DiscoveryResult:
    """Build a Template per top-level entry of the templates root.

    Entries that fail to load or validate become warnings; only a missing
    root aborts the scan.
    """
    options = options or TemplateDiscoveryOptions()
    fs = fs or LocalFileSystem(configuration.encoding)
    root = Path(configuration.templates_path)

    try:
        root_stat = fs.stat(root)
    except OSError:
        raise TemplatesRootNotFound(str(root)) from None
    if not is_directory(root_stat):
        raise TemplatesRootNotFound(str(root))

    result = DiscoveryResult()
    for child in fs.list_children(root):
        try:
            child_stat = fs.stat(child)
        except OSError as exc:
            message = f"Skipped template {child}: {exc}"
            logger.warning(message)
            result.warnings.append(message)
            continue

        if is_hidden(child, child_stat) and not options.include_hidden:
            continue
        if options.type is not None:
            kind = TemplateType.FOLDER if is_directory(child_stat) else TemplateType.FILE
            if kind != TemplateType(options.type):
                continue

        try:
            template = _build_template(child, child_stat, configuration, options, fs, result.warnings)
        except (ValueError, OSError) as exc:
            message = f"Skipped template {child}: {exc}"
            logger.warning(message)
            result.warnings.append(message)
            continue

        if _matches(template, options):
            result.templates.append(template)

    logger.info("Discovered %s templates in %s", len(result.templates), root)
    return result


def resolve_template(templates: Sequence[Template], template_name: str) -> Template:
    for template in templates:
        if template.name == template_name:
            return template
    for template in templates:
        if template.original_name == template_name:
            return template

    available = ", ".join(t.name for t in templates) or "none"
    raise FileNotFoundError(f"Template not found: {template_name}. Available templates: {available}.")
