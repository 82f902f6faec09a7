"""Settings loading and the immutable template-engine configuration."""

from __future__ import annotations

import json
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

from .errors import InvalidConfiguration

_ENV_REFERENCE = re.compile(r"%([^%\\/]+)%|\$\{([^}]+)\}|\$([A-Z_][A-Z0-9_]*)")
_SEPARATOR_RUN = re.compile(r"([\\/])[\\/]+")
_DRIVE_ROOT = re.compile(r"^[A-Za-z]:[\\/]$")
_UNC_PREFIX = "\\\\"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def expand_environment_variables(value: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Expand ``%VAR%``, ``${VAR}`` and ``$VAR`` references in a single pass.

    References to unset (or empty) variables are left as written. Expanded
    values are not scanned again.
    """
    env = os.environ if environ is None else environ

    def _lookup(match: re.Match) -> str:
        name = match.group(1) or match.group(2) or match.group(3)
        return env.get(name) or match.group(0)

    return _ENV_REFERENCE.sub(_lookup, value)


def _split_unc_prefix(value: str) -> tuple[str, str]:
    if value.startswith(_UNC_PREFIX) and len(value) > 2 and value[2] not in "\\/":
        return _UNC_PREFIX, value[2:]
    return "", value


def _collapse_separators(value: str) -> str:
    prefix, rest = _split_unc_prefix(value)
    rest = _SEPARATOR_RUN.sub(r"\1", rest)
    if _DRIVE_ROOT.match(rest) or rest in ("/", "\\"):
        return prefix + rest
    return prefix + rest.rstrip("\\/")


def normalize_path(raw_path: Optional[str], environ: Optional[Mapping[str, str]] = None) -> str:
    """Expand environment variables, collapse doubled separators, drop trailing separators.

    A bare root (``/``, ``C:\\``) keeps its separator.
    """
    expanded = expand_environment_variables((raw_path or "").strip(), environ)
    normalized = _collapse_separators(expanded)
    if not normalized:
        raise InvalidConfiguration("Templates path must not be empty")
    return normalized


@dataclass(frozen=True)
class Configuration:
    templates_path: str
    hide_file_extensions: bool = True
    hide_sorting_prefix: bool = False
    replace_variables_in_filename: bool = False
    variables: Mapping[str, str] = field(default_factory=dict)
    encoding: str = "utf-8"

    def __post_init__(self) -> None:
        object.__setattr__(self, "templates_path", normalize_path(self.templates_path))
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))
        self.validate()

    def validate(self) -> None:
        if not self.templates_path or not self.templates_path.strip():
            raise InvalidConfiguration("Templates path must not be empty")
        if _collapse_separators(self.templates_path) != self.templates_path:
            raise InvalidConfiguration(
                f"Templates path has doubled or trailing separators: {self.templates_path}"
            )
        for key, value in self.variables.items():
            if not isinstance(key, str) or not key or not isinstance(value, str):
                raise InvalidConfiguration(f"Custom variable must map a name to a string: {key!r}")


@dataclass(frozen=True)
class Settings:
    templates_path: str
    hide_file_extensions: bool
    hide_sorting_prefix: bool
    replace_variables_in_filename: bool
    variables: Dict[str, str]
    encoding: str
    db_url: str
    log_level: str
    max_recent_templates: int


def default_templates_path(platform: str = sys.platform) -> str:
    home = Path.home()
    if platform == "win32":
        local_app_data = os.getenv("LOCALAPPDATA") or str(home / "AppData" / "Local")
        return str(Path(local_app_data) / "Microsoft" / "PowerToys" / "NewPlus" / "Templates")
    if platform == "darwin":
        return str(home / "Documents" / "NewPlus Templates")
    return str(home / ".newplus" / "templates")


def _default_db_url() -> str:
    return f"sqlite:///{Path.home() / '.newplus' / 'newplus.db'}"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise InvalidConfiguration(f"{name} must be a boolean, got {raw!r}")


def _env_variables(name: str) -> Dict[str, str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidConfiguration(f"{name} is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict) or not all(isinstance(v, str) for v in payload.values()):
        raise InvalidConfiguration(f"{name} must be a JSON object of string values")
    return payload


def _env_int(name: str, default: int, low: int, high: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise InvalidConfiguration(f"{name} must be an integer, got {raw!r}") from exc
    return max(low, min(high, value))


def load_settings() -> Settings:
    load_dotenv()

    return Settings(
        templates_path=os.getenv("NEWPLUS_TEMPLATES_PATH") or default_templates_path(),
        hide_file_extensions=_env_flag("NEWPLUS_HIDE_FILE_EXTENSIONS", True),
        hide_sorting_prefix=_env_flag("NEWPLUS_HIDE_SORTING_PREFIX", False),
        replace_variables_in_filename=_env_flag("NEWPLUS_REPLACE_VARIABLES_IN_FILENAME", False),
        variables=_env_variables("NEWPLUS_VARIABLES"),
        encoding=os.getenv("NEWPLUS_ENCODING", "utf-8"),
        db_url=os.getenv("NEWPLUS_DB_URL", _default_db_url()),
        log_level=os.getenv("NEWPLUS_LOG_LEVEL", "INFO"),
        max_recent_templates=_env_int("NEWPLUS_MAX_RECENT_TEMPLATES", 10, 1, 50),
    )


def build_configuration(settings: Settings) -> Configuration:
    # Configuration normalizes (and expands) the path exactly once.
    templates_path = os.path.expanduser(settings.templates_path.strip())
    if not os.path.isabs(normalize_path(templates_path)):
        templates_path = os.path.join(str(Path.home()), templates_path)

    return Configuration(
        templates_path=templates_path,
        hide_file_extensions=settings.hide_file_extensions,
        hide_sorting_prefix=settings.hide_sorting_prefix,
        replace_variables_in_filename=settings.replace_variables_in_filename,
        variables=settings.variables,
        encoding=settings.encoding,
    )


def ensure_runtime_directories(settings: Settings, configuration: Configuration) -> None:
    Path(configuration.templates_path).mkdir(parents=True, exist_ok=True)

    if settings.db_url.startswith("sqlite:///"):
        db_file = Path(settings.db_url.replace("sqlite:///", "", 1))
        if db_file.is_absolute() and db_file.parent != Path("/"):
            db_file.parent.mkdir(parents=True, exist_ok=True)
