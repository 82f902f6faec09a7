"""Placeholder variables: resolving a context and substituting it into text."""

from __future__ import annotations

import os
import random
import re
import string
import sys
import uuid
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Mapping, Optional

if TYPE_CHECKING:
    from .templates import Template

# {{ name }} or $NAME$
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*(\w+)\s*\}\}|\$([A-Z_][A-Z0-9_]*)\$")

NEW_NAME_VARIABLE = "NAME"

VariableContext = Mapping[str, str]


def _random_token(length: int = 6) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(random.choice(alphabet) for _ in range(length))


BUILTIN_VARIABLES: Dict[str, Callable[[datetime], str]] = {
    "DATE": lambda now: now.strftime("%Y-%m-%d"),
    "TIME": lambda now: now.strftime("%H:%M:%S"),
    "DATETIME": lambda now: now.strftime("%Y-%m-%d %H:%M:%S"),
    "TIMESTAMP": lambda now: str(int(now.timestamp() * 1000)),
    "YEAR": lambda now: f"{now.year:04d}",
    "MONTH": lambda now: f"{now.month:02d}",
    "DAY": lambda now: f"{now.day:02d}",
    "USER": lambda now: os.getenv("USER") or os.getenv("USERNAME") or "user",
    "HOME": lambda now: os.getenv("HOME") or os.getenv("USERPROFILE") or "",
    "PLATFORM": lambda now: sys.platform,
    "RANDOM": lambda now: _random_token(),
    "UUID": lambda now: str(uuid.uuid4()),
}


def _placeholder_name(match: re.Match) -> str:
    return match.group(1) or match.group(2)


def extract_variables(text: str) -> List[str]:
    """Distinct placeholder names in order of first appearance."""
    seen: Dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(text or ""):
        seen.setdefault(_placeholder_name(match), None)
    return list(seen)


def template_placeholders(template: "Template", output_name: Optional[str] = None) -> List[str]:
    """Placeholder names found in the template and in ``output_name``."""
    names: Dict[str, None] = {}
    for source in (output_name or template.relative_name, *(f.relative_path for f in template.files)):
        for name in extract_variables(source):
            names.setdefault(name, None)
    for template_file in template.files:
        for name in extract_variables(template_file.content):
            names.setdefault(name, None)
    return list(names)


def resolve_variables(
    recognized_names: Optional[Iterable[str]] = None,
    user_inputs: Optional[Mapping[str, str]] = None,
    custom_variables: Optional[Mapping[str, str]] = None,
    now: Optional[datetime] = None,
) -> VariableContext:
    """Build the read-only variable context for one materialization.

    Built-ins are computed from a single ``now`` snapshot, limited to
    ``recognized_names`` when given. Custom variables override built-ins and
    user inputs override both.
    """
    now = now or datetime.now()
    wanted = None if recognized_names is None else set(recognized_names)

    context: Dict[str, str] = {}
    for name, provider in BUILTIN_VARIABLES.items():
        if wanted is None or name in wanted:
            context[name] = provider(now)
    context.update(custom_variables or {})
    context.update(user_inputs or {})
    return MappingProxyType(context)


def substitute(text: str, context: VariableContext) -> str:
    """Replace known placeholders in one pass; unknown ones are kept verbatim."""
    if not text:
        return text

    def _replace(match: re.Match) -> str:
        value = context.get(_placeholder_name(match))
        return match.group(0) if value is None else value

    return PLACEHOLDER_PATTERN.sub(_replace, text)
