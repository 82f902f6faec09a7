"""Interactive wizard for creating files and folders from templates."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .config import Configuration, Settings, build_configuration, load_settings
from .db import get_session
from .filesystem import LocalFileSystem
from .history import record_run, recent_template_names
from .materializer import TemplateCreationResult, materialize, validate_output_name
from .templates import Template, list_templates
from .variables import NEW_NAME_VARIABLE, resolve_variables, template_placeholders

RICH_IMPORT_ERROR: Exception | None = None

try:
    from rich.console import Console
    from rich.panel import Panel
    from rich.prompt import Confirm, IntPrompt, Prompt
    from rich.table import Table
except ImportError as exc:  # pragma: no cover
    RICH_IMPORT_ERROR = exc


@dataclass(frozen=True)
class WizardConfig:
    template: Template
    target_directory: Path
    output_name: str


def _require_rich() -> None:
    if RICH_IMPORT_ERROR is not None:
        raise RuntimeError(
            "Interactive mode requires 'rich'. Install the package dependencies first."
        ) from RICH_IMPORT_ERROR


def confirm_overwrite(conflicts: Sequence[Path], console: Optional["Console"] = None) -> bool:
    _require_rich()
    console = console or Console()

    table = Table(title="Existing paths")
    table.add_column("Path")
    for path in conflicts:
        table.add_row(str(path))
    console.print(table)
    return Confirm.ask("Overwrite existing files?", default=False)


def _order_templates(templates: List[Template], recent: List[str]) -> List[Template]:
    rank: Dict[str, int] = {name: idx for idx, name in enumerate(recent)}
    return sorted(templates, key=lambda t: (rank.get(t.name, len(rank)), t.name.lower()))


def _select_template(console: Console, configuration: Configuration, recent: List[str]) -> Template:
    discovery = list_templates(configuration)
    for warning in discovery.warnings:
        console.print(f"Warning: {warning}", style="yellow")

    if not discovery.templates:
        raise RuntimeError(
            f"No templates found in {configuration.templates_path}. "
            "Add template files or folders there and run the wizard again."
        )

    templates = _order_templates(discovery.templates, recent)

    table = Table(title="Available Templates")
    table.add_column("#", justify="right")
    table.add_column("Template")
    table.add_column("Type")
    table.add_column("Description")

    for idx, template in enumerate(templates, start=1):
        label = f"{template.name} (recent)" if template.name in recent else template.name
        table.add_row(str(idx), label, template.type.value, template.description)

    console.print(table)
    index = IntPrompt.ask("Select template", default=1)
    if index < 1 or index > len(templates):
        raise RuntimeError(f"Template selection out of range: {index}")

    return templates[index - 1]


def _collect_wizard_config(console: Console, configuration: Configuration, recent: List[str]) -> WizardConfig:
    template = _select_template(console, configuration, recent)

    target = Prompt.ask("Target directory", default=os.getcwd()).strip()
    target_directory = Path(os.path.expanduser(target))

    while True:
        raw_name = Prompt.ask(f"New {template.type.value} name", default=template.relative_name)
        try:
            output_name = validate_output_name(raw_name)
            break
        except ValueError as exc:
            console.print(str(exc), style="red")

    summary = Table(title="Summary")
    summary.add_column("Field")
    summary.add_column("Value")
    summary.add_row("Template", template.name)
    summary.add_row("Type", template.type.value)
    summary.add_row("Files", str(len(template.files)))
    summary.add_row("Target", str(target_directory))
    summary.add_row("Name", output_name)
    console.print(summary)

    if not Confirm.ask("Create now?", default=True):
        raise RuntimeError("Cancelled by user")

    return WizardConfig(template=template, target_directory=target_directory, output_name=output_name)


def _print_result(console: Console, result: TemplateCreationResult) -> None:
    if not result.success:
        console.print(Panel(result.error or "Unknown error", title="Failed", border_style="red"))
        return

    table = Table(title="Done")
    table.add_column("Output")
    table.add_column("Value")
    table.add_row("Created", str(result.created_path))
    table.add_row("Files", str(result.files_created))
    table.add_row("Overwritten", "yes" if result.overwritten else "no")
    console.print(table)


def run_interactive_wizard(settings: Optional[Settings] = None) -> int:
    _require_rich()

    settings = settings or load_settings()
    configuration = build_configuration(settings)

    console = Console()
    console.print(Panel("New from Template", border_style="cyan", title="newplus"))

    with get_session(settings.db_url) as db:
        recent = recent_template_names(db, settings.max_recent_templates)
        config = _collect_wizard_config(console, configuration, recent)

        user_inputs = {
            NEW_NAME_VARIABLE: config.output_name,
            "TARGET_DIR": config.target_directory.name,
            "TARGET_PATH": str(config.target_directory),
        }
        recognized = template_placeholders(config.template, config.output_name)
        context = resolve_variables(recognized, user_inputs, configuration.variables)
        result = materialize(
            config.template,
            config.target_directory,
            context,
            replace_variables_in_filename=configuration.replace_variables_in_filename,
            confirm_overwrite=lambda conflicts: confirm_overwrite(conflicts, console),
            output_name=config.output_name,
            fs=LocalFileSystem(configuration.encoding),
        )
        record_run(db, config.template, config.target_directory, result)

    _print_result(console, result)
    return 0 if result.success else 1
