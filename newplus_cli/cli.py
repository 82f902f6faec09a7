"""Command-line entrypoint for creating files and folders from templates."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from .config import build_configuration, ensure_runtime_directories, load_settings
from .db import get_session, init_db
from .filesystem import LocalFileSystem
from .history import record_run, run_to_dict
from .materializer import ConfirmOverwrite, materialize, validate_output_name
from .models import CreationRun
from .templates import TemplateDiscoveryOptions, TemplateType, list_templates, resolve_template
from .variables import NEW_NAME_VARIABLE, resolve_variables, template_placeholders


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _print_warnings(warnings: List[str]) -> None:
    for warning in warnings:
        print(f"WARNING: {warning}", file=sys.stderr)


def _parse_variables(pairs: Optional[List[str]]) -> Dict[str, str]:
    variables: Dict[str, str] = {}
    for raw in pairs or []:
        key, sep, value = raw.partition("=")
        key = key.strip()
        if not sep or not key:
            raise RuntimeError(f"Variable must be given as KEY=VALUE, got {raw!r}")
        variables[key] = value
    return variables


def _overwrite_policy(mode: str) -> Optional[ConfirmOverwrite]:
    if mode == "yes":
        return lambda conflicts: True
    if mode == "no":
        return None

    from .interactive import confirm_overwrite

    return confirm_overwrite


def cmd_init() -> int:
    settings = load_settings()
    _configure_logging(settings.log_level)
    configuration = build_configuration(settings)

    ensure_runtime_directories(settings, configuration)
    init_db(settings.db_url)

    print("Initialized newplus")
    print(f"DB: {settings.db_url}")
    print(f"Templates: {configuration.templates_path}")
    return 0


def cmd_templates_list(args: argparse.Namespace) -> int:
    settings = load_settings()
    _configure_logging(settings.log_level)
    configuration = build_configuration(settings)

    options = TemplateDiscoveryOptions(
        recursive=not args.no_recursive,
        type=TemplateType(args.type) if args.type else None,
        category=args.category,
        tags=tuple(args.tag or ()),
        include_hidden=args.include_hidden,
    )
    discovery = list_templates(configuration, options)
    _print_warnings(discovery.warnings)

    if not discovery.templates:
        print(f"No templates found in {configuration.templates_path}")
        return 0

    for tmpl in discovery.templates:
        print(f"{tmpl.name}\t{tmpl.type.value}\t{tmpl.path}")
    return 0


def _lookup_options() -> TemplateDiscoveryOptions:
    # Explicit lookups by name also see hidden templates.
    return TemplateDiscoveryOptions(include_hidden=True)


def cmd_templates_show(template_name: str) -> int:
    settings = load_settings()
    _configure_logging(settings.log_level)
    configuration = build_configuration(settings)

    discovery = list_templates(configuration, _lookup_options())
    template = resolve_template(discovery.templates, template_name)

    payload = {
        "name": template.name,
        "original_name": template.original_name,
        "type": template.type.value,
        "path": str(template.path),
        "output_name": template.relative_name,
        "description": template.description,
        "category": template.category,
        "tags": list(template.tags),
        "files": [f.relative_path for f in template.files],
        "placeholders": template_placeholders(template),
    }
    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def cmd_new(args: argparse.Namespace) -> int:
    settings = load_settings()
    _configure_logging(settings.log_level)
    configuration = build_configuration(settings)

    discovery = list_templates(configuration, _lookup_options())
    _print_warnings(discovery.warnings)
    template = resolve_template(discovery.templates, args.template)

    target = Path(args.target) if args.target else Path.cwd()
    user_inputs = {"TARGET_DIR": target.name, "TARGET_PATH": str(target)}
    output_name = None
    if args.name:
        output_name = validate_output_name(args.name)
        user_inputs[NEW_NAME_VARIABLE] = output_name
    user_inputs.update(_parse_variables(args.var))

    context = resolve_variables(template_placeholders(template, output_name), user_inputs, configuration.variables)
    result = materialize(
        template,
        target,
        context,
        replace_variables_in_filename=configuration.replace_variables_in_filename,
        confirm_overwrite=_overwrite_policy(args.overwrite),
        output_name=output_name,
        fs=LocalFileSystem(configuration.encoding),
    )

    with get_session(settings.db_url) as db:
        run = record_run(db, template, target, result)

    if not result.success:
        raise RuntimeError(result.error)

    print(f"Run ID: {run.id}")
    print(f"Created: {result.created_path}")
    print(f"Files: {result.files_created}")
    if result.overwritten:
        print("Existing files were overwritten")
    return 0


def cmd_runs_list(limit: int) -> int:
    settings = load_settings()
    _configure_logging(settings.log_level)

    with get_session(settings.db_url) as db:
        runs = db.query(CreationRun).order_by(CreationRun.id.desc()).limit(limit).all()

    if not runs:
        print("No creation runs found")
        return 0

    for run in runs:
        status = "ok" if run.success else "failed"
        print(
            f"id={run.id} created_at={run.created_at} template={run.template_name} "
            f"status={status} files={run.files_created} path={run.created_path or '-'}"
        )
    return 0


def cmd_runs_show(run_id: int) -> int:
    settings = load_settings()
    _configure_logging(settings.log_level)

    with get_session(settings.db_url) as db:
        run = db.query(CreationRun).filter(CreationRun.id == run_id).first()
        if not run:
            raise RuntimeError(f"Run not found: {run_id}")
        payload = run_to_dict(run)

    print(json.dumps(payload, indent=2, ensure_ascii=False))
    return 0


def cmd_wizard() -> int:
    settings = load_settings()
    _configure_logging(settings.log_level)

    from .interactive import run_interactive_wizard

    return run_interactive_wizard(settings)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="newplus", description="Create files and folders from templates")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create the templates directory and history database")

    tmpl_parser = sub.add_parser("templates", help="Template operations")
    tmpl_sub = tmpl_parser.add_subparsers(dest="templates_command", required=True)
    list_tmpl = tmpl_sub.add_parser("list", help="List templates")
    list_tmpl.add_argument("--type", choices=[t.value for t in TemplateType], help="Only file or folder templates")
    list_tmpl.add_argument("--category", help="Only templates in this category")
    list_tmpl.add_argument("--tag", action="append", help="Only templates with this tag (repeatable)")
    list_tmpl.add_argument("--include-hidden", action="store_true", help="Include hidden entries")
    list_tmpl.add_argument("--no-recursive", action="store_true", help="Load only top-level files of folder templates")
    show_tmpl = tmpl_sub.add_parser("show", help="Show one template")
    show_tmpl.add_argument("--template", required=True, help="Template display name")

    new = sub.add_parser("new", help="Create a file or folder from a template")
    new.add_argument("--template", required=True, help="Template display name")
    new.add_argument("--target", required=False, help="Target directory (default: current directory)")
    new.add_argument("--name", required=False, help="Name of the created file or folder")
    new.add_argument("--var", action="append", help="Extra variable KEY=VALUE (repeatable)")
    new.add_argument(
        "--overwrite",
        choices=["ask", "yes", "no"],
        default="ask",
        help="What to do when output paths already exist",
    )

    sub.add_parser("wizard", help="Interactive template selection and creation")

    runs = sub.add_parser("runs", help="Creation history")
    runs_sub = runs.add_subparsers(dest="runs_command", required=True)
    list_parser = runs_sub.add_parser("list", help="List recent runs")
    list_parser.add_argument("--limit", type=int, default=20, help="Max rows to return")
    show_parser = runs_sub.add_parser("show", help="Show run details")
    show_parser.add_argument("--id", type=int, required=True, help="Run ID")

    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "init":
            return cmd_init()

        if args.command == "templates" and args.templates_command == "list":
            return cmd_templates_list(args)

        if args.command == "templates" and args.templates_command == "show":
            return cmd_templates_show(args.template)

        if args.command == "new":
            return cmd_new(args)

        if args.command == "wizard":
            return cmd_wizard()

        if args.command == "runs" and args.runs_command == "list":
            return cmd_runs_list(args.limit)

        if args.command == "runs" and args.runs_command == "show":
            return cmd_runs_show(args.id)

        parser.print_help()
        return 1
    except Exception as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
