"""Creation history: recording runs and the recently used templates list."""

from __future__ import annotations

from pathlib import Path
from typing import List

from sqlalchemy.orm import Session

from .materializer import TemplateCreationResult
from .models import CreationRun
from .templates import Template


def record_run(db: Session, template: Template, target_directory: Path, result: TemplateCreationResult) -> CreationRun:
    run = CreationRun(
        template_name=template.name,
        template_type=template.type.value,
        target_directory=str(target_directory),
        created_path=str(result.created_path) if result.created_path else None,
        success=result.success,
        overwritten=result.overwritten,
        files_created=result.files_created or 0,
        error=result.error,
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def recent_template_names(db: Session, limit: int = 10) -> List[str]:
    rows = (
        db.query(CreationRun.template_name)
        .filter(CreationRun.success.is_(True))
        .order_by(CreationRun.id.desc())
        .all()
    )

    names: List[str] = []
    for (name,) in rows:
        if name not in names:
            names.append(name)
        if len(names) >= limit:
            break
    return names


def run_to_dict(run: CreationRun) -> dict:
    return {
        "id": run.id,
        "template_name": run.template_name,
        "template_type": run.template_type,
        "target_directory": run.target_directory,
        "created_path": run.created_path,
        "success": run.success,
        "overwritten": run.overwritten,
        "files_created": run.files_created,
        "error": run.error,
        "created_at": str(run.created_at),
    }
