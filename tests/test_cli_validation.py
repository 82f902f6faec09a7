import json
import re
from pathlib import Path

import pytest

from newplus_cli.cli import main


@pytest.fixture
def workspace(tmp_path: Path, monkeypatch):
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "note.md").write_text("# $NAME$\n", encoding="utf-8")

    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NEWPLUS_TEMPLATES_PATH", str(templates))
    monkeypatch.setenv("NEWPLUS_DB_URL", f"sqlite:///{tmp_path / 'history.db'}")
    monkeypatch.setenv("NEWPLUS_LOG_LEVEL", "WARNING")
    for name in (
        "NEWPLUS_HIDE_FILE_EXTENSIONS",
        "NEWPLUS_HIDE_SORTING_PREFIX",
        "NEWPLUS_REPLACE_VARIABLES_IN_FILENAME",
        "NEWPLUS_VARIABLES",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def test_templates_list(workspace: Path, capsys):
    rc = main(["templates", "list"])
    assert rc == 0
    assert "note\tfile" in capsys.readouterr().out


def test_templates_show_reports_placeholders(workspace: Path, capsys):
    rc = main(["templates", "show", "--template", "note"])
    assert rc == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["original_name"] == "note.md"
    assert payload["placeholders"] == ["NAME"]


def test_new_creates_file_and_records_run(workspace: Path, capsys):
    target = workspace / "out"
    rc = main(["new", "--template", "note", "--target", str(target), "--name", "todo.md", "--overwrite", "no"])
    assert rc == 0
    assert (target / "todo.md").read_text(encoding="utf-8") == "# todo.md\n"
    capsys.readouterr()

    assert main(["runs", "list"]) == 0
    out = capsys.readouterr().out
    assert "template=note" in out
    assert "status=ok" in out


def test_new_refuses_overwrite(workspace: Path, capsys):
    target = workspace / "out"
    target.mkdir()
    (target / "note.md").write_text("keep", encoding="utf-8")

    rc = main(["new", "--template", "note", "--target", str(target), "--overwrite", "no"])

    assert rc == 1
    assert "Overwrite declined" in capsys.readouterr().err
    assert (target / "note.md").read_text(encoding="utf-8") == "keep"


def test_new_rejects_malformed_variable(workspace: Path, capsys):
    rc = main(["new", "--template", "note", "--target", str(workspace / "out"), "--var", "novalue"])
    assert rc == 1
    assert "KEY=VALUE" in capsys.readouterr().err


def test_new_rejects_unknown_template(workspace: Path, capsys):
    rc = main(["new", "--template", "missing", "--target", str(workspace / "out")])
    assert rc == 1
    assert "missing" in capsys.readouterr().err


def test_missing_templates_root(workspace: Path, monkeypatch, capsys):
    monkeypatch.setenv("NEWPLUS_TEMPLATES_PATH", str(workspace / "nope"))
    rc = main(["templates", "list"])
    assert rc == 1
    assert "Templates directory not found" in capsys.readouterr().err


def test_runs_show_unknown_id(workspace: Path, capsys):
    rc = main(["runs", "show", "--id", "99"])
    assert rc == 1
    assert "Run not found" in capsys.readouterr().err


def test_new_resolves_builtins_in_explicit_name(workspace: Path, monkeypatch):
    monkeypatch.setenv("NEWPLUS_REPLACE_VARIABLES_IN_FILENAME", "true")
    target = workspace / "out"

    rc = main(["new", "--template", "note", "--target", str(target), "--name", "$YEAR$-note.md", "--overwrite", "no"])

    assert rc == 0
    created = [p.name for p in target.iterdir()]
    assert len(created) == 1
    assert re.fullmatch(r"\d{4}-note\.md", created[0])


def test_new_keeps_placeholders_in_name_when_replacement_is_off(workspace: Path):
    target = workspace / "out"

    rc = main(["new", "--template", "note", "--target", str(target), "--name", "$YEAR$-note.md", "--overwrite", "no"])

    assert rc == 0
    assert [p.name for p in target.iterdir()] == ["$YEAR$-note.md"]


def test_hidden_template_shown_can_be_created(workspace: Path, capsys):
    (workspace / "templates" / ".secret.md").write_text("hidden $NAME$", encoding="utf-8")
    target = workspace / "out"

    assert main(["templates", "show", "--template", ".secret"]) == 0
    capsys.readouterr()

    rc = main(["new", "--template", ".secret", "--target", str(target), "--overwrite", "no"])

    assert rc == 0
    assert (target / ".secret.md").read_text(encoding="utf-8") == "hidden $NAME$"
