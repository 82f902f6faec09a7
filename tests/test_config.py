import dataclasses

import pytest

from newplus_cli.config import Configuration, build_configuration, load_settings, normalize_path
from newplus_cli.errors import InvalidConfiguration


def _clear_env(monkeypatch):
    for name in (
        "NEWPLUS_TEMPLATES_PATH",
        "NEWPLUS_HIDE_FILE_EXTENSIONS",
        "NEWPLUS_HIDE_SORTING_PREFIX",
        "NEWPLUS_REPLACE_VARIABLES_IN_FILENAME",
        "NEWPLUS_VARIABLES",
        "NEWPLUS_MAX_RECENT_TEMPLATES",
    ):
        monkeypatch.delenv(name, raising=False)


def test_normalize_collapses_doubled_and_trailing_backslashes():
    assert normalize_path("C:\\Templates\\\\Sub\\") == "C:\\Templates\\Sub"


def test_normalize_collapses_forward_slashes():
    assert normalize_path("/home//me///templates/") == "/home/me/templates"


def test_normalize_keeps_unc_prefix_and_roots():
    assert normalize_path("\\\\server\\\\share\\") == "\\\\server\\share"
    assert normalize_path("/") == "/"
    assert normalize_path("C:\\") == "C:\\"


@pytest.mark.parametrize(
    "raw",
    ["C:\\Templates\\\\Sub\\", "//srv//x/", "\\\\server\\\\share\\", "/", "C:\\", "  /a/b//  ", "relative//dir/"],
)
def test_normalize_is_idempotent(raw):
    once = normalize_path(raw, environ={})
    assert normalize_path(once, environ={}) == once


def test_normalize_expands_environment_variables(monkeypatch):
    monkeypatch.setenv("NEWPLUS_TEST_ROOT", "/srv/templates")
    assert normalize_path("${NEWPLUS_TEST_ROOT}//python/") == "/srv/templates/python"
    assert normalize_path("$NEWPLUS_TEST_ROOT/go") == "/srv/templates/go"
    assert normalize_path("%NEWPLUS_TEST_ROOT%/rust") == "/srv/templates/rust"


def test_normalize_leaves_unset_variables_verbatim():
    assert normalize_path("$NEWPLUS_UNSET_VAR/x", environ={}) == "$NEWPLUS_UNSET_VAR/x"


@pytest.mark.parametrize("raw", ["", "   ", None])
def test_empty_templates_path_is_rejected(raw):
    with pytest.raises(InvalidConfiguration):
        Configuration(templates_path=raw)


def test_configuration_is_normalized_and_immutable():
    config = Configuration(templates_path="/data//templates/", variables={"AUTHOR": "Ada"})

    assert config.templates_path == "/data/templates"
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.templates_path = "/elsewhere"
    with pytest.raises(TypeError):
        config.variables["AUTHOR"] = "Grace"


def test_configuration_rejects_non_string_variables():
    with pytest.raises(InvalidConfiguration):
        Configuration(templates_path="/data", variables={"COUNT": 3})


def test_load_settings_reads_environment(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.setenv("NEWPLUS_TEMPLATES_PATH", str(tmp_path))
    monkeypatch.setenv("NEWPLUS_HIDE_SORTING_PREFIX", "yes")
    monkeypatch.setenv("NEWPLUS_REPLACE_VARIABLES_IN_FILENAME", "1")
    monkeypatch.setenv("NEWPLUS_VARIABLES", '{"AUTHOR": "Ada"}')
    monkeypatch.setenv("NEWPLUS_MAX_RECENT_TEMPLATES", "500")

    settings = load_settings()
    config = build_configuration(settings)

    assert settings.hide_sorting_prefix is True
    assert settings.hide_file_extensions is True
    assert settings.max_recent_templates == 50
    assert config.replace_variables_in_filename is True
    assert dict(config.variables) == {"AUTHOR": "Ada"}
    assert config.templates_path == str(tmp_path)


def test_load_settings_rejects_bad_flag(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("NEWPLUS_HIDE_FILE_EXTENSIONS", "maybe")

    with pytest.raises(InvalidConfiguration):
        load_settings()


def test_load_settings_rejects_bad_variables(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("NEWPLUS_VARIABLES", '["not", "an", "object"]')

    with pytest.raises(InvalidConfiguration):
        load_settings()


def test_relative_templates_path_resolves_against_home(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("NEWPLUS_TEMPLATES_PATH", "tmpl//dir/")

    config = build_configuration(load_settings())

    assert config.templates_path == str(tmp_path / "tmpl" / "dir")


def test_expanded_values_are_not_expanded_again(monkeypatch, tmp_path):
    _clear_env(monkeypatch)
    root = tmp_path / "lit$NEWPLUS_MARKER"
    monkeypatch.setenv("NEWPLUS_TEST_ROOT", str(root))
    monkeypatch.setenv("NEWPLUS_MARKER", "boom")
    monkeypatch.setenv("NEWPLUS_TEMPLATES_PATH", "${NEWPLUS_TEST_ROOT}/templates")

    config = build_configuration(load_settings())

    assert config.templates_path == str(root / "templates")
    assert normalize_path("%NEWPLUS_TEST_ROOT%") == str(root)
