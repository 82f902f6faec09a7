from datetime import datetime

import pytest

from newplus_cli.variables import extract_variables, resolve_variables, substitute

FIXED_NOW = datetime(2024, 3, 5, 7, 8, 9)


def test_substitute_replaces_known_and_keeps_unknown_placeholders():
    text = "Hello {{name}} and {{ missing }} on $DATE$ by $NOPE$"
    context = {"name": "Foo", "DATE": "2024-01-02"}

    assert substitute(text, context) == "Hello Foo and {{ missing }} on 2024-01-02 by $NOPE$"


def test_substitute_is_single_pass():
    context = {"A": "{{B}}", "B": "loop", "C": "$A$"}

    assert substitute("{{A}}", context) == "{{B}}"
    assert substitute("$C$", context) == "$A$"


def test_substitute_allows_spaces_inside_braces():
    assert substitute("{{   name }}", {"name": "x"}) == "x"


def test_lowercase_dollar_tokens_are_not_placeholders():
    assert substitute("costs $name$ today", {"name": "x"}) == "costs $name$ today"


def test_extract_variables_in_first_seen_order():
    text = "$DATE$ {{name}} {{ DATE }} $USER$ {{name}}"

    assert extract_variables(text) == ["DATE", "name", "USER"]


def test_resolve_builtin_date_and_time_from_one_snapshot():
    context = resolve_variables(now=FIXED_NOW)

    assert context["DATE"] == "2024-03-05"
    assert context["TIME"] == "07:08:09"
    assert context["DATETIME"] == "2024-03-05 07:08:09"
    assert context["YEAR"] == "2024"
    assert context["MONTH"] == "03"
    assert context["DAY"] == "05"
    assert len(context["RANDOM"]) == 6
    assert len(context["UUID"]) == 36


def test_resolve_only_recognized_builtins():
    context = resolve_variables({"DATE", "name"}, now=FIXED_NOW)

    assert dict(context) == {"DATE": "2024-03-05"}


def test_resolve_precedence_builtin_custom_user():
    context = resolve_variables(
        {"DATE", "AUTHOR"},
        user_inputs={"AUTHOR": "Grace"},
        custom_variables={"DATE": "someday", "AUTHOR": "Ada"},
        now=FIXED_NOW,
    )

    assert context["DATE"] == "someday"
    assert context["AUTHOR"] == "Grace"


def test_resolved_context_is_read_only():
    context = resolve_variables({"DATE"}, now=FIXED_NOW)

    with pytest.raises(TypeError):
        context["DATE"] = "changed"
