from __future__ import annotations

import click
import pytest
from click.testing import CliRunner

from formpulse.cli.commands import formpulse, load_form_class, parse_params

from sample_forms import PersonForm


@pytest.fixture
def runner():
    return CliRunner()


def test_load_form_class():
    assert load_form_class("sample_forms:PersonForm") is PersonForm


@pytest.mark.parametrize(
    "target", ["sample_forms", "sample_forms:", "no_such_module:Form", "sample_forms:Actor"]
)
def test_load_form_class_rejects_bad_targets(target):
    with pytest.raises(click.BadParameter):
        load_form_class(target)


def test_parse_params():
    assert parse_params(("name=Sam", "note=a=b", "age=")) == {
        "name": "Sam",
        "note": "a=b",
        "age": "",
    }


def test_describe(runner):
    result = runner.invoke(formpulse, ["describe", "sample_forms:PersonForm"])
    assert result.exit_code == 0, result.output

    lines = result.output.splitlines()
    assert lines[0] == "Form PersonForm"
    assert lines[1].split() == ["Field", "Type", "Nullable", "Kind", "Permitted"]
    assert lines[3].split() == ["name", "str", "no", "persisted", "yes"]
    assert lines[4].split() == ["age", "int", "yes", "persisted", "yes"]
    assert lines[5].split() == ["admin", "bool", "yes", "persisted", "no"]
    assert "Needs:" not in result.output


def test_describe_lists_needs(runner):
    result = runner.invoke(formpulse, ["describe", "sample_forms:ArticleForm"])
    assert result.exit_code == 0, result.output
    assert "Needs:" in result.output
    assert "  author: Actor (both, required)" in result.output
    assert "  inviter: Actor (create, optional)" in result.output
    assert "  editor: Actor (update, required)" in result.output
    assert "virtual" in result.output


def test_check_valid(runner):
    result = runner.invoke(formpulse, ["check", "sample_forms:PersonForm", "name=Sam", "age=30"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "PersonForm: valid"


def test_check_invalid(runner):
    result = runner.invoke(
        formpulse, ["check", "sample_forms:AgeCheckedPersonForm", "name=", "age=9"]
    )
    assert result.exit_code == 1
    assert result.output.splitlines() == [
        "AgeCheckedPersonForm: invalid",
        "  name: This field is required.",
        "  age: must be at least 13",
    ]


def test_check_reads_needs_as_absent(runner):
    result = runner.invoke(formpulse, ["check", "sample_forms:CommentForm", "body=Nice post"])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "CommentForm: valid"

    result = runner.invoke(formpulse, ["check", "sample_forms:CommentForm"])
    assert result.exit_code == 1
    assert "  body: This field is required." in result.output


def test_check_uses_param_key(runner):
    result = runner.invoke(formpulse, ["check", "sample_forms:MemberForm", "member:login=sam"])
    assert result.exit_code == 1
    assert "  member:email: This field is required." in result.output


def test_check_bad_target(runner):
    result = runner.invoke(formpulse, ["check", "nowhere"])
    assert result.exit_code == 2
