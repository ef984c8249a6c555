# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

from __future__ import annotations

import importlib
from typing import NoReturn

import click

from formpulse.cli.debugging import META_IPDB_FLAG, FormpulseGroup
from formpulse.lib.formbuilder import Form


def load_form_class(target: str) -> type[Form]:
    """Import a form class given as 'package.module:ClassName'."""

    module_name, sep, class_name = target.partition(":")
    if not sep or not module_name or not class_name:
        raise click.BadParameter(
            "expected 'package.module:FormClass'", param_hint="TARGET"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise click.BadParameter(f"cannot import {module_name}: {e}") from e

    form_class = getattr(module, class_name, None)
    if not (isinstance(form_class, type) and issubclass(form_class, Form)):
        raise click.BadParameter(f"{target} is not a Form class", param_hint="TARGET")
    return form_class


def parse_params(pairs: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="PARAMS")
        params[key] = value
    return params


@click.group(
    name="formpulse",
    invoke_without_command=False,
    help="Inspect and dry-run formpulse form types",
    cls=FormpulseGroup,
)
@click.option(
    "--ipdb/--no-ipdb",
    "use_ipdb",
    default=False,
    show_default=True,
    help="Drop into ipdb if a command raises an unhandled exception.",
)
def formpulse(use_ipdb: bool) -> None:
    """Inspect formpulse form types."""

    ctx = click.get_current_context()
    ctx.meta[META_IPDB_FLAG] = use_ipdb


@formpulse.command(name="describe", help="list fields, allow-list and needs of a form")
@click.argument("target")
def formpulse_describe(target: str) -> None:
    """Describe a form type."""

    form_class = load_form_class(target)
    allowlist = form_class.__allowlist__
    descriptors = form_class.__descriptors__

    click.echo(f"Form {form_class.__name__}")

    if not descriptors:
        click.echo("No fields declared.")
    else:
        columns = ("Field", "Type", "Nullable", "Kind", "Permitted")
        rows = [
            (
                d.name,
                d.value_type.__name__,
                "yes" if d.nullable else "no",
                "virtual" if d.virtual else "persisted",
                "yes" if d.name in allowlist else "no",
            )
            for d in descriptors
        ]
        widths = [max(len(col), *(len(row[i]) for row in rows)) for i, col in enumerate(columns)]

        header_line = "  ".join(f"{col:<{widths[i]}}" for i, col in enumerate(columns))
        click.echo(header_line)
        click.echo("-" * len(header_line))
        for row in rows:
            click.echo("  ".join(f"{cell:<{widths[i]}}" for i, cell in enumerate(row)))

    needs = list(form_class.__needs__)
    if needs:
        click.echo("")
        click.echo("Needs:")
        for need in needs:
            type_name = need.value_type.__name__ if need.value_type else "any"
            required = "required" if need.required else "optional"
            click.echo(f"  {need.name}: {type_name} ({need.scope.value}, {required})")


@formpulse.command(name="check", help="validate key=value params without saving")
@click.argument("target")
@click.argument("params", nargs=-1)
async def formpulse_check(target: str, params: tuple[str, ...]) -> None:
    """Run prepare and validation of a form against the given params.

    Context values cannot be given on the command line, so needs are read
    as absent.
    """

    form_class = load_form_class(target)
    form = form_class(parse_params(params))
    await form_class.__chain__.run(form, None)

    if not form.errors:
        click.echo(f"{form_class.__name__}: valid")
        return

    click.echo(f"{form_class.__name__}: invalid")
    for name, messages in form.error_map().items():
        key = form.fields[name].param_key_name
        for message in messages:
            click.echo(f"  {key}: {message}")
    raise click.exceptions.Exit(1)


def main() -> NoReturn:
    """
    CLI entry point for the formpulse command
    """

    formpulse()


# EOF
