# SPDX-FileCopyrightText: 2025 Hidayat Trimarsanto <trimarsanto@gmail.com>
# SPDX-License-Identifier: MPL-2.0

"""Helpers for the formpulse CLI: coroutine commands and post-mortem debugging."""

from __future__ import annotations

import inspect
from typing import Any

import anyio
import click

from formpulse.config.app import get_bool_env

ENV_FLAG = "FORMPULSE_CLI_IPDB"
META_IPDB_FLAG = "formpulse_use_ipdb"


class FormpulseGroup(click.Group):
    """
    Group whose commands may be coroutine functions; they are run to
    completion with anyio. Unhandled errors can open an ipdb post-mortem.
    """

    def invoke(self, ctx: click.Context) -> Any:  # type: ignore[override]
        try:
            result = super().invoke(ctx)
            if inspect.isawaitable(result):
                result = anyio.run(_await, result)
            return result
        except (click.exceptions.Exit, click.ClickException):
            raise
        except Exception as exc:  # noqa: BLE001
            if ctx.meta.get(META_IPDB_FLAG) or get_bool_env(ENV_FLAG, False):
                post_mortem(exc)
            raise


async def _await(awaitable: Any) -> Any:
    return await awaitable


def post_mortem(exc: BaseException) -> None:
    try:
        import ipdb  # type: ignore[import-not-found]
    except ModuleNotFoundError:
        click.echo("ipdb is not installed (pip install formpulse[dev]); reraising.", err=True)
        return

    click.echo("ipdb: entering post-mortem debugging session...", err=True)
    ipdb.post_mortem(exc.__traceback__)


# EOF
