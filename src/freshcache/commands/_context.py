"""Helpers shared by the command modules.

Commands are synchronous Typer callbacks; :func:`run_with_runtime` resolves
the configuration from the global CLI flags stored in ``ctx.obj``, opens a
:class:`~freshcache.runtime.Runtime` and drives one coroutine to completion.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import typer

from freshcache.exceptions import ConfigError
from freshcache.models import GlobalConfig
from freshcache.output import error
from freshcache.runtime import Runtime, open_runtime

T = TypeVar("T")


def config_from_context(ctx: typer.Context) -> GlobalConfig:
    """Resolve the effective configuration using the flags in ``ctx.obj``.

    Raises:
        typer.Exit: With the config-error exit code when a layer is invalid.
    """
    from freshcache.config import resolve_config

    obj = ctx.obj or {}
    try:
        return resolve_config(
            cli_guide_url=obj.get("guide_url"),
            cli_offline=obj.get("offline"),
        )
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def run_with_runtime(ctx: typer.Context, action: Callable[[Runtime], Awaitable[T]]) -> T:
    """Open a runtime for the current invocation and run *action* in it."""
    config = config_from_context(ctx)

    async def _run() -> T:
        async with open_runtime(config) as runtime:
            return await action(runtime)

    return asyncio.run(_run())


def is_forced(ctx: typer.Context) -> bool:
    """Return ``True`` when the global ``--force`` flag was passed."""
    obj = ctx.obj or {}
    return bool(obj.get("force", False))
