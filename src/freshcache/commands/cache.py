"""Cache commands -- inspect and wipe the local store."""

from __future__ import annotations

from typing import Any

import typer

from freshcache.cache.guide import GUIDE_CACHE_KEY, GUIDE_META_KEY
from freshcache.cache.liveness import LIVENESS_KEY
from freshcache.commands._context import is_forced, run_with_runtime
from freshcache.output import format_response, info, success
from freshcache.pack_state import PACK_STATE_KEY
from freshcache.runtime import Runtime
from freshcache.store.disk import DiskStore


cache_app = typer.Typer(no_args_is_help=True)

_ALL_KEYS = (GUIDE_CACHE_KEY, GUIDE_META_KEY, LIVENESS_KEY, PACK_STATE_KEY)


@cache_app.command("info")
def cache_info(ctx: typer.Context) -> None:
    """Show where the store lives and which entries it holds."""

    async def _inspect(runtime: Runtime) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if isinstance(runtime.store, DiskStore):
            data.update(runtime.store.stats())
        data["entries"] = {key: await runtime.store.get(key) is not None for key in _ALL_KEYS}
        return data

    format_response(run_with_runtime(ctx, _inspect))


@cache_app.command("clear")
def cache_clear(ctx: typer.Context) -> None:
    """Remove the stored guide, liveness snapshot and checklist progress.

    Asks for confirmation unless ``--force`` is active.

    Example::

        freshcache --force cache clear
    """
    if not is_forced(ctx) and not typer.confirm(
        "Remove the stored guide, link checks and checklist progress?"
    ):
        info("Cancelled.")
        raise typer.Exit()

    async def _clear(runtime: Runtime) -> None:
        for key in _ALL_KEYS:
            await runtime.store.remove(key)

    run_with_runtime(ctx, _clear)
    success("Local store cleared.")
