"""Guide commands -- load, revalidate, and clear the document-pack guide.

``freshcache guide show`` performs a normal conditional load: a ``304``
keeps the stored copy, a ``200`` replaces it, and any failure falls back to
the stored copy (or the empty guide).  The freshness notice on stderr says
which of these happened.
"""

from __future__ import annotations

from typing import Any

import typer

from freshcache.commands._context import is_forced, run_with_runtime
from freshcache.freshness import make_meta_line
from freshcache.models import CachedDocument, FetchSource
from freshcache.output import (
    OutputFormat,
    format_response,
    get_output,
    info,
    notice,
    print_table,
    success,
    warning,
)
from freshcache.runtime import Runtime


guide_app = typer.Typer(no_args_is_help=True)


def _document_data(doc: CachedDocument) -> dict[str, Any]:
    return {
        "source": doc.source.value,
        "status": int(doc.status),
        "label": doc.freshness_label,
        "fetchedAt": doc.fetched_at.isoformat(),
        "cachedAt": doc.cached_at.isoformat() if doc.cached_at else None,
        "etag": doc.etag,
        "lastModified": doc.last_modified,
        "guide": doc.payload.model_dump(mode="json", by_alias=True, exclude_none=True),
    }


def _render(doc: CachedDocument) -> None:
    output = get_output()
    notice(make_meta_line("Guide", doc.source, doc.fetched_at, doc.status))

    if output.format == OutputFormat.JSON:
        format_response(_document_data(doc))
        return

    if doc.payload.is_empty:
        warning("No guide available yet. Connect and run: freshcache guide show")
        return

    rows = [
        [section.title, item.id, item.title, "yes" if item.required else "no"]
        for section in doc.payload.sections
        for item in section.docs
    ]
    print_table(["Section", "Item", "Title", "Required"], rows, title=doc.payload.title)
    for tip in doc.payload.tips:
        info(f"Tip: {tip}")


@guide_app.command("show")
def guide_show(ctx: typer.Context) -> None:
    """Show the guide, revalidating the stored copy first.

    Example::

        freshcache guide show
        freshcache --offline guide show --json
    """

    async def _load(runtime: Runtime) -> CachedDocument:
        return await runtime.guide.load_guide()

    _render(run_with_runtime(ctx, _load))


@guide_app.command("revalidate")
def guide_revalidate(ctx: typer.Context) -> None:
    """Drop the stored validators and fetch the guide in full.

    The stored payload stays in place until the new one arrives, so a failed
    fetch still serves it.

    Example::

        freshcache guide revalidate
    """

    async def _reload(runtime: Runtime) -> CachedDocument:
        await runtime.guide.force_revalidate()
        return await runtime.guide.load_guide()

    doc = run_with_runtime(ctx, _reload)
    if doc.source == FetchSource.REMOTE:
        success("Guide refreshed from the remote.")
    else:
        warning("Remote unavailable; serving the stored guide.")
    _render(doc)


@guide_app.command("clear")
def guide_clear(ctx: typer.Context) -> None:
    """Remove the stored guide and its validators.

    Asks for confirmation unless ``--force`` is active.

    Example::

        freshcache --force guide clear
    """
    if not is_forced(ctx) and not typer.confirm("Remove the stored guide?"):
        info("Cancelled.")
        raise typer.Exit()

    async def _clear(runtime: Runtime) -> None:
        await runtime.guide.clear()

    run_with_runtime(ctx, _clear)
    success("Stored guide removed.")
