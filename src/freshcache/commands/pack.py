"""Pack commands -- view and edit checklist progress.

Progress is stored as one blob and every edit rewrites it whole.  Items are
addressed by the section and item ids of the guide (see
``freshcache guide show``); ids the guide does not list are accepted too.
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from freshcache.commands._context import is_forced, run_with_runtime
from freshcache.exceptions import InvalidUsageError
from freshcache.freshness import format_timestamp
from freshcache.models import PackState
from freshcache.output import (
    OutputFormat,
    error,
    format_response,
    get_output,
    info,
    notice,
    print_table,
    success,
)
from freshcache.runtime import Runtime


pack_app = typer.Typer(no_args_is_help=True)


def _state_rows(state: PackState) -> list[list[str]]:
    rows: list[list[str]] = []
    for section_id, items in state.items.items():
        for item_id, item in items.items():
            if item.provided is None:
                provided = ""
            else:
                provided = "yes" if item.provided else "no"
            rows.append(
                [
                    section_id,
                    item_id,
                    provided,
                    item.filename or "",
                    str(item.size_bytes) if item.size_bytes is not None else "",
                    item.notes or "",
                ]
            )
    return rows


@pack_app.command("show")
def pack_show(ctx: typer.Context) -> None:
    """Show checklist progress.

    Items of the stored guide that have no progress yet are listed empty.

    Example::

        freshcache pack show
        freshcache pack show --json
    """

    async def _get(runtime: Runtime) -> PackState:
        return await runtime.pack.get_state()

    state = run_with_runtime(ctx, _get)
    if state.updated_at is not None:
        notice(f"Progress • updated {format_timestamp(state.updated_at)}")

    if get_output().format == OutputFormat.JSON:
        format_response(state.model_dump(mode="json", by_alias=True, exclude_none=True))
        return

    rows = _state_rows(state)
    if not rows:
        info("No checklist progress yet.")
        return
    print_table(["Section", "Item", "Provided", "File", "Size", "Notes"], rows, title="Checklist")


@pack_app.command("mark")
def pack_mark(
    ctx: typer.Context,
    section: str = typer.Argument(help="Section id."),
    item: str = typer.Argument(help="Item id."),
    no: bool = typer.Option(False, "--no", help="Mark as not provided."),
) -> None:
    """Mark an item as provided (or not, with ``--no``).

    Example::

        freshcache pack mark identity passport
        freshcache pack mark identity passport --no
    """
    provided = not no

    async def _mark(runtime: Runtime) -> PackState:
        return await runtime.pack.mark_provided(section, item, provided)

    state = run_with_runtime(ctx, _mark)
    if state.updated_at is None:
        return
    success(f"{section}/{item}: {'provided' if provided else 'not provided'}")


@pack_app.command("update")
def pack_update(
    ctx: typer.Context,
    section: str = typer.Argument(help="Section id."),
    item: str = typer.Argument(help="Item id."),
    filename: Optional[str] = typer.Option(
        None, "--filename", help="File name of the prepared document ('' clears)."
    ),
    size: Optional[int] = typer.Option(
        None, "--size", help="File size in bytes (negative clears)."
    ),
    notes: Optional[str] = typer.Option(None, "--notes", help="Free-form notes ('' clears)."),
) -> None:
    """Record file details or notes for an item.

    Only the options given change the item.

    Raises:
        typer.Exit: With code 2 when no field is given.

    Example::

        freshcache pack update identity passport --filename passport.pdf --size 2400000
        freshcache pack update identity passport --notes ""
    """
    fields: dict[str, Any] = {}
    if filename is not None:
        fields["filename"] = filename
    if size is not None:
        fields["size_bytes"] = size
    if notes is not None:
        fields["notes"] = notes
    if not fields:
        exc = InvalidUsageError("Nothing to update: pass --filename, --size or --notes")
        error(str(exc))
        raise typer.Exit(code=exc.exit_code)

    async def _update(runtime: Runtime) -> PackState:
        return await runtime.pack.update_fields(section, item, **fields)

    state = run_with_runtime(ctx, _update)
    if state.updated_at is None:
        return
    success(f"{section}/{item}: updated {', '.join(sorted(fields))}")


@pack_app.command("clear")
def pack_clear(ctx: typer.Context) -> None:
    """Reset all checklist progress.

    Asks for confirmation unless ``--force`` is active.
    """
    if not is_forced(ctx) and not typer.confirm("Reset all checklist progress?"):
        info("Cancelled.")
        raise typer.Exit()

    async def _clear(runtime: Runtime) -> PackState:
        return await runtime.pack.clear()

    run_with_runtime(ctx, _clear)
    success("Checklist progress reset.")
