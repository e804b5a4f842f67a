"""Links command -- report whether the reference links still respond."""

from __future__ import annotations

import typer

from freshcache.commands._context import run_with_runtime
from freshcache.freshness import make_meta_line
from freshcache.models import LivenessSnapshot
from freshcache.output import OutputFormat, format_response, get_output, notice, print_table
from freshcache.runtime import Runtime


links_app = typer.Typer(no_args_is_help=True)


@links_app.command("check")
def links_check(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", "-f", help="Re-check even if the last check is recent."
    ),
) -> None:
    """Check every configured link (HEAD, then GET) at most once per TTL.

    A link whose check failed is shown with status ``-``.

    Example::

        freshcache links check
        freshcache links check --force --json
    """

    async def _check(runtime: Runtime) -> LivenessSnapshot:
        return await runtime.liveness.load_liveness(force_remote=force)

    snapshot = run_with_runtime(ctx, _check)
    notice(make_meta_line("Links", snapshot.source, snapshot.verified_at))

    if get_output().format == OutputFormat.JSON:
        format_response(snapshot.model_dump(mode="json", by_alias=True))
        return

    rows = [
        [
            link.id,
            link.title,
            str(link.checked_status) if link.checked_status is not None else "-",
            link.last_modified or "",
            link.url,
        ]
        for link in snapshot.links
    ]
    print_table(["ID", "Title", "Status", "Last-Modified", "URL"], rows, title="Reference links")
