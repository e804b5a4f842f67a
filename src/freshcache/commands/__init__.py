"""Built-in CLI sub-commands for freshcache.

This package groups the Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~freshcache.commands.guide` -- load, revalidate and clear the guide.
* :mod:`~freshcache.commands.links` -- check the reference links.
* :mod:`~freshcache.commands.pack` -- view and edit checklist progress.
* :mod:`~freshcache.commands.config` -- view and modify global settings.
* :mod:`~freshcache.commands.cache` -- inspect and wipe the local store.

Each module exports a :class:`typer.Typer` sub-application registered on the
root app by :func:`freshcache.app.main`.
"""
