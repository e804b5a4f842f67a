"""freshcache -- freshness-aware remote resource cache for document checklists.

This package fetches versioned JSON content over HTTP, persists it in a local
key-value store, and decides per call whether to trust the local copy,
revalidate it with a conditional request, or refetch it.  When the network is
unavailable or blocked every public operation degrades to the last known good
answer (or a well-defined empty value) instead of raising.

Typical usage::

    freshcache guide show          # conditional GET of the document guide
    freshcache links check         # TTL-gated liveness check of reference links
    freshcache pack mark personal passport

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware configuration and precedence resolution.
    fetcher: Conditional GET with ETag / Last-Modified validators.
    cache: The guide cache and the liveness cache.
    pack_state: Read-modify-write store for checklist progress.
    store: Key-value store adapters (disk and in-memory).
    exceptions: Exception hierarchy with exit-code mapping.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
