"""Wiring of stores, transport and caches from a resolved configuration.

:func:`open_runtime` is the one place that turns a
:class:`~freshcache.models.GlobalConfig` into live components.  Everything it
builds shares a single store and a single transport, and both are closed when
the context exits.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import AsyncIterator, Optional

import httpx

from freshcache.cache.guide import GuideCache
from freshcache.cache.liveness import LivenessCache
from freshcache.client.transport import HttpxTransport
from freshcache.config import get_store_dir
from freshcache.fetcher import ConditionalFetcher
from freshcache.freshness import Clock, utcnow
from freshcache.models import GlobalConfig
from freshcache.pack_state import PackStateStore
from freshcache.store.base import KeyValueStore
from freshcache.store.disk import DiskStore


@dataclass
class Runtime:
    """Components built by :func:`open_runtime`."""

    config: GlobalConfig
    store: KeyValueStore
    guide: GuideCache
    liveness: LivenessCache
    pack: PackStateStore


@asynccontextmanager
async def open_runtime(
    config: GlobalConfig,
    store: Optional[KeyValueStore] = None,
    http_transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Clock = utcnow,
) -> AsyncIterator[Runtime]:
    """Build the caches for *config* and close their resources afterwards.

    Args:
        config: The resolved configuration.
        store: Store to use instead of a :class:`~freshcache.store.DiskStore`
            in the configured directory.  A caller-supplied store is not
            closed.
        http_transport: Optional :mod:`httpx` transport (e.g.
            :class:`httpx.MockTransport`).
        clock: Clock shared by all components.

    Raises:
        StoreError: If the disk store cannot be opened.
    """
    owned: Optional[DiskStore] = None
    if store is None:
        owned = DiskStore(get_store_dir(config))
        store = owned
    try:
        async with HttpxTransport(config.request, transport=http_transport) as transport:
            pack = PackStateStore(store, clock=clock)
            guide = GuideCache(
                store,
                ConditionalFetcher(transport),
                config.guide.url,
                clock=clock,
                pack_state=pack,
            )
            liveness = LivenessCache(
                store,
                transport,
                links=config.liveness.links,
                ttl=timedelta(seconds=config.liveness.ttl_seconds),
                clock=clock,
                restamp_on_fallback=config.liveness.restamp_on_fallback,
            )
            yield Runtime(config=config, store=store, guide=guide, liveness=liveness, pack=pack)
    finally:
        if owned is not None:
            owned.close()
