"""TTL-gated liveness checks for a fixed list of reference links.

:class:`LivenessCache` answers "do these links still respond?".  Content
identity does not matter here, so freshness is bounded by a time-to-live
instead of validators:

1. A stored snapshot younger than the TTL is returned as ``source=cache``
   without any network I/O (unless ``force_remote``).
2. Otherwise every link is checked concurrently: ``HEAD`` first, then one
   ``GET`` if the ``HEAD`` fails.  A link whose checks both fail is recorded
   with ``checked_status=None``; neither a transport error nor any other
   exception from one link aborts the pass.
3. The completed pass replaces the stored snapshot as a whole.

If the pass cannot run at all, the previous snapshot (or an all-unchecked
one) is returned with ``source=cache``.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Optional, Sequence

from pydantic import ValidationError

from freshcache.client.transport import Transport
from freshcache.exceptions import StoreError, TransportError
from freshcache.freshness import Clock, is_fresh, utcnow
from freshcache.models import (
    DEFAULT_LINKS,
    LinkSpec,
    LinkStatus,
    LivenessSnapshot,
    LivenessSource,
)
from freshcache.output import get_output
from freshcache.store.base import KeyValueStore, read_json, write_json

LIVENESS_KEY = "ms.eapr.ircc.live.meta.v1"
DEFAULT_TTL = timedelta(hours=24)

# A HEAD answered with one of these means "method unsupported", not "link dead".
_HEAD_UNSUPPORTED = frozenset({405, 501})


class LivenessCache:
    """Snapshot cache of link-check results with a time-to-live.

    Args:
        store: Where the snapshot is persisted.
        transport: Transport used for ``HEAD``/``GET`` checks.
        links: The configured links; every snapshot mirrors this list.
        ttl: How long a snapshot is trusted without re-checking.
        clock: Zero-argument callable returning the current UTC time.
        restamp_on_fallback: When a pass fails as a whole and the previous
            snapshot is served instead, stamp it with the current time
            rather than keeping its original ``verified_at``.

    Example::

        cache = LivenessCache(store, transport)
        snapshot = await cache.load_liveness(force_remote=True)
    """

    def __init__(
        self,
        store: KeyValueStore,
        transport: Transport,
        links: Sequence[LinkSpec] = DEFAULT_LINKS,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utcnow,
        restamp_on_fallback: bool = False,
    ) -> None:
        self._store = store
        self._transport = transport
        self._links = tuple(links)
        self._ttl = ttl
        self._clock = clock
        self._restamp_on_fallback = restamp_on_fallback

    @property
    def links(self) -> tuple[LinkSpec, ...]:
        return self._links

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def load_liveness(self, force_remote: bool = False) -> LivenessSnapshot:
        """Return the current snapshot, running a verification pass when stale.

        Args:
            force_remote: Run a pass even if the stored snapshot is fresh.

        Returns:
            A :class:`~freshcache.models.LivenessSnapshot` whose ``links``
            match the configured list in ids and order.  Never raises for
            transport or store failures.
        """
        output = get_output()
        previous = await self._read()
        now = self._clock()

        if previous is not None and not force_remote and is_fresh(previous.verified_at, now, self._ttl):
            output.debug(f"Liveness snapshot from {previous.verified_at.isoformat()} is within TTL")
            return previous.model_copy(update={"source": LivenessSource.CACHE})

        try:
            statuses = await asyncio.gather(*(self._check(link) for link in self._links))
            snapshot = LivenessSnapshot(
                verified_at=self._clock(),
                links=list(statuses),
                source=LivenessSource.LIVE,
            )
        except Exception as exc:
            output.warning(f"Link verification could not run: {exc}")
            return self._fallback(previous)

        try:
            await write_json(self._store, LIVENESS_KEY, snapshot.model_dump(mode="json", by_alias=True))
        except StoreError as exc:
            output.warning(f"Liveness snapshot could not be cached: {exc}")
        return snapshot

    async def clear(self) -> None:
        """Remove the stored snapshot.

        Raises:
            StoreError: If the entry cannot be removed.
        """
        await self._store.remove(LIVENESS_KEY)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _read(self) -> Optional[LivenessSnapshot]:
        try:
            raw = await read_json(self._store, LIVENESS_KEY)
        except StoreError as exc:
            get_output().warning(f"Liveness snapshot unreadable, re-checking: {exc}")
            return None
        if raw is None:
            return None
        try:
            snapshot = LivenessSnapshot.model_validate(raw)
        except ValidationError:
            get_output().debug("Ignoring malformed liveness snapshot")
            return None
        return self._conform(snapshot)

    def _conform(self, snapshot: LivenessSnapshot) -> LivenessSnapshot:
        """Align a stored snapshot with the configured link list.

        Links no longer configured are dropped and new ones appear unchecked,
        so callers always see exactly the configured ids in order.
        """
        by_id = {status.id: status for status in snapshot.links}
        links = [
            by_id[link.id] if link.id in by_id else LinkStatus.unchecked(link)
            for link in self._links
        ]
        return snapshot.model_copy(update={"links": links})

    async def _check(self, link: LinkSpec) -> LinkStatus:
        """Check one link; any failure leaves only this link unchecked."""
        output = get_output()
        try:
            response = await self._transport.request(link.url, "HEAD")
            if response.status_code not in _HEAD_UNSUPPORTED:
                return self._status(link, response.status_code, response.header("Last-Modified"))
            output.debug(f"HEAD {link.url} unsupported (HTTP {response.status_code}), trying GET")
        except TransportError as exc:
            output.debug(f"HEAD {link.url} failed, trying GET: {exc}")
        except Exception as exc:
            output.warning(f"Checking {link.id} failed: {exc!r}")
            return LinkStatus.unchecked(link)

        try:
            response = await self._transport.request(link.url, "GET")
        except TransportError as exc:
            output.debug(f"GET {link.url} failed: {exc}")
            return LinkStatus.unchecked(link)
        except Exception as exc:
            output.warning(f"Checking {link.id} failed: {exc!r}")
            return LinkStatus.unchecked(link)
        return self._status(link, response.status_code, response.header("Last-Modified"))

    @staticmethod
    def _status(link: LinkSpec, status: int, last_modified: Optional[str]) -> LinkStatus:
        return LinkStatus(
            id=link.id,
            title=link.title,
            url=link.url,
            checked_status=status,
            last_modified=last_modified,
        )

    def _fallback(self, previous: Optional[LivenessSnapshot]) -> LivenessSnapshot:
        if previous is not None:
            update: dict[str, object] = {"source": LivenessSource.CACHE}
            if self._restamp_on_fallback:
                update["verified_at"] = self._clock()
            return previous.model_copy(update=update)
        return LivenessSnapshot(
            verified_at=self._clock(),
            links=[LinkStatus.unchecked(link) for link in self._links],
            source=LivenessSource.CACHE,
        )
