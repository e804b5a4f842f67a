"""Conditional-GET cache for the document-pack guide.

:class:`GuideCache` keeps one JSON guide and its validator metadata in a
:class:`~freshcache.store.base.KeyValueStore` and, on every
:meth:`~GuideCache.load_guide`, asks the remote whether the copy is still
current:

* ``200`` -- the new body replaces the stored payload, the new validators
  replace the stored ones, and the result is ``FULL_FETCH`` from ``remote``.
* ``304`` -- the stored payload is returned as ``REVALIDATED`` from
  ``cache`` with ``fetched_at`` moved to now and the validators untouched.
* anything else, including a body that fails the guide schema -- the stored
  payload is returned as-is (``REVALIDATED``, ``cache``), or the empty guide
  when nothing is stored.

``load_guide`` never raises for network, parse, or store failures; the worst
answer is the empty guide.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from pydantic import ValidationError

from freshcache.exceptions import ParseError, StoreError
from freshcache.fetcher import ConditionalFetcher, Failed, Fetched, NotModified, Validators
from freshcache.freshness import Clock, utcnow
from freshcache.models import (
    CachedDocument,
    FetchSource,
    FetchStatus,
    Guide,
    GuideMeta,
)
from freshcache.output import get_output
from freshcache.store.base import KeyValueStore, read_json, write_json

if TYPE_CHECKING:
    from freshcache.pack_state import PackStateStore

GUIDE_CACHE_KEY = "ms.eapr.guides.cache.v1"
GUIDE_META_KEY = "ms.eapr.guides.meta.v1"


def parse_guide(body: Any) -> Guide:
    """Normalise a decoded guide body into a :class:`~freshcache.models.Guide`.

    Accepts either a guide object with a ``sections`` list or a bare list of
    sections.  Missing ``id``/``title`` fall back to the defaults and a
    non-list ``tips`` is dropped.

    Raises:
        ParseError: If the body has no sections or fails validation.
    """
    if isinstance(body, list):
        data: dict[str, Any] = {"sections": body}
    elif isinstance(body, dict):
        if "sections" not in body:
            raise ParseError("Guide body has no 'sections'")
        data = {"sections": body["sections"]}
        if body.get("id"):
            data["id"] = body["id"]
        if body.get("title"):
            data["title"] = body["title"]
        if isinstance(body.get("tips"), list):
            data["tips"] = body["tips"]
    else:
        raise ParseError(f"Guide body must be an object or a list, got {type(body).__name__}")

    try:
        return Guide.model_validate(data)
    except ValidationError as exc:
        raise ParseError(f"Guide body failed validation: {exc}") from exc


def dump_guide(guide: Guide) -> dict[str, Any]:
    """Serialise *guide* in its stored JSON shape."""
    return guide.model_dump(mode="json", by_alias=True, exclude_none=True)


class GuideCache:
    """Freshness-aware cache for a single remote guide document.

    Args:
        store: Where the payload and metadata are persisted.
        fetcher: Conditional fetcher used for the remote check.
        url: Absolute URL of the guide JSON.
        clock: Zero-argument callable returning the current UTC time.
        pack_state: Optional pack-state store hydrated with the guide's
            sections after every successful load.

    Example::

        cache = GuideCache(store, ConditionalFetcher(transport), url)
        doc = await cache.load_guide()
        print(doc.source, doc.freshness_label, len(doc.payload.sections))
    """

    def __init__(
        self,
        store: KeyValueStore,
        fetcher: ConditionalFetcher,
        url: str,
        clock: Clock = utcnow,
        pack_state: Optional[PackStateStore] = None,
    ) -> None:
        self._store = store
        self._fetcher = fetcher
        self._url = url
        self._clock = clock
        self._pack_state = pack_state

    @property
    def url(self) -> str:
        return self._url

    async def load_guide(self) -> CachedDocument:
        """Return the current guide, revalidating or refetching as needed.

        Returns:
            A :class:`~freshcache.models.CachedDocument`.  Never raises for
            transport, parse, or store failures.
        """
        output = get_output()
        guide, meta = await self._read()
        validators = Validators(meta.etag, meta.last_modified) if guide is not None else Validators()

        outcome = await self._fetcher.fetch(self._url, validators)
        now = self._clock()

        if isinstance(outcome, Fetched):
            try:
                fresh = parse_guide(outcome.payload)
            except ParseError as exc:
                output.debug(f"Discarding guide body: {exc}")
                outcome = Failed(reason="parse", detail=str(exc), error=exc)
            else:
                return await self._store_full_fetch(fresh, outcome, now)

        if isinstance(outcome, NotModified) and guide is not None:
            return await self._store_revalidation(guide, meta, now)

        if isinstance(outcome, NotModified):
            output.debug("Guide revalidated but no payload is stored")
        return self._fallback(guide, meta, now)

    async def cached(self) -> Optional[CachedDocument]:
        """Return the stored guide without touching the network, or ``None``."""
        guide, meta = await self._read()
        if guide is None:
            return None
        return CachedDocument(
            payload=guide,
            etag=meta.etag,
            last_modified=meta.last_modified,
            fetched_at=meta.fetched_at or meta.cached_at or self._clock(),
            cached_at=meta.cached_at,
            source=FetchSource.CACHE,
            status=meta.status or FetchStatus.REVALIDATED,
        )

    async def force_revalidate(self) -> None:
        """Forget the stored validators so the next load performs a full fetch.

        Raises:
            StoreError: If the metadata cannot be removed.
        """
        await self._store.remove(GUIDE_META_KEY)

    async def clear(self) -> None:
        """Remove the stored payload and metadata.

        Raises:
            StoreError: If an entry cannot be removed.
        """
        await self._store.remove(GUIDE_CACHE_KEY)
        await self._store.remove(GUIDE_META_KEY)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _read(self) -> tuple[Optional[Guide], GuideMeta]:
        output = get_output()
        try:
            raw_guide = await read_json(self._store, GUIDE_CACHE_KEY)
        except StoreError as exc:
            output.warning(f"Guide cache unreadable, continuing without it: {exc}")
            return None, GuideMeta()
        try:
            raw_meta = await read_json(self._store, GUIDE_META_KEY)
        except StoreError as exc:
            # Without metadata the payload is still servable, just not revalidatable.
            output.warning(f"Guide metadata unreadable, dropping validators: {exc}")
            raw_meta = None

        guide: Optional[Guide] = None
        if raw_guide is not None:
            try:
                guide = Guide.model_validate(raw_guide)
            except ValidationError:
                output.debug("Ignoring stored guide that no longer matches the schema")

        meta = GuideMeta()
        if isinstance(raw_meta, dict):
            try:
                meta = GuideMeta.model_validate(raw_meta)
            except ValidationError:
                output.debug("Ignoring malformed guide metadata")
        return guide, meta

    async def _store_full_fetch(self, guide: Guide, fetched: Fetched, now: datetime) -> CachedDocument:
        meta = GuideMeta(
            etag=fetched.etag,
            last_modified=fetched.last_modified,
            status=FetchStatus.FULL_FETCH,
            fetched_at=now,
            cached_at=now,
        )
        try:
            # Payload before metadata: new validators must never describe an old payload.
            await write_json(self._store, GUIDE_CACHE_KEY, dump_guide(guide))
            await write_json(self._store, GUIDE_META_KEY, meta.model_dump(mode="json", by_alias=True))
        except StoreError as exc:
            get_output().warning(f"Fetched guide could not be cached: {exc}")
        await self._hydrate_pack_state(guide)
        return CachedDocument(
            payload=guide,
            etag=meta.etag,
            last_modified=meta.last_modified,
            fetched_at=now,
            cached_at=now,
            source=FetchSource.REMOTE,
            status=FetchStatus.FULL_FETCH,
        )

    async def _store_revalidation(self, guide: Guide, previous: GuideMeta, now: datetime) -> CachedDocument:
        meta = GuideMeta(
            etag=previous.etag,
            last_modified=previous.last_modified,
            status=FetchStatus.REVALIDATED,
            fetched_at=now,
            cached_at=previous.cached_at or previous.fetched_at or now,
        )
        try:
            await write_json(self._store, GUIDE_META_KEY, meta.model_dump(mode="json", by_alias=True))
        except StoreError as exc:
            get_output().warning(f"Revalidation time could not be recorded: {exc}")
        await self._hydrate_pack_state(guide)
        return CachedDocument(
            payload=guide,
            etag=meta.etag,
            last_modified=meta.last_modified,
            fetched_at=now,
            cached_at=meta.cached_at,
            source=FetchSource.CACHE,
            status=FetchStatus.REVALIDATED,
        )

    def _fallback(self, guide: Optional[Guide], meta: GuideMeta, now: datetime) -> CachedDocument:
        if guide is None:
            get_output().debug("No guide available; serving the empty guide")
            return CachedDocument(
                payload=Guide.empty(),
                fetched_at=now,
                source=FetchSource.CACHE,
                status=FetchStatus.REVALIDATED,
            )
        get_output().debug("Serving stored guide without confirmation")
        return CachedDocument(
            payload=guide,
            etag=meta.etag,
            last_modified=meta.last_modified,
            fetched_at=meta.fetched_at or meta.cached_at or now,
            cached_at=meta.cached_at,
            source=FetchSource.CACHE,
            status=FetchStatus.REVALIDATED,
        )

    async def _hydrate_pack_state(self, guide: Guide) -> None:
        if self._pack_state is None:
            return
        try:
            await self._pack_state.hydrate(guide)
        except StoreError as exc:
            get_output().warning(f"Checklist progress could not be initialised: {exc}")
