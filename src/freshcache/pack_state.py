"""Checklist progress persisted as a single JSON blob.

:class:`PackStateStore` keeps :class:`~freshcache.models.PackState` under one
store key.  Every mutation is a read-modify-write of the whole blob that
stamps ``updated_at``.

Mutations on one store instance are serialised through an
:class:`asyncio.Lock`.  Waiters are woken in FIFO order, so two mutations
issued back-to-back without awaiting the first apply in issue order and the
last one issued wins.  No merge is ever attempted, and a reader never sees a
mixture of two writes.
"""

from __future__ import annotations

import asyncio
import math
from typing import Any, Optional

from pydantic import ValidationError

from freshcache.cache.guide import GUIDE_CACHE_KEY
from freshcache.exceptions import StoreError
from freshcache.freshness import Clock, utcnow
from freshcache.models import Guide, PackState
from freshcache.output import get_output
from freshcache.store.base import KeyValueStore, read_json, write_json

PACK_STATE_KEY = "ms.eapr.state.v1"

_UNSET: Any = object()


def hydrate_from_guide(state: PackState, guide: Guide) -> bool:
    """Add an empty entry for every guide section and item missing from *state*.

    Existing entries, including ones the guide no longer lists, are kept.

    Returns:
        ``True`` if anything was added.
    """
    changed = False
    for section in guide.sections:
        items = state.items.get(section.id)
        if items is None:
            items = state.items[section.id] = {}
            changed = True
        for doc in section.docs:
            if doc.id not in items:
                state.item(section.id, doc.id)
                changed = True
    return changed


class PackStateStore:
    """Read-modify-write store for checklist progress.

    Args:
        store: Where the state blob is persisted.
        clock: Zero-argument callable returning the current UTC time.

    Example::

        pack = PackStateStore(store)
        await pack.mark_provided("personal", "passport", True)
        state = await pack.get_state()
    """

    def __init__(self, store: KeyValueStore, clock: Clock = utcnow) -> None:
        self._store = store
        self._clock = clock
        self._lock = asyncio.Lock()

    async def get_state(self) -> PackState:
        """Return the stored state, hydrated with the cached guide's items.

        When a guide is cached and no state has been stored yet, the hydrated
        state is persisted.  Store failures yield an empty state.
        """
        output = get_output()
        async with self._lock:
            try:
                stored = await self._read()
                raw_guide = await read_json(self._store, GUIDE_CACHE_KEY)
            except StoreError as exc:
                output.warning(f"Checklist progress unreadable: {exc}")
                return PackState()

            state = stored if stored is not None else PackState()
            guide = self._parse_guide(raw_guide)
            if guide is not None:
                hydrate_from_guide(state, guide)
                if stored is None:
                    await self._write(state)
            return state

    async def hydrate(self, guide: Guide) -> PackState:
        """Initialise the stored state from *guide* if nothing is stored yet.

        Raises:
            StoreError: If the stored state cannot be read.
        """
        async with self._lock:
            stored = await self._read()
            state = stored if stored is not None else PackState()
            hydrate_from_guide(state, guide)
            if stored is None:
                await self._write(state)
            return state

    async def mark_provided(self, section_id: str, item_id: str, provided: bool) -> PackState:
        """Set whether an item has been provided.

        Returns:
            The state as written (or as it would have been written, when the
            store rejects the write).
            An empty state without ``updated_at`` means the stored progress
            could not be read and nothing changed.
        """
        return await self._mutate(
            section_id, item_id, lambda item: setattr(item, "provided", provided)
        )

    async def update_fields(
        self,
        section_id: str,
        item_id: str,
        filename: Optional[str] = _UNSET,
        size_bytes: Optional[float] = _UNSET,
        notes: Optional[str] = _UNSET,
    ) -> PackState:
        """Patch the file details and notes of an item.

        Only arguments that are passed change the item.  An empty or ``None``
        ``filename``/``notes`` clears the field; a ``size_bytes`` that is
        ``None``, negative, or not finite clears it.
        """

        def apply(item: Any) -> None:
            if filename is not _UNSET:
                item.filename = filename or None
            if notes is not _UNSET:
                item.notes = notes or None
            if size_bytes is not _UNSET:
                item.size_bytes = _clean_size(size_bytes)

        return await self._mutate(section_id, item_id, apply)

    async def clear(self) -> PackState:
        """Reset all progress to an empty state."""
        async with self._lock:
            state = PackState(updated_at=self._clock())
            await self._write(state)
            return state

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _mutate(self, section_id: str, item_id: str, apply: Any) -> PackState:
        output = get_output()
        async with self._lock:
            try:
                stored = await self._read()
            except StoreError as exc:
                # Writing from an empty state here would wipe stored progress.
                output.warning(f"Checklist progress unreadable, change not saved: {exc}")
                return PackState()
            state = stored if stored is not None else PackState()
            apply(state.item(section_id, item_id))
            state.updated_at = self._clock()
            await self._write(state)
            return state

    async def _read(self) -> Optional[PackState]:
        raw = await read_json(self._store, PACK_STATE_KEY)
        if raw is None:
            return None
        try:
            return PackState.model_validate(raw)
        except ValidationError:
            get_output().debug("Ignoring malformed checklist progress")
            return None

    async def _write(self, state: PackState) -> None:
        try:
            await write_json(
                self._store,
                PACK_STATE_KEY,
                state.model_dump(mode="json", by_alias=True, exclude_none=True),
            )
        except StoreError as exc:
            get_output().warning(f"Checklist progress could not be saved: {exc}")

    @staticmethod
    def _parse_guide(raw: Any) -> Optional[Guide]:
        if raw is None:
            return None
        try:
            return Guide.model_validate(raw)
        except ValidationError:
            return None


def _clean_size(value: Optional[float]) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return int(number)
