"""The key-value store protocol and JSON helpers layered on top of it."""

from __future__ import annotations

import json
from typing import Any, Optional, Protocol, runtime_checkable

from freshcache.output import debug


@runtime_checkable
class KeyValueStore(Protocol):
    """Async string-keyed, string-valued store that survives process restarts.

    Implementations raise :class:`~freshcache.exceptions.StoreError` when an
    entry cannot be read, written, or removed.  Removing a missing key is not
    an error.
    """

    async def get(self, key: str) -> Optional[str]:
        ...

    async def set(self, key: str, value: str) -> None:
        ...

    async def remove(self, key: str) -> None:
        ...


async def read_json(store: KeyValueStore, key: str) -> Optional[Any]:
    """Read and decode a JSON value.

    A missing key and an undecodable value both yield ``None``; a corrupt
    entry is treated as if it had never been written.

    Raises:
        StoreError: If the store itself fails.
    """
    raw = await store.get(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        debug(f"Ignoring undecodable store entry {key!r}")
        return None


async def write_json(store: KeyValueStore, key: str, value: Any) -> None:
    """Encode *value* as compact JSON and write it under *key*.

    Raises:
        StoreError: If the store itself fails.
    """
    await store.set(key, json.dumps(value, ensure_ascii=False, separators=(",", ":")))
