"""Durable key-value store backed by :mod:`diskcache`.

Entries are plain strings stored without expiry; freshness is decided by the
caches, never by the store.  :mod:`diskcache` is synchronous (SQLite plus
files), so every call is pushed to a worker thread with
:func:`asyncio.to_thread` to keep the event loop free.
"""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any, Optional

import diskcache

from freshcache.exceptions import StoreError

_STORE_ERRORS = (OSError, sqlite3.Error, diskcache.Timeout)


class DiskStore:
    """Disk-backed store satisfying :class:`~freshcache.store.base.KeyValueStore`.

    Args:
        directory: Root directory.  A ``store/`` subdirectory is created
            inside it for the :class:`diskcache.Cache`.

    Raises:
        StoreError: If the store directory cannot be opened.

    Example::

        with DiskStore(get_cache_dir()) as store:
            await store.set("greeting", "hello")
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory) / "store"
        try:
            self._cache: Optional[diskcache.Cache] = diskcache.Cache(str(self._directory))
        except _STORE_ERRORS as exc:
            raise StoreError(f"Cannot open store at {self._directory}: {exc}") from exc

    @property
    def directory(self) -> Path:
        return self._directory

    async def get(self, key: str) -> Optional[str]:
        value = await self._call("read", key, lambda cache: cache.get(key))
        if value is not None and not isinstance(value, str):
            raise StoreError(f"Store entry {key!r} is not a string")
        return value

    async def set(self, key: str, value: str) -> None:
        await self._call("write", key, lambda cache: cache.set(key, value))

    async def remove(self, key: str) -> None:
        await self._call("remove", key, lambda cache: cache.delete(key))

    def stats(self) -> dict[str, Any]:
        """Return the entry count and directory of the store."""
        if self._cache is None:
            return {"open": False, "directory": str(self._directory)}
        return {
            "open": True,
            "size": len(self._cache),
            "directory": str(self._directory),
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache`. Safe to call twice."""
        if self._cache is not None:
            self._cache.close()
            self._cache = None

    def __enter__(self) -> DiskStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    async def _call(self, action: str, key: str, fn: Any) -> Any:
        if self._cache is None:
            raise StoreError(f"Cannot {action} {key!r}: store is closed")
        cache = self._cache
        try:
            return await asyncio.to_thread(fn, cache)
        except _STORE_ERRORS as exc:
            raise StoreError(f"Cannot {action} {key!r}: {exc}") from exc
