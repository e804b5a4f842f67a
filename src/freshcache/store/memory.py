"""In-memory :class:`~freshcache.store.base.KeyValueStore` implementation."""

from __future__ import annotations

from typing import Optional


class MemoryStore:
    """Dict-backed store for tests and embedders.

    Args:
        initial: Optional entries to seed the store with.

    Example::

        store = MemoryStore({"ms.eapr.state.v1": '{"items": {}}'})
        await store.get("ms.eapr.state.v1")
    """

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)

    def __len__(self) -> int:
        return len(self.data)
