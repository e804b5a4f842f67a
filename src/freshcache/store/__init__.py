"""Key-value store adapters for freshcache.

Every cache component receives its store through its constructor.  Two
adapters ship with the package:

* :class:`DiskStore` -- durable, backed by :mod:`diskcache`; used by the CLI.
* :class:`MemoryStore` -- a plain dict; used by tests and embedders that
  manage persistence themselves.

Both satisfy the :class:`KeyValueStore` protocol: async ``get`` / ``set`` /
``remove`` of string values keyed by string, raising
:class:`~freshcache.exceptions.StoreError` on failure.
"""

from freshcache.store.base import KeyValueStore, read_json, write_json
from freshcache.store.disk import DiskStore
from freshcache.store.memory import MemoryStore

__all__ = ["KeyValueStore", "DiskStore", "MemoryStore", "read_json", "write_json"]
