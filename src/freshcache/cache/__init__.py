"""Freshness-aware caches for freshcache.

* :class:`GuideCache` -- conditional GET (ETag / Last-Modified) of one JSON
  guide, with a last-known-good fallback chain.
* :class:`LivenessCache` -- TTL-gated HEAD/GET checks of a fixed link list.

Both take their store, transport and clock through the constructor and
never raise for network, parse, or store failures.
"""

from freshcache.cache.guide import GUIDE_CACHE_KEY, GUIDE_META_KEY, GuideCache, parse_guide
from freshcache.cache.liveness import DEFAULT_TTL, LIVENESS_KEY, LivenessCache

__all__ = [
    "GUIDE_CACHE_KEY",
    "GUIDE_META_KEY",
    "LIVENESS_KEY",
    "DEFAULT_TTL",
    "GuideCache",
    "LivenessCache",
    "parse_guide",
]
