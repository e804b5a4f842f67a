"""Clock and freshness-label helpers shared by the caches and the CLI.

The caches take a zero-argument clock callable (default :func:`utcnow`) so
that tests can pin time.  The label helpers turn cache metadata into the short
human strings shown next to cached data, e.g.
``"Guide • Remote • fetched 2025-10-03 09:00 UTC • updated"``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from freshcache.models import FetchSource, FetchStatus, LivenessSource

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def is_fresh(verified_at: Optional[datetime], now: datetime, ttl: timedelta) -> bool:
    """Return ``True`` when *verified_at* is less than *ttl* before *now*.

    Naive timestamps are treated as UTC.
    """
    if verified_at is None:
        return False
    if verified_at.tzinfo is None:
        verified_at = verified_at.replace(tzinfo=timezone.utc)
    return now - verified_at < ttl


def sync_qualifier(status: Optional[Union[FetchStatus, int]]) -> Optional[str]:
    """Map a load status to ``"updated"`` (200), ``"validated"`` (304) or ``None``."""
    if status == FetchStatus.FULL_FETCH:
        return "updated"
    if status == FetchStatus.REVALIDATED:
        return "validated"
    return None


def source_title(source: Optional[Union[FetchSource, LivenessSource, str]]) -> str:
    """Return the display title for a data source."""
    value = source.value if isinstance(source, (FetchSource, LivenessSource)) else source
    if value == "remote":
        return "Remote"
    if value == "live":
        return "Live"
    if value == "cache":
        return "Cache"
    return "Local"


def format_timestamp(value: Optional[datetime]) -> str:
    """Format *value* as ``YYYY-MM-DD HH:MM UTC``; empty string for ``None``."""
    if value is None:
        return ""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def make_meta_line(
    label: Optional[str],
    source: Optional[Union[FetchSource, LivenessSource, str]],
    timestamp: Optional[datetime],
    status: Optional[Union[FetchStatus, int]] = None,
) -> str:
    """Build a one-line freshness notice.

    Empty parts are skipped and the rest joined with ``" • "``.

    Args:
        label: Leading label such as ``"Guide"``; omitted when falsy.
        source: Where the data came from.
        timestamp: When the data was last fetched or verified.
        status: Optional load status used for the ``updated``/``validated``
            qualifier.

    Returns:
        The joined notice string.
    """
    parts: list[str] = []
    if label:
        parts.append(label)
    parts.append(source_title(source))
    when = format_timestamp(timestamp)
    if when:
        parts.append(f"fetched {when}")
    qualifier = sync_qualifier(status)
    if qualifier:
        parts.append(qualifier)
    return " • ".join(parts)
