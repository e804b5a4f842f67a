"""Conditional GET with ETag / Last-Modified validators.

:class:`ConditionalFetcher` sends one ``GET`` carrying whichever cache
validators the caller holds and reduces the answer to one of three outcomes:

* :class:`Fetched` -- a 2xx response with a JSON body, plus the fresh
  validators from its ``ETag`` / ``Last-Modified`` headers.
* :class:`NotModified` -- a ``304`` to a request that carried validators.
  Validators on the 304 itself are ignored; the caller's remain authoritative.
* :class:`Failed` -- anything else: a transport failure, a blocked request,
  an unexpected status, or a body that is not JSON.

The fetcher never raises for these conditions, so callers branch on the
outcome type instead of wrapping calls in ``try``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from freshcache.client.response import decode_json_body
from freshcache.client.transport import Transport
from freshcache.exceptions import FreshcacheError, ParseError, TransportError
from freshcache.output import get_output


@dataclass(frozen=True)
class Validators:
    """Cache validators replayed on a conditional request."""

    etag: Optional[str] = None
    last_modified: Optional[str] = None

    def __bool__(self) -> bool:
        return bool(self.etag or self.last_modified)

    def to_headers(self) -> dict[str, str]:
        """Return the conditional request headers for the validators present."""
        headers: dict[str, str] = {}
        if self.etag:
            headers["If-None-Match"] = self.etag
        if self.last_modified:
            headers["If-Modified-Since"] = self.last_modified
        return headers


@dataclass(frozen=True)
class Fetched:
    """The remote answered 2xx with a decodable JSON body."""

    payload: Any
    etag: Optional[str] = None
    last_modified: Optional[str] = None


@dataclass(frozen=True)
class NotModified:
    """The remote confirmed the caller's validators (HTTP 304)."""


@dataclass(frozen=True)
class Failed:
    """The fetch produced nothing usable.

    Attributes:
        reason: Short machine-readable cause: ``"transport"``, ``"blocked"``,
            ``"status"``, or ``"parse"``.
        detail: Human-readable description.
        error: The underlying exception, when there was one.
    """

    reason: str
    detail: str = ""
    error: Optional[FreshcacheError] = None


FetchOutcome = Union[Fetched, NotModified, Failed]


class ConditionalFetcher:
    """Issue conditional ``GET`` requests through a :class:`~freshcache.client.transport.Transport`.

    Args:
        transport: The transport used for every request.

    Example::

        fetcher = ConditionalFetcher(transport)
        outcome = await fetcher.fetch(url, Validators(etag='"abc"'))
        if isinstance(outcome, NotModified):
            ...
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def fetch(self, url: str, validators: Optional[Validators] = None) -> FetchOutcome:
        """Fetch *url*, replaying *validators* when present.

        Args:
            url: Absolute URL of the JSON document.
            validators: Validators from the caller's cached copy, or ``None``.

        Returns:
            A :class:`Fetched`, :class:`NotModified`, or :class:`Failed`.
        """
        output = get_output()
        validators = validators or Validators()
        headers = {"Accept": "application/json", **validators.to_headers()}

        try:
            response = await self._transport.request(url, "GET", headers)
        except TransportError as exc:
            reason = "blocked" if exc.blocked else "transport"
            output.debug(f"Conditional GET {url} failed ({reason}): {exc}")
            return Failed(reason=reason, detail=str(exc), error=exc)
        except Exception as exc:
            output.debug(f"Conditional GET {url} failed unexpectedly: {exc!r}")
            error = TransportError(f"GET {url} failed: {exc}")
            return Failed(reason="transport", detail=str(error), error=error)

        status = response.status_code
        if status == 304:
            if not validators:
                output.debug(f"Conditional GET {url}: 304 without validators")
                return Failed(reason="status", detail="HTTP 304 without validators")
            output.debug(f"Conditional GET {url}: 304 Not Modified")
            return NotModified()

        if not response.is_success:
            output.debug(f"Conditional GET {url}: HTTP {status}")
            return Failed(reason="status", detail=f"HTTP {status}")

        try:
            payload = decode_json_body(response.content)
        except ParseError as exc:
            output.debug(f"Conditional GET {url}: {exc}")
            return Failed(reason="parse", detail=str(exc), error=exc)

        output.debug(f"Conditional GET {url}: HTTP {status}, body replaced")
        return Fetched(
            payload=payload,
            etag=response.header("ETag"),
            last_modified=response.header("Last-Modified"),
        )
