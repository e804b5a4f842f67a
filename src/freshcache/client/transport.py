"""Asynchronous transport used by the fetcher and the liveness cache.

This module provides the :class:`Transport` protocol and its production
implementation :class:`HttpxTransport`, a thin wrapper around
:class:`httpx.AsyncClient`.  The wrapper does exactly one request per call:
no retries, no status-code mapping.  Classifying the response is left to the
caller, and every low-level failure is raised as
:class:`~freshcache.exceptions.TransportError`.

An ``offline`` transport refuses each request before any I/O.  It models a
platform that blocks the request outright (for example a browser-hosted client
hitting a host without CORS headers) and lets the caches exercise their
fallback paths deterministically.
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol, runtime_checkable

import httpx

from freshcache import __version__
from freshcache.client.response import TransportResponse
from freshcache.exceptions import TransportError
from freshcache.models import RequestConfig
from freshcache.output import get_output


@runtime_checkable
class Transport(Protocol):
    """Anything that can perform one request and hand back a :class:`TransportResponse`."""

    async def request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
    ) -> TransportResponse:
        ...


class HttpxTransport:
    """Transport backed by :class:`httpx.AsyncClient`.

    Must be used as an async context manager so that the connection pool is
    opened and closed.

    Args:
        config: Timeout, TLS verification and the ``offline`` switch.
        transport: Optional :mod:`httpx` transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        async with HttpxTransport(RequestConfig(timeout=5)) as transport:
            response = await transport.request("https://example.com", "HEAD")
    """

    def __init__(
        self,
        config: Optional[RequestConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or RequestConfig()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HttpxTransport:
        self._client = httpx.AsyncClient(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            headers={"User-Agent": f"freshcache/{__version__}"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
    ) -> TransportResponse:
        """Perform a single request.

        Args:
            url: Absolute URL.
            method: HTTP method, typically ``GET`` or ``HEAD``.
            headers: Extra request headers.

        Returns:
            The completed :class:`TransportResponse`, whatever its status.

        Raises:
            TransportError: When the transport is offline, the request times
                out, the connection fails, or the request cannot be built.
            RuntimeError: When used outside its async context manager.
        """
        if self._config.offline:
            raise TransportError(f"{method} {url} blocked: transport is offline", blocked=True)
        if self._client is None:
            raise RuntimeError("Transport not open -- use as async context manager")

        get_output().debug(f"{method} {url}")
        try:
            response = await self._client.request(method, url, headers=dict(headers or {}))
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        except (httpx.InvalidURL, ValueError) as exc:
            # Raised while building the request: bad URL or non-ASCII header.
            raise TransportError(f"{method} {url} could not be sent: {exc}") from exc
        return TransportResponse.from_httpx(response)
