"""Transport-neutral response value and body helpers.

:class:`TransportResponse` is what every :class:`~freshcache.client.transport.Transport`
returns: only the status code, the headers, and the raw body bytes.  The
fetcher and the liveness cache never see an :class:`httpx.Response`, so a
non-HTTP transport (or a test fake) can stand in without mimicking httpx.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx

from freshcache.exceptions import ParseError

_BOM = "\ufeff"


@dataclass(frozen=True)
class TransportResponse:
    """Status, headers, and body of one completed request.

    Header lookup through :meth:`header` is case-insensitive.

    Attributes:
        status_code: The numeric response status.
        headers: Response headers as received.
        content: Raw body bytes (empty for ``HEAD`` and ``304``).
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> TransportResponse:
        return cls(
            status_code=response.status_code,
            headers=dict(response.headers),
            content=response.content,
        )

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> Optional[str]:
        """Return the value of header *name*, ignoring case, or ``None``."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


def decode_json_body(content: bytes) -> Any:
    """Decode a UTF-8 JSON body, tolerating a leading byte-order mark.

    Raises:
        ParseError: If the body is empty, not UTF-8, or not JSON.
    """
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"Response body is not UTF-8: {exc}") from exc
    text = text.lstrip(_BOM)
    if not text.strip():
        raise ParseError("Response body is empty")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(f"JSON parse failed. Head: {text[:80]!r}") from exc
