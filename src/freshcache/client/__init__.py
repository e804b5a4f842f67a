"""HTTP transport layer for freshcache.

Classes:
    :class:`Transport` -- protocol every transport satisfies.
    :class:`HttpxTransport` -- production transport over :class:`httpx.AsyncClient`.
    :class:`TransportResponse` -- status, headers and body of one request.
"""

from freshcache.client.response import TransportResponse, decode_json_body
from freshcache.client.transport import HttpxTransport, Transport

__all__ = ["HttpxTransport", "Transport", "TransportResponse", "decode_json_body"]
