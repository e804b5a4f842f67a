"""Tests for TransportResponse and JSON body decoding."""

from __future__ import annotations

import httpx
import pytest

from freshcache.client.response import TransportResponse, decode_json_body
from freshcache.exceptions import ParseError


class TestTransportResponse:
    def test_header_lookup_ignores_case(self) -> None:
        resp = TransportResponse(status_code=200, headers={"etag": '"abc"'})
        assert resp.header("ETag") == '"abc"'
        assert resp.header("Last-Modified") is None

    @pytest.mark.parametrize("status, ok", [(200, True), (204, True), (304, False), (404, False)])
    def test_is_success(self, status: int, ok: bool) -> None:
        assert TransportResponse(status_code=status).is_success is ok

    def test_from_httpx(self) -> None:
        raw = httpx.Response(
            200,
            content=b'{"sections": []}',
            headers={"ETag": '"v1"'},
            request=httpx.Request("GET", "https://guides.example.com/eapr.json"),
        )
        resp = TransportResponse.from_httpx(raw)
        assert resp.status_code == 200
        assert resp.header("etag") == '"v1"'
        assert resp.content == b'{"sections": []}'


class TestDecodeJsonBody:
    def test_plain_json(self) -> None:
        assert decode_json_body(b'{"a": 1}') == {"a": 1}

    def test_leading_bom_is_stripped(self) -> None:
        assert decode_json_body("\ufeff[1, 2]".encode("utf-8")) == [1, 2]

    def test_empty_body(self) -> None:
        with pytest.raises(ParseError, match="empty"):
            decode_json_body(b"   ")

    def test_not_utf8(self) -> None:
        with pytest.raises(ParseError, match="UTF-8"):
            decode_json_body(b"\xff\xfe\x00")

    def test_not_json(self) -> None:
        with pytest.raises(ParseError, match="JSON parse failed"):
            decode_json_body(b"<!doctype html>")
