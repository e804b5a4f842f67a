"""Shared test fixtures for freshcache.

Provides an in-memory store, a store that fails on demand, a scripted
transport that records every request, a controllable clock, an isolated
config environment, and output-state management.  These fixtures are
automatically discovered by pytest and available to all test modules without
explicit imports.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

import pytest

from freshcache.client.response import TransportResponse
from freshcache.exceptions import StoreError, TransportError
from freshcache.models import LinkSpec
from freshcache.output import reset_output
from freshcache.store.memory import MemoryStore


GUIDE_URL = "https://guides.example.com/eapr.json"
START = datetime(2025, 10, 3, 9, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Clock callable whose time only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


Scripted = Union[TransportResponse, BaseException]


class FakeTransport:
    """Transport answering from a script and recording every request.

    Responses are queued per ``(method, url)``; the last one queued repeats.
    An exception in the queue is raised instead of returned.  Requests with
    no scripted answer raise :class:`TransportError`.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Scripted]] = {}
        self.calls: list[tuple[str, str, dict[str, str]]] = []

    def add(self, method: str, url: str, *results: Scripted) -> None:
        self.routes.setdefault((method.upper(), url), []).extend(results)

    def methods_for(self, url: str) -> list[str]:
        return [method for method, called, _ in self.calls if called == url]

    async def request(
        self,
        url: str,
        method: str = "GET",
        headers: Optional[Mapping[str, str]] = None,
    ) -> TransportResponse:
        self.calls.append((method, url, dict(headers or {})))
        queue = self.routes.get((method.upper(), url))
        if not queue:
            raise TransportError(f"{method} {url}: no scripted response")
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, BaseException):
            raise result
        return result


class FailingStore(MemoryStore):
    """Memory store that raises :class:`StoreError` for selected operations."""

    def __init__(
        self,
        initial: Optional[dict[str, str]] = None,
        fail: Iterable[str] = ("get", "set", "remove"),
        keys: Optional[Iterable[str]] = None,
    ) -> None:
        super().__init__(initial)
        self.fail = set(fail)
        self.keys = set(keys) if keys is not None else None

    def _check(self, op: str, key: str) -> None:
        if op in self.fail and (self.keys is None or key in self.keys):
            raise StoreError(f"Cannot {op} {key!r}: disk full")

    async def get(self, key: str) -> Optional[str]:
        self._check("get", key)
        return await super().get(key)

    async def set(self, key: str, value: str) -> None:
        self._check("set", key)
        await super().set(key, value)

    async def remove(self, key: str) -> None:
        self._check("remove", key)
        await super().remove(key)


def json_response(
    body: Any,
    status_code: int = 200,
    headers: Optional[dict[str, str]] = None,
) -> TransportResponse:
    """Build a :class:`TransportResponse` carrying *body* as JSON."""
    return TransportResponse(
        status_code=status_code,
        headers=headers or {},
        content=json.dumps(body).encode("utf-8"),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    """Clock pinned at 2025-10-03 09:00 UTC."""
    return FakeClock()


@pytest.fixture
def transport() -> FakeTransport:
    """Scripted transport with no routes."""
    return FakeTransport()


@pytest.fixture
def failing_store_factory():
    """Factory for :class:`FailingStore` instances."""
    return FailingStore


@pytest.fixture
def guide_body() -> dict[str, Any]:
    """A small guide in its remote JSON shape."""
    return {
        "id": "eapr",
        "title": "e-APR Document Pack",
        "sections": [
            {
                "id": "identity",
                "title": "Identity",
                "docs": [
                    {
                        "id": "passport",
                        "title": "Passport",
                        "required": True,
                        "officialLink": "https://www.canada.ca/passport",
                    },
                    {"id": "photo", "title": "Photo"},
                ],
            },
            {
                "id": "funds",
                "title": "Proof of funds",
                "docs": [{"id": "bank_letter", "title": "Bank letter", "required": True}],
            },
        ],
        "tips": ["Scan documents in colour."],
    }


@pytest.fixture
def links() -> list[LinkSpec]:
    """Three monitored links."""
    return [
        LinkSpec(id="docs", title="Documents", url="https://links.example.com/docs"),
        LinkSpec(id="funds", title="Proof of funds", url="https://links.example.com/funds"),
        LinkSpec(id="photo", title="Photo specs", url="https://links.example.com/photo.pdf"),
    ]


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config or the real store. Clears all FRESHCACHE_* environment
    variables and changes the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("freshcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "FRESHCACHE_GUIDE_URL",
        "FRESHCACHE_OFFLINE",
        "FRESHCACHE_STORE_DIR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def make_response():
    """Factory for JSON :class:`TransportResponse` objects."""
    return json_response


@pytest.fixture
def guide_url() -> str:
    return GUIDE_URL
