"""Tests for LivenessCache -- TTL gating, HEAD/GET fallback, and snapshots."""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta
from typing import Mapping, Optional

import httpx
import pytest

from freshcache.cache.liveness import DEFAULT_TTL, LIVENESS_KEY, LivenessCache
from freshcache.client.response import TransportResponse
from freshcache.client.transport import HttpxTransport
from freshcache.exceptions import TransportError
from freshcache.models import LinkSpec, LivenessSource


def _ok(status: int = 200, last_modified: Optional[str] = None) -> TransportResponse:
    headers = {"Last-Modified": last_modified} if last_modified else {}
    return TransportResponse(status_code=status, headers=headers)


@pytest.fixture
def all_up(transport, links):
    """Every link answers HEAD with 200."""
    for link in links:
        transport.add("HEAD", link.url, _ok())
    return transport


@pytest.fixture
def make_cache(transport, clock, links):
    def _make(store, **kwargs):
        return LivenessCache(store, transport, links=links, clock=clock, **kwargs)

    return _make


class TestVerificationPass:
    @pytest.mark.asyncio
    async def test_first_load_checks_every_link(self, store, all_up, clock, links, make_cache) -> None:
        snapshot = await make_cache(store).load_liveness()

        assert snapshot.source == LivenessSource.LIVE
        assert snapshot.verified_at == clock.now
        assert [s.id for s in snapshot.links] == [link.id for link in links]
        assert all(s.checked_status == 200 for s in snapshot.links)
        assert [c[0] for c in all_up.calls] == ["HEAD"] * len(links)

    @pytest.mark.asyncio
    async def test_snapshot_is_persisted(self, store, all_up, make_cache) -> None:
        await make_cache(store).load_liveness()
        stored = json.loads(store.data[LIVENESS_KEY])

        assert stored["verifiedAtISO"].startswith("2025-10-03T09:00:00")
        assert [link["status"] for link in stored["links"]] == [200, 200, 200]
        assert stored["links"][0]["id"] == "docs"

    @pytest.mark.asyncio
    async def test_last_modified_is_recorded(self, store, transport, links, make_cache) -> None:
        stamp = "Wed, 01 Oct 2025 12:00:00 GMT"
        transport.add("HEAD", links[0].url, _ok(last_modified=stamp))
        transport.add("HEAD", links[1].url, _ok())
        transport.add("HEAD", links[2].url, _ok())
        snapshot = await make_cache(store).load_liveness()

        assert snapshot.links[0].last_modified == stamp
        assert snapshot.links[1].last_modified is None
        assert json.loads(store.data[LIVENESS_KEY])["links"][0]["lastModified"] == stamp

    @pytest.mark.asyncio
    async def test_checks_run_concurrently(self, store, clock, links) -> None:
        class SlowTransport:
            def __init__(self) -> None:
                self.in_flight = 0
                self.peak = 0

            async def request(
                self, url: str, method: str = "GET", headers: Optional[Mapping[str, str]] = None
            ) -> TransportResponse:
                self.in_flight += 1
                self.peak = max(self.peak, self.in_flight)
                await asyncio.sleep(0.01)
                self.in_flight -= 1
                return _ok()

        slow = SlowTransport()
        await LivenessCache(store, slow, links=links, clock=clock).load_liveness()
        assert slow.peak == len(links)


class TestHeadGetFallback:
    @pytest.mark.asyncio
    async def test_failed_head_retries_with_get(self, store, transport, links, make_cache) -> None:
        transport.add("HEAD", links[0].url, TransportError("reset"))
        transport.add("GET", links[0].url, _ok(200))
        transport.add("HEAD", links[1].url, _ok())
        transport.add("HEAD", links[2].url, _ok())
        snapshot = await make_cache(store).load_liveness()

        assert transport.methods_for(links[0].url) == ["HEAD", "GET"]
        assert snapshot.links[0].checked_status == 200

    @pytest.mark.parametrize("status", [405, 501])
    @pytest.mark.asyncio
    async def test_unsupported_head_retries_with_get(
        self, store, transport, links, make_cache, status
    ) -> None:
        transport.add("HEAD", links[0].url, _ok(status))
        transport.add("GET", links[0].url, _ok(200))
        transport.add("HEAD", links[1].url, _ok())
        transport.add("HEAD", links[2].url, _ok())
        snapshot = await make_cache(store).load_liveness()

        assert transport.methods_for(links[0].url) == ["HEAD", "GET"]
        assert snapshot.links[0].checked_status == 200

    @pytest.mark.asyncio
    async def test_error_status_on_head_is_recorded(self, store, transport, links, make_cache) -> None:
        transport.add("HEAD", links[0].url, _ok(404))
        transport.add("HEAD", links[1].url, _ok())
        transport.add("HEAD", links[2].url, _ok())
        snapshot = await make_cache(store).load_liveness()

        assert transport.methods_for(links[0].url) == ["HEAD"]
        assert snapshot.links[0].checked_status == 404

    @pytest.mark.asyncio
    async def test_both_failing_leaves_link_unchecked(self, store, transport, links, make_cache) -> None:
        """One dead link never aborts the pass."""
        transport.add("HEAD", links[1].url, _ok())
        transport.add("HEAD", links[2].url, _ok())
        snapshot = await make_cache(store).load_liveness()

        assert snapshot.source == LivenessSource.LIVE
        assert snapshot.links[0].checked_status is None
        assert snapshot.links[0].url == links[0].url
        assert [s.checked_status for s in snapshot.links[1:]] == [200, 200]

    @pytest.mark.asyncio
    async def test_unexpected_error_on_one_link_spares_the_others(
        self, store, transport, links, make_cache
    ) -> None:
        transport.add("HEAD", links[0].url, RuntimeError("client closed"))
        transport.add("HEAD", links[1].url, _ok())
        transport.add("HEAD", links[2].url, _ok())
        snapshot = await make_cache(store).load_liveness()

        assert snapshot.source == LivenessSource.LIVE
        assert snapshot.links[0].checked_status is None
        assert [s.checked_status for s in snapshot.links[1:]] == [200, 200]
        assert transport.methods_for(links[0].url) == ["HEAD"]
        assert LIVENESS_KEY in store.data

    @pytest.mark.asyncio
    async def test_unexpected_error_on_get_leaves_link_unchecked(
        self, store, transport, links, make_cache
    ) -> None:
        transport.add("HEAD", links[0].url, _ok(405))
        transport.add("GET", links[0].url, ValueError("bad header"))
        transport.add("HEAD", links[1].url, _ok())
        transport.add("HEAD", links[2].url, _ok())
        snapshot = await make_cache(store).load_liveness()

        assert snapshot.source == LivenessSource.LIVE
        assert snapshot.links[0].checked_status is None
        assert [s.checked_status for s in snapshot.links[1:]] == [200, 200]

    @pytest.mark.asyncio
    async def test_unsendable_url_only_affects_its_link(self, store, clock) -> None:
        good = LinkSpec(id="good", title="Good", url="https://ok.example.com/")
        bad = LinkSpec(id="bad", title="Bad", url="https://ok.example.com/" + "a" * 70000)

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200)

        async with HttpxTransport(transport=httpx.MockTransport(handler)) as transport:
            cache = LivenessCache(store, transport, links=[good, bad], clock=clock)
            snapshot = await cache.load_liveness()

        assert snapshot.source == LivenessSource.LIVE
        assert [s.checked_status for s in snapshot.links] == [200, None]


class TestTimeToLive:
    @pytest.mark.asyncio
    async def test_within_ttl_served_from_store(self, store, all_up, clock, make_cache) -> None:
        cache = make_cache(store)
        first = await cache.load_liveness()
        calls = len(all_up.calls)
        clock.advance(hours=23, minutes=59)
        snapshot = await cache.load_liveness()

        assert snapshot.source == LivenessSource.CACHE
        assert snapshot.verified_at == first.verified_at
        assert len(all_up.calls) == calls

    @pytest.mark.asyncio
    async def test_past_ttl_runs_new_pass(self, store, all_up, clock, make_cache) -> None:
        cache = make_cache(store)
        await cache.load_liveness()
        calls = len(all_up.calls)
        clock.advance(hours=24, minutes=1)
        snapshot = await cache.load_liveness()

        assert snapshot.source == LivenessSource.LIVE
        assert snapshot.verified_at == clock.now
        assert len(all_up.calls) == calls * 2

    @pytest.mark.asyncio
    async def test_force_remote_ignores_ttl(self, store, all_up, clock, make_cache) -> None:
        cache = make_cache(store)
        first = await cache.load_liveness()
        clock.advance(minutes=1)
        snapshot = await cache.load_liveness(force_remote=True)

        assert snapshot.source == LivenessSource.LIVE
        assert snapshot.verified_at > first.verified_at
        stored = json.loads(store.data[LIVENESS_KEY])
        assert stored["verifiedAtISO"].startswith("2025-10-03T09:01:00")

    @pytest.mark.asyncio
    async def test_custom_ttl(self, store, all_up, clock, make_cache) -> None:
        cache = make_cache(store, ttl=timedelta(minutes=5))
        await cache.load_liveness()
        clock.advance(minutes=6)
        snapshot = await cache.load_liveness()
        assert snapshot.source == LivenessSource.LIVE
        assert cache.ttl == timedelta(minutes=5)

    def test_default_ttl_is_one_day(self) -> None:
        assert DEFAULT_TTL == timedelta(hours=24)


class TestStoredSnapshots:
    @pytest.mark.asyncio
    async def test_stored_snapshot_conformed_to_configured_links(
        self, store, transport, clock, links, make_cache
    ) -> None:
        store.data[LIVENESS_KEY] = json.dumps(
            {
                "verifiedAtISO": clock.now.isoformat(),
                "links": [
                    {"id": "funds", "title": "Proof of funds", "url": links[1].url, "status": 200},
                    {"id": "retired", "title": "Old page", "url": "https://links.example.com/old", "status": 404},
                ],
            }
        )
        snapshot = await make_cache(store).load_liveness()

        assert snapshot.source == LivenessSource.CACHE
        assert [s.id for s in snapshot.links] == [link.id for link in links]
        assert snapshot.links[1].checked_status == 200
        assert snapshot.links[0].checked_status is None
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_malformed_snapshot_triggers_new_pass(self, store, all_up, make_cache) -> None:
        store.data[LIVENESS_KEY] = json.dumps({"links": "nope"})
        snapshot = await make_cache(store).load_liveness()
        assert snapshot.source == LivenessSource.LIVE

    @pytest.mark.asyncio
    async def test_write_failure_still_returns_live_snapshot(
        self, all_up, make_cache, failing_store_factory
    ) -> None:
        store = failing_store_factory(fail=("set",))
        snapshot = await make_cache(store).load_liveness()
        assert snapshot.source == LivenessSource.LIVE
        assert LIVENESS_KEY not in store.data

    @pytest.mark.asyncio
    async def test_unreadable_store_runs_pass(self, all_up, make_cache, failing_store_factory) -> None:
        store = failing_store_factory(fail=("get",))
        snapshot = await make_cache(store).load_liveness()
        assert snapshot.source == LivenessSource.LIVE
        assert LIVENESS_KEY in store.data

    @pytest.mark.asyncio
    async def test_clear(self, store, all_up, make_cache) -> None:
        cache = make_cache(store)
        await cache.load_liveness()
        await cache.clear()
        assert LIVENESS_KEY not in store.data


class ClockFailingOnce:
    """Clock that raises on its n-th call and delegates otherwise."""

    def __init__(self, clock, fail_on_call: int = 2) -> None:
        self._clock = clock
        self._fail_on_call = fail_on_call
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls == self._fail_on_call:
            raise RuntimeError("clock unavailable")
        return self._clock()


class TestPassFailure:
    """A pass that cannot complete falls back to the previous snapshot."""

    @pytest.mark.asyncio
    async def test_fallback_keeps_previous_timestamp(self, store, all_up, clock, links) -> None:
        first = await LivenessCache(store, all_up, links=links, clock=clock).load_liveness()
        clock.advance(days=2)
        broken = LivenessCache(store, all_up, links=links, clock=ClockFailingOnce(clock))
        snapshot = await broken.load_liveness()

        assert snapshot.source == LivenessSource.CACHE
        assert snapshot.verified_at == first.verified_at
        assert [s.checked_status for s in snapshot.links] == [200, 200, 200]
        stored = json.loads(store.data[LIVENESS_KEY])
        assert stored["verifiedAtISO"].startswith("2025-10-03T09:00:00")

    @pytest.mark.asyncio
    async def test_fallback_restamps_when_configured(self, store, all_up, clock, links) -> None:
        await LivenessCache(store, all_up, links=links, clock=clock).load_liveness()
        clock.advance(days=2)
        broken = LivenessCache(
            store, all_up, links=links, clock=ClockFailingOnce(clock), restamp_on_fallback=True
        )
        snapshot = await broken.load_liveness()

        assert snapshot.source == LivenessSource.CACHE
        assert snapshot.verified_at == clock.now

    @pytest.mark.asyncio
    async def test_fallback_without_snapshot_is_all_unchecked(self, store, all_up, clock, links) -> None:
        broken = LivenessCache(store, all_up, links=links, clock=ClockFailingOnce(clock))
        snapshot = await broken.load_liveness()

        assert snapshot.source == LivenessSource.CACHE
        assert [s.id for s in snapshot.links] == [link.id for link in links]
        assert all(s.checked_status is None for s in snapshot.links)
        assert LIVENESS_KEY not in store.data

    def test_links_property_is_a_tuple(self, store, transport, links) -> None:
        cache = LivenessCache(store, transport, links=links)
        assert cache.links == tuple(links)
        assert isinstance(cache.links[0], LinkSpec)
