"""
NeoWs client tests.

The upstream is replaced by httpx.MockTransport; the write queue is either a
recording fake or a real CacheWriteQueue over the test database.
"""
from datetime import date, timedelta

import httpx
import pytest

from conftest import FIXED_DAY, FakeClock, make_approach, make_feed, make_raw_neo
from neowatch.core.errors import NeoNotFound, UpstreamUnavailable
from neowatch.services.neo_cache import MISS
from neowatch.services.neows import NeoWsClient, merge_feed_records


class RecordingQueue:
    """Stands in for CacheWriteQueue; keeps submitted jobs without running them."""

    def __init__(self):
        self.jobs = []

    def submit(self, job, description="cache write"):
        self.jobs.append((job, description))


def json_transport(payload, status_code=200, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(status_code, json=payload)
    return httpx.MockTransport(handler)


def make_client(transport, cache=None, write_queue=None, clock=None):
    return NeoWsClient(
        cache=cache,
        write_queue=write_queue,
        base_url="https://neows.test/neo/rest/v1",
        api_key="TEST_KEY",
        timeout=1.0,
        max_days=7,
        clock=clock or FakeClock(),
        transport=transport,
    )


class TestFetchFeed:
    """Test the date-window feed."""

    @pytest.mark.asyncio
    async def test_parses_feed_and_sends_query(self):
        calls = []
        feed = make_feed({"2024-01-15": [make_raw_neo(neo_id="1"), make_raw_neo(neo_id="2")]})
        client = make_client(json_transport(feed, calls=calls))

        objects = await client.fetch_feed(FIXED_DAY)

        assert [o.id for o in objects] == ["1", "2"]
        params = calls[0].url.params
        assert calls[0].url.path == "/neo/rest/v1/feed"
        assert params["start_date"] == "2024-01-15"
        assert params["end_date"] == "2024-01-15"
        assert params["api_key"] == "TEST_KEY"

    @pytest.mark.asyncio
    async def test_rate_limit_returns_empty(self):
        client = make_client(json_transport({"error": "slow down"}, status_code=429))
        assert await client.fetch_feed(FIXED_DAY) == []

    @pytest.mark.asyncio
    async def test_quota_403_returns_empty(self):
        payload = {"error": {"code": "OVER_RATE_LIMIT", "message": "You have exceeded your rate limit."}}
        client = make_client(json_transport(payload, status_code=403))
        assert await client.fetch_feed(FIXED_DAY) == []

    @pytest.mark.asyncio
    async def test_server_error_raises(self):
        client = make_client(json_transport({}, status_code=500))
        with pytest.raises(UpstreamUnavailable):
            await client.fetch_feed(FIXED_DAY)

    @pytest.mark.asyncio
    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(httpx.MockTransport(handler))
        with pytest.raises(UpstreamUnavailable):
            await client.fetch_feed(FIXED_DAY)

    @pytest.mark.asyncio
    async def test_window_limits(self):
        calls = []
        client = make_client(json_transport(make_feed({}), calls=calls))

        with pytest.raises(ValueError):
            await client.fetch_feed(FIXED_DAY, FIXED_DAY + timedelta(days=8))
        with pytest.raises(ValueError):
            await client.fetch_feed(FIXED_DAY, FIXED_DAY - timedelta(days=1))
        assert calls == []

        assert await client.fetch_feed(FIXED_DAY, FIXED_DAY + timedelta(days=7)) == []

    @pytest.mark.asyncio
    async def test_malformed_records_are_skipped(self):
        feed = make_feed({"2024-01-15": [make_raw_neo(neo_id="ok"), {"name": "no id"}, "junk"]})
        client = make_client(json_transport(feed))

        objects = await client.fetch_feed(FIXED_DAY)
        assert [o.id for o in objects] == ["ok"]

    @pytest.mark.asyncio
    async def test_objects_listed_on_two_days_are_merged(self):
        feed = make_feed({
            "2024-01-15": [make_raw_neo(neo_id="1", approaches=[make_approach(day="2024-01-15", epoch_ms=1)])],
            "2024-01-16": [make_raw_neo(neo_id="1", approaches=[make_approach(day="2024-01-16", epoch_ms=2)])],
        })
        client = make_client(json_transport(feed))

        objects = await client.fetch_feed(FIXED_DAY, FIXED_DAY + timedelta(days=1))
        assert len(objects) == 1
        assert [a.epoch_ms for a in objects[0].close_approaches] == [1, 2]

    def test_merge_feed_records_keeps_order_by_date(self):
        merged = merge_feed_records({
            "2024-01-16": [make_raw_neo(neo_id="b")],
            "2024-01-15": [make_raw_neo(neo_id="a")],
        })
        assert [r["id"] for r in merged] == ["a", "b"]


class TestCacheWrites:
    """Test that fetched objects are handed off to the write queue."""

    @pytest.mark.asyncio
    async def test_single_day_fetch_queues_one_write(self):
        queue = RecordingQueue()
        feed = make_feed({"2024-01-15": [make_raw_neo()]})
        client = make_client(json_transport(feed), cache=object(), write_queue=queue)

        await client.fetch_feed(FIXED_DAY)
        assert len(queue.jobs) == 1

    @pytest.mark.asyncio
    async def test_no_write_when_rate_limited(self):
        queue = RecordingQueue()
        client = make_client(json_transport({}, status_code=429), cache=object(), write_queue=queue)

        await client.fetch_feed(FIXED_DAY)
        assert queue.jobs == []

    @pytest.mark.asyncio
    async def test_write_behind_fills_cache(self, cache, write_queue, clock):
        feed = make_feed({"2024-01-15": [make_raw_neo(neo_id="1")]})
        client = make_client(json_transport(feed), cache=cache, write_queue=write_queue, clock=clock)

        await client.fetch_feed(FIXED_DAY)
        await write_queue.drain()

        daily = await cache.get_daily_entry(FIXED_DAY)
        assert daily is not MISS
        assert [o.id for o in daily] == ["1"]
        assert await cache.get_by_object_id("1") is not MISS

    @pytest.mark.asyncio
    async def test_multi_day_fetch_skips_daily_entry(self, cache, write_queue, clock):
        feed = make_feed({"2024-01-15": [make_raw_neo(neo_id="1")]})
        client = make_client(json_transport(feed), cache=cache, write_queue=write_queue, clock=clock)

        await client.fetch_feed(FIXED_DAY, FIXED_DAY + timedelta(days=2))
        await write_queue.drain()

        assert await cache.get_daily_entry(FIXED_DAY) is MISS
        assert await cache.get_by_object_id("1") is not MISS

    @pytest.mark.asyncio
    async def test_failed_write_never_reaches_caller(self, write_queue):
        class BrokenCache:
            async def persist_fetch(self, objects, day=None):
                raise RuntimeError("disk full")

        feed = make_feed({"2024-01-15": [make_raw_neo()]})
        client = make_client(json_transport(feed), cache=BrokenCache(), write_queue=write_queue)

        objects = await client.fetch_feed(FIXED_DAY)
        await write_queue.drain()

        assert len(objects) == 1
        assert write_queue.failed == 1


class TestLookupAndBrowse:
    @pytest.mark.asyncio
    async def test_lookup(self):
        calls = []
        client = make_client(json_transport(make_raw_neo(neo_id="2000433", name="433 Eros"), calls=calls))

        obj = await client.fetch_lookup("2000433")
        assert obj.name == "433 Eros"
        assert calls[0].url.path == "/neo/rest/v1/neo/2000433"

    @pytest.mark.asyncio
    async def test_lookup_not_found(self):
        client = make_client(json_transport({"error": "not found"}, status_code=404))
        with pytest.raises(NeoNotFound):
            await client.fetch_lookup("0")

    @pytest.mark.asyncio
    async def test_lookup_rate_limited_returns_none(self):
        client = make_client(json_transport({}, status_code=429))
        assert await client.fetch_lookup("2000433") is None

    @pytest.mark.asyncio
    async def test_browse(self):
        payload = {
            "page": {"size": 2, "total_elements": 40000, "total_pages": 20000, "number": 3},
            "near_earth_objects": [make_raw_neo(neo_id="1"), make_raw_neo(neo_id="2")],
        }
        client = make_client(json_transport(payload))

        page = await client.fetch_browse(page=3, size=2)
        assert [o.id for o in page.objects] == ["1", "2"]
        assert page.pagination.total == 40000
        assert page.pagination.current_page == 3

    @pytest.mark.asyncio
    async def test_browse_rate_limited(self):
        client = make_client(json_transport({}, status_code=429))

        page = await client.fetch_browse(page=5, size=10)
        assert page.objects == []
        assert page.pagination.current_page == 5
