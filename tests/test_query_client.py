"""QueryClient: shared fetches, staleness, retry policy, invalidation and GC."""
import asyncio

import pytest

from crypto_advisor.api import ApiError, UnrecognizedResponseShape
from crypto_advisor.query import QueryClient, QueryOptions, default_retry
from crypto_advisor.query.client import default_retry_delay

KEY = ("crypto", "list", 1)


class Recorder:
    """Query function that returns queued outcomes and counts calls."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def query_client(clock, sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return QueryClient(clock=clock, sleep=fake_sleep)


class TestRetryPolicy:
    def test_client_errors_are_not_retried(self):
        assert default_retry(0, ApiError("nope", status=404)) is False
        assert default_retry(0, ApiError("bad", status=400)) is False

    def test_unauthorized_and_server_errors_are_retried(self):
        assert default_retry(0, ApiError("expired", status=401)) is True
        assert default_retry(2, ApiError("down", status=503)) is True
        assert default_retry(3, ApiError("down", status=503)) is False

    def test_bad_payloads_are_not_retried(self):
        assert default_retry(0, UnrecognizedResponseShape("coin page", {})) is False

    def test_backoff_is_capped(self):
        assert [default_retry_delay(n) for n in range(6)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0]


class TestFetch:
    @pytest.mark.asyncio
    async def test_concurrent_fetches_share_one_call(self, query_client):
        release = asyncio.Event()
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            await release.wait()
            return ["BTC"]

        first = asyncio.create_task(query_client.fetch_query(KEY, fetch))
        second = asyncio.create_task(query_client.fetch_query(KEY, fetch))
        await asyncio.sleep(0)
        release.set()

        assert await first == ["BTC"]
        assert await second == ["BTC"]
        assert calls == 1

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_shared_fetch(self, query_client):
        release = asyncio.Event()

        async def fetch():
            await release.wait()
            return "done"

        doomed = asyncio.create_task(query_client.fetch_query(KEY, fetch))
        survivor = asyncio.create_task(query_client.fetch_query(KEY, fetch))
        await asyncio.sleep(0)
        doomed.cancel()
        release.set()

        assert await survivor == "done"
        with pytest.raises(asyncio.CancelledError):
            await doomed

    @pytest.mark.asyncio
    async def test_fresh_data_comes_from_cache(self, query_client, clock):
        fn = Recorder("v1")
        options = QueryOptions(stale_time=30.0)
        await query_client.fetch_query(KEY, fn, options)
        clock.advance(30.0)
        await query_client.fetch_query(KEY, fn, options)
        assert fn.calls == 1

        clock.advance(1.0)
        await query_client.fetch_query(KEY, fn, options)
        assert fn.calls == 2

    @pytest.mark.asyncio
    async def test_refetch_ignores_staleness(self, query_client):
        fn = Recorder("v1")
        await query_client.fetch_query(KEY, fn)
        await query_client.refetch_query(KEY, fn)
        assert fn.calls == 2

    @pytest.mark.asyncio
    async def test_retries_with_backoff_then_succeeds(self, query_client, sleeps):
        fn = Recorder(ApiError("down", status=503), ApiError("down", status=None), "ok")
        assert await query_client.fetch_query(KEY, fn) == "ok"
        assert fn.calls == 3
        assert sleeps == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_three_retries(self, query_client, sleeps):
        fn = Recorder(ApiError("down", status=500))
        with pytest.raises(ApiError):
            await query_client.fetch_query(KEY, fn)
        assert fn.calls == 4
        assert sleeps == [1.0, 2.0, 4.0]
        state = query_client.get_query_state(KEY)
        assert state.failure_count == 4
        assert isinstance(state.error, ApiError)

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self, query_client, sleeps):
        fn = Recorder(ApiError("missing", status=404))
        with pytest.raises(ApiError):
            await query_client.fetch_query(KEY, fn)
        assert fn.calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_integer_retry_option(self, query_client):
        fn = Recorder(ApiError("down", status=500))
        with pytest.raises(ApiError):
            await query_client.fetch_query(KEY, fn, QueryOptions(retry=1))
        assert fn.calls == 2

    @pytest.mark.asyncio
    async def test_prefetch_never_raises(self, query_client):
        fn = Recorder(ApiError("missing", status=404))
        await query_client.prefetch_query(KEY, fn)
        assert query_client.get_query_data(KEY) is None


class TestCacheMaintenance:
    @pytest.mark.asyncio
    async def test_invalidate_marks_prefix_stale(self, query_client):
        page1, page2, other = Recorder("p1"), Recorder("p2"), Recorder("h")
        await query_client.fetch_query(("crypto", "list", 1), page1)
        await query_client.fetch_query(("crypto", "list", 2), page2)
        await query_client.fetch_query(("crypto", "history", "BTC"), other)

        await query_client.invalidate_queries(("crypto", "list"))

        assert query_client.get_query_state(("crypto", "list", 1)).is_invalidated
        assert not query_client.get_query_state(("crypto", "history", "BTC")).is_invalidated
        # unobserved entries are refetched lazily
        assert page1.calls == 1
        await query_client.fetch_query(("crypto", "list", 1), page1)
        assert page1.calls == 2

    @pytest.mark.asyncio
    async def test_invalidate_refetches_observed_entries(self, query_client):
        fn = Recorder("v")
        query_client.subscribe(KEY)
        await query_client.fetch_query(KEY, fn)
        await query_client.invalidate_queries(("crypto",))
        assert fn.calls == 2
        assert not query_client.get_query_state(KEY).is_invalidated

    @pytest.mark.asyncio
    async def test_garbage_collection_spares_observed_entries(self, query_client, clock):
        options = QueryOptions(gc_time=60.0)
        await query_client.fetch_query(("a",), Recorder(1), options)
        query_client.subscribe(("b",), options)
        await query_client.fetch_query(("b",), Recorder(2), options)

        clock.advance(61.0)
        query_client.collect_garbage()

        assert query_client.get_query_state(("a",)) is None
        assert query_client.get_query_data(("b",)) == 2

    @pytest.mark.asyncio
    async def test_set_data_and_remove(self, query_client):
        query_client.set_query_data(("crypto", "details", "BTC"), {"symbol": "BTC"})
        assert query_client.get_query_data(("crypto", "details", "BTC")) == {"symbol": "BTC"}
        query_client.remove_queries(("crypto",))
        assert query_client.get_query_state(("crypto", "details", "BTC")) is None
