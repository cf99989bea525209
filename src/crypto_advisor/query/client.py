"""Async query cache: shared in-flight fetches, staleness, retries, invalidation.

Every entry is addressed by a tuple key (see query.keys). Concurrent
`fetch_query` calls for the same key share one asyncio.Task; callers await
it through asyncio.shield so a cancelled caller never cancels the fetch the
others are waiting on.
"""
import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from typing import Any

from crypto_advisor.api.exceptions import ApiError, UnrecognizedResponseShape
from crypto_advisor.query.keys import QueryKey, matches

logger = logging.getLogger(__name__)

QueryFn = Callable[[], Awaitable[Any]]
RetryPolicy = Callable[[int, Exception], bool]

DEFAULT_STALE_TIME = 30.0
DEFAULT_GC_TIME = 60.0
MAX_RETRIES = 3
MAX_RETRY_DELAY = 30.0


def default_retry(failure_count: int, error: Exception) -> bool:
    """Retry up to 3 times; never retry client errors (4xx except 401) or bad payloads.

    Args:
        failure_count: Failures before this one (0 on the first failure).
        error: The exception the query function raised.
    """
    if isinstance(error, ApiError) and error.is_client_error:
        return False
    if isinstance(error, UnrecognizedResponseShape):
        return False
    return failure_count < MAX_RETRIES


def default_retry_delay(failure_count: int) -> float:
    """Exponential backoff: 1s, 2s, 4s... capped at 30s."""
    return min(2.0**failure_count, MAX_RETRY_DELAY)


@dataclass(frozen=True)
class QueryOptions:
    """Per-query behavior.

    `retry` is None for default_retry, an int for a plain attempt cap, or a
    `(failure_count, error) -> bool` policy.
    """

    stale_time: float = DEFAULT_STALE_TIME
    gc_time: float = DEFAULT_GC_TIME
    refetch_interval: float | None = None
    retry: int | RetryPolicy | None = None
    enabled: bool = True
    keep_previous_data: bool = False


@dataclass
class QueryState:
    """One cache entry."""

    key: QueryKey
    data: Any = None
    error: Exception | None = None
    updated_at: float | None = None
    error_updated_at: float | None = None
    failure_count: int = 0
    is_fetching: bool = False
    is_invalidated: bool = False
    stale_time: float = DEFAULT_STALE_TIME
    gc_time: float = DEFAULT_GC_TIME
    observers: int = 0
    released_at: float | None = None

    @property
    def has_data(self) -> bool:
        return self.updated_at is not None

    def is_stale(self, now: float) -> bool:
        if self.updated_at is None or self.is_invalidated:
            return True
        return now - self.updated_at > self.stale_time


def _resolve_retry(retry: int | RetryPolicy | None) -> RetryPolicy:
    if retry is None:
        return default_retry
    if isinstance(retry, int):
        return lambda failure_count, _error: failure_count < retry
    return retry


class QueryClient:
    """Process-wide query cache.

    Args:
        default_options: Options used when a call passes none.
        clock: Monotonic clock (seconds); tests inject a fake one.
        sleep: Coroutine used for retry backoff and observer intervals.
        retry_delay: Seconds to wait before retry number `failure_count + 1`.
    """

    def __init__(
        self,
        default_options: QueryOptions | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        retry_delay: Callable[[int], float] = default_retry_delay,
    ) -> None:
        self._defaults = default_options or QueryOptions()
        self._clock = clock
        self.sleep = sleep
        self._retry_delay = retry_delay
        self._queries: dict[QueryKey, QueryState] = {}
        self._inflight: dict[QueryKey, asyncio.Task] = {}
        self._fetchers: dict[QueryKey, tuple[QueryFn, QueryOptions]] = {}

    @property
    def default_options(self) -> QueryOptions:
        return self._defaults

    def _state(self, key: QueryKey, options: QueryOptions) -> QueryState:
        state = self._queries.get(key)
        if state is None:
            state = QueryState(key=key, released_at=self._clock())
            self._queries[key] = state
        state.stale_time = options.stale_time
        state.gc_time = options.gc_time
        return state

    async def fetch_query(
        self, key: QueryKey, fn: QueryFn, options: QueryOptions | None = None
    ) -> Any:
        """Return cached data while fresh; otherwise fetch (or join the fetch in flight).

        Raises:
            Whatever `fn` raised on its last attempt once retries are exhausted.
        """
        opts = options or self._defaults
        self.collect_garbage()
        state = self._state(key, opts)
        if not state.is_stale(self._clock()):
            return state.data
        return await self._fetch(state, fn, opts)

    async def refetch_query(
        self, key: QueryKey, fn: QueryFn, options: QueryOptions | None = None
    ) -> Any:
        """Fetch regardless of staleness (still joins a fetch already in flight)."""
        opts = options or self._defaults
        return await self._fetch(self._state(key, opts), fn, opts)

    async def prefetch_query(
        self, key: QueryKey, fn: QueryFn, options: QueryOptions | None = None
    ) -> None:
        """Warm the cache for `key`. Never raises."""
        try:
            await self.fetch_query(key, fn, options)
        except Exception as exc:  # pylint: disable=broad-except
            logger.debug("Prefetch of %s failed: %s", key, exc)

    def get_query_data(self, key: QueryKey) -> Any:
        state = self._queries.get(key)
        return state.data if state is not None else None

    def get_query_state(self, key: QueryKey) -> QueryState | None:
        return self._queries.get(key)

    def set_query_data(self, key: QueryKey, data: Any) -> None:
        state = self._state(key, self._defaults)
        state.data = data
        state.error = None
        state.updated_at = self._clock()
        state.is_invalidated = False

    async def invalidate_queries(self, prefix: QueryKey = ()) -> None:
        """Mark every entry under `prefix` stale and refetch the observed ones."""
        targets = [s for k, s in self._queries.items() if matches(k, prefix)]
        refetches = []
        for state in targets:
            state.is_invalidated = True
            if state.observers > 0 and state.key in self._fetchers:
                fn, opts = self._fetchers[state.key]
                refetches.append(self._fetch(state, fn, opts))
        results = await asyncio.gather(*refetches, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.debug("Refetch after invalidation failed: %s", result)

    def remove_queries(self, prefix: QueryKey = ()) -> None:
        for key in [k for k in self._queries if matches(k, prefix)]:
            del self._queries[key]
            self._fetchers.pop(key, None)

    def collect_garbage(self) -> None:
        """Drop unobserved, idle entries released more than `gc_time` ago."""
        now = self._clock()
        for key, state in list(self._queries.items()):
            if state.observers or state.is_fetching or state.released_at is None:
                continue
            if now - state.released_at >= state.gc_time:
                del self._queries[key]
                self._fetchers.pop(key, None)

    def watch(self, key: QueryKey, fn: QueryFn, options: QueryOptions | None = None):
        """Create a QueryObserver for `key`; call `start()` on it to begin."""
        from crypto_advisor.query.observer import QueryObserver  # observer imports this module

        return QueryObserver(self, key, fn, options)

    def subscribe(self, key: QueryKey, options: QueryOptions | None = None) -> None:
        state = self._state(key, options or self._defaults)
        state.observers += 1
        state.released_at = None

    def unsubscribe(self, key: QueryKey) -> None:
        state = self._queries.get(key)
        if state is None or state.observers == 0:
            return
        state.observers -= 1
        if state.observers == 0:
            state.released_at = self._clock()

    async def _fetch(self, state: QueryState, fn: QueryFn, opts: QueryOptions) -> Any:
        self._fetchers[state.key] = (fn, opts)
        task = self._inflight.get(state.key)
        if task is None:
            task = asyncio.create_task(self._run(state, fn, opts))
            self._inflight[state.key] = task
            task.add_done_callback(partial(self._finished, state.key))
        return await asyncio.shield(task)

    def _finished(self, key: QueryKey, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # retrieve so an error with no remaining waiters is not reported as unhandled
            task.exception()

    async def _run(self, state: QueryState, fn: QueryFn, opts: QueryOptions) -> Any:
        should_retry = _resolve_retry(opts.retry)
        failures = 0
        state.is_fetching = True
        try:
            while True:
                try:
                    data = await fn()
                except Exception as exc:  # pylint: disable=broad-except
                    if not should_retry(failures, exc):
                        state.error = exc
                        state.error_updated_at = self._clock()
                        state.failure_count = failures + 1
                        raise
                    delay = self._retry_delay(failures)
                    failures += 1
                    logger.debug(
                        "Query %s failed (%s), retry %d in %.1fs", state.key, exc, failures, delay
                    )
                    await self.sleep(delay)
                    continue
                state.data = data
                state.error = None
                state.failure_count = 0
                state.updated_at = self._clock()
                state.is_invalidated = False
                if state.observers == 0:
                    state.released_at = state.updated_at
                return data
        finally:
            state.is_fetching = False
