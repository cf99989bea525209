"""Observers keep one query key fresh for as long as something is looking at it."""
import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from crypto_advisor.query.client import QueryClient, QueryFn, QueryOptions
from crypto_advisor.query.keys import QueryKey

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryResult:
    """Snapshot of what an observer currently shows."""

    data: Any = None
    error: Exception | None = None
    is_loading: bool = False
    is_fetching: bool = False
    is_placeholder_data: bool = False
    updated_at: float | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None and self.data is None


class QueryObserver:
    """Subscribes to a key, fetches it, and refetches it on an interval.

    With `keep_previous_data`, switching keys (pagination) keeps the old
    key's data visible, flagged as placeholder, until the new key has data.
    After `stop()` the interval task is cancelled and late results are no
    longer reported to `on_change`.
    """

    def __init__(
        self,
        client: QueryClient,
        key: QueryKey,
        fn: QueryFn,
        options: QueryOptions | None = None,
        *,
        on_change: Callable[[QueryResult], None] | None = None,
    ) -> None:
        self._client = client
        self._key = key
        self._fn = fn
        self._options = options or client.default_options
        self._on_change = on_change
        self._previous_data: Any = None
        self._interval_task: asyncio.Task | None = None
        self._active = False

    @property
    def key(self) -> QueryKey:
        return self._key

    @property
    def active(self) -> bool:
        return self._active

    @property
    def result(self) -> QueryResult:
        state = self._client.get_query_state(self._key)
        if state is not None and state.has_data:
            return QueryResult(
                data=state.data,
                error=state.error,
                is_fetching=state.is_fetching,
                updated_at=state.updated_at,
            )
        fetching = state.is_fetching if state is not None else False
        error = state.error if state is not None else None
        if self._options.keep_previous_data and self._previous_data is not None:
            return QueryResult(
                data=self._previous_data,
                error=error,
                is_fetching=fetching,
                is_placeholder_data=True,
            )
        return QueryResult(error=error, is_loading=fetching, is_fetching=fetching)

    async def start(self) -> QueryResult:
        """Subscribe, fetch if stale, and start the refetch interval."""
        if self._active:
            return self.result
        self._active = True
        self._client.subscribe(self._key, self._options)
        if self._options.enabled:
            await self._fetch(self._client.fetch_query)
        interval = self._options.refetch_interval
        if interval and self._options.enabled and self._active:
            self._interval_task = asyncio.create_task(self._poll(interval))
        return self.result

    def stop(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._interval_task is not None:
            self._interval_task.cancel()
            self._interval_task = None
        self._client.unsubscribe(self._key)

    async def set_key(self, key: QueryKey, fn: QueryFn) -> QueryResult:
        """Point the observer at another key, e.g. the next page."""
        if key == self._key:
            return self.result
        if self._options.keep_previous_data:
            current = self._client.get_query_state(self._key)
            if current is not None and current.has_data:
                self._previous_data = current.data
        if self._active:
            self._client.unsubscribe(self._key)
            self._client.subscribe(key, self._options)
        self._key = key
        self._fn = fn
        if self._active and self._options.enabled:
            await self._fetch(self._client.fetch_query)
        return self.result

    async def refetch(self) -> QueryResult:
        await self._fetch(self._client.refetch_query)
        return self.result

    async def _poll(self, interval: float) -> None:
        while self._active:
            await self._client.sleep(interval)
            if not self._active:
                break
            await self._fetch(self._client.refetch_query)

    async def _fetch(self, fetch: Callable[..., Any]) -> None:
        key = self._key
        try:
            await fetch(key, self._fn, self._options)
        except Exception as exc:  # pylint: disable=broad-except
            # the error stays on the query state and shows up in `result`
            logger.debug("Query %s failed: %s", key, exc)
        if self._active and key == self._key and self._on_change is not None:
            self._on_change(self.result)
