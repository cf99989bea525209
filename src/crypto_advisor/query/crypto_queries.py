"""Cached crypto queries and the actions that refresh them."""
import asyncio
import logging
import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from crypto_advisor.api.decoders import (decode_coin_page, decode_history,
                                         series_for)
from crypto_advisor.api.error_mapper import ResultErrorMapper
from crypto_advisor.api.exceptions import ApiError, UnrecognizedResponseShape
from crypto_advisor.query.client import QueryClient, QueryFn, QueryOptions
from crypto_advisor.query.debounce import DEFAULT_DELAY, Debouncer
from crypto_advisor.query.keys import crypto_keys, normalize_symbols
from crypto_advisor.query.observer import QueryObserver, QueryResult
from crypto_advisor.schemas import CoinPage, CoinQuote, HistorySeries
from crypto_advisor.services.crypto import CryptoService

logger = logging.getLogger(__name__)

LIST_OPTIONS = QueryOptions(stale_time=30.0, refetch_interval=60.0, keep_previous_data=True)
HISTORY_OPTIONS = QueryOptions(stale_time=120.0, refetch_interval=300.0)
SYMBOL_HISTORY_OPTIONS = QueryOptions(stale_time=120.0, refetch_interval=300.0, retry=1)
DETAIL_OPTIONS = QueryOptions(stale_time=15.0, refetch_interval=30.0)
SEARCH_OPTIONS = QueryOptions(stale_time=30.0)

_LIST_ERRORS = ResultErrorMapper("Crypto list")
_HISTORY_ERRORS = ResultErrorMapper("Crypto history")
_DETAIL_ERRORS = ResultErrorMapper("Coin")
_SEARCH_ERRORS = ResultErrorMapper("Coin search")

_SEARCH_INPUT = re.compile(r"[^a-zA-Z0-9]")


def total_pages_of(page: CoinPage, page_size: int) -> int | None:
    """Pages available: from `count` when present, else `total_pages`, else unknown."""
    if page.count is not None:
        return max(1, math.ceil(page.count / page_size))
    return page.total_pages


def clean_search_input(value: str) -> str:
    """Keep ASCII letters and digits, uppercased (symbols only)."""
    return _SEARCH_INPUT.sub("", value).upper()


@dataclass
class CryptoPageView:
    """One page of the coins table with a sparkline series per symbol."""

    page: int
    coins: list[CoinQuote] = field(default_factory=list)
    total_pages: int | None = None
    history_map: dict[str, list[float]] = field(default_factory=dict)
    error: str | None = None


class CryptoQueries:
    """Crypto reads through the shared QueryClient, using one session's CryptoService."""

    def __init__(self, client: QueryClient, crypto: CryptoService) -> None:
        self._client = client
        self._crypto = crypto

    # ---- Query functions ----

    def _list_fn(self, page: int) -> QueryFn:
        async def fetch() -> CoinPage:
            result = await self._crypto.get_crypto_list(page)
            _LIST_ERRORS.raise_for_result(result)
            return decode_coin_page(result.data)

        return fetch

    def _history_fn(self, symbols: list[str]) -> QueryFn:
        async def fetch() -> list[HistorySeries]:
            result = await self._crypto.get_crypto_history(symbols)
            _HISTORY_ERRORS.raise_for_result(result)
            return decode_history(result.data)

        return fetch

    def _symbol_history_fn(self, symbol: str) -> QueryFn:
        async def fetch() -> HistorySeries:
            result = await self._crypto.get_crypto_history([symbol])
            if not result.success:
                # one symbol failing must not break the others
                return HistorySeries(symbol=symbol)
            return series_for(decode_history(result.data), symbol)

        return fetch

    def _detail_fn(self, symbol: str) -> QueryFn:
        async def fetch() -> CoinPage:
            result = await self._crypto.get_coin_details(symbol)
            _DETAIL_ERRORS.raise_for_result(result)
            return decode_coin_page(result.data)

        return fetch

    def _coin_history_fn(self, symbol: str, interval: str, limit: int) -> QueryFn:
        async def fetch() -> HistorySeries:
            result = await self._crypto.get_coin_history(symbol, interval, limit)
            _HISTORY_ERRORS.raise_for_result(result)
            return series_for(decode_history(result.data), symbol)

        return fetch

    def _search_fn(self, query: str) -> QueryFn:
        async def fetch() -> list[CoinQuote]:
            result = await self._crypto.search_coins(query)
            _SEARCH_ERRORS.raise_for_result(result)
            return decode_coin_page(result.data).coins

        return fetch

    # ---- Queries ----

    async def crypto_list(self, page: int = 1) -> CoinPage:
        return await self._client.fetch_query(
            crypto_keys.list(page), self._list_fn(page), LIST_OPTIONS
        )

    def watch_crypto_list(
        self,
        page: int = 1,
        on_change: Callable[[QueryResult], None] | None = None,
    ) -> QueryObserver:
        """Observer that refetches the page every 60s and keeps the old page visible."""
        return QueryObserver(
            self._client,
            crypto_keys.list(page),
            self._list_fn(page),
            LIST_OPTIONS,
            on_change=on_change,
        )

    async def show_page(self, observer: QueryObserver, page: int) -> QueryResult:
        """Move a list observer to `page`."""
        return await observer.set_key(crypto_keys.list(page), self._list_fn(page))

    async def crypto_history(self, symbols: list[str]) -> list[HistorySeries]:
        normalized = normalize_symbols(symbols)
        if not normalized:
            return []
        return await self._client.fetch_query(
            crypto_keys.history(normalized), self._history_fn(normalized), HISTORY_OPTIONS
        )

    async def crypto_histories(self, symbols: list[str]) -> dict[str, list[float]]:
        """Sparkline values per symbol, each cached on its own; failures give []."""
        normalized = normalize_symbols(symbols)
        results = await asyncio.gather(
            *(
                self._client.fetch_query(
                    crypto_keys.series(symbol),
                    self._symbol_history_fn(symbol),
                    SYMBOL_HISTORY_OPTIONS,
                )
                for symbol in normalized
            ),
            return_exceptions=True,
        )
        history_map: dict[str, list[float]] = {}
        for symbol, result in zip(normalized, results):
            if isinstance(result, Exception):
                logger.debug("History for %s unavailable: %s", symbol, result)
                history_map[symbol] = []
            else:
                history_map[symbol] = result.values
        return history_map

    async def coin_details(self, symbol: str) -> CoinQuote | None:
        """Latest quote for one coin, or None when the backend does not know it."""
        if not symbol.strip():
            return None
        page = await self._client.fetch_query(
            crypto_keys.detail(symbol), self._detail_fn(symbol.strip().upper()), DETAIL_OPTIONS
        )
        return page.coins[0] if page.coins else None

    async def coin_history(
        self, symbol: str, interval: str = "7d", limit: int = 8
    ) -> HistorySeries:
        if not symbol.strip():
            return HistorySeries()
        return await self._client.fetch_query(
            crypto_keys.coin_history(symbol, interval),
            self._coin_history_fn(symbol.strip().upper(), interval, limit),
            HISTORY_OPTIONS,
        )

    async def coin_search(self, query: str) -> list[CoinQuote]:
        if not query.strip():
            return []
        return await self._client.fetch_query(
            crypto_keys.search_query(query), self._search_fn(query), SEARCH_OPTIONS
        )

    async def crypto_with_history(self, page: int = 1) -> CryptoPageView:
        """List page + per-symbol history; prefetches the next page when there is one."""
        try:
            coin_page = await self.crypto_list(page)
        except (ApiError, UnrecognizedResponseShape) as exc:
            return CryptoPageView(page=page, error=str(exc))

        symbols = [coin.symbol.upper() for coin in coin_page.coins if coin.symbol]
        total_pages = total_pages_of(coin_page, self._crypto.page_size)
        jobs = [self.crypto_histories(symbols)]
        if total_pages is not None and page < total_pages:
            jobs.append(self.prefetch_crypto_list(page + 1))
        history_map, *_ = await asyncio.gather(*jobs)
        return CryptoPageView(
            page=page,
            coins=coin_page.coins,
            total_pages=total_pages,
            history_map=history_map,
        )

    # ---- Actions ----

    async def refresh_crypto_list(self, page: int | None = None) -> None:
        prefix = crypto_keys.list(page) if page else crypto_keys.lists()
        await self._client.invalidate_queries(prefix)

    async def refresh_crypto_history(self, symbols: list[str] | None = None) -> None:
        if not symbols:
            await self._client.invalidate_queries(crypto_keys.histories())
            return
        prefixes = [crypto_keys.history(symbols)]
        prefixes += [crypto_keys.series(symbol) for symbol in normalize_symbols(symbols)]
        await asyncio.gather(*(self._client.invalidate_queries(p) for p in prefixes))

    async def refresh_all_crypto(self) -> None:
        await self._client.invalidate_queries(crypto_keys.all)

    async def prefetch_crypto_list(self, page: int) -> None:
        await self._client.prefetch_query(crypto_keys.list(page), self._list_fn(page), LIST_OPTIONS)


class CoinSearch:
    """Debounced symbol search box.

    Only non-empty input reaches the backend; newer input cancels a pending
    search so its answer is dropped.
    """

    def __init__(
        self,
        queries: CryptoQueries,
        delay: float = DEFAULT_DELAY,
        *,
        debouncer_factory: Callable[..., Debouncer] = Debouncer,
    ) -> None:
        self._queries = queries
        self._debouncer: Debouncer[str] = debouncer_factory(self._search, delay)
        self.query = ""
        self.results: list[CoinQuote] = []
        self.error: str | None = None

    def submit(self, raw: str) -> asyncio.Task:
        self.query = clean_search_input(raw)
        return self._debouncer.submit(self.query)

    def close(self) -> None:
        self._debouncer.cancel()

    async def _search(self, query: str) -> None:
        if not query:
            self.results, self.error = [], None
            return
        try:
            self.results = await self._queries.coin_search(query)
            self.error = None
        except (ApiError, UnrecognizedResponseShape) as exc:
            self.results, self.error = [], str(exc)
