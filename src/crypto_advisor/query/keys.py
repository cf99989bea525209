"""Structured cache keys for crypto queries.

Keys are tuples so that a shorter key is a prefix of every key below it:
invalidating `crypto_keys.lists()` hits every page, `crypto_keys.all` hits
everything. Symbol sets are uppercased and sorted before the key is built
so equivalent requests share one entry.
"""
from collections.abc import Iterable

QueryKey = tuple[str | int, ...]


def normalize_symbols(symbols: Iterable[str]) -> list[str]:
    """Uppercase, strip, de-duplicate and sort."""
    return sorted({s.strip().upper() for s in symbols if s and s.strip()})


def matches(key: QueryKey, prefix: QueryKey) -> bool:
    return key[: len(prefix)] == prefix


class CryptoKeys:
    all: QueryKey = ("crypto",)

    def lists(self) -> QueryKey:
        return (*self.all, "list")

    def list(self, page: int) -> QueryKey:
        return (*self.lists(), page)

    def histories(self) -> QueryKey:
        return (*self.all, "history")

    def history(self, symbols: Iterable[str]) -> QueryKey:
        return (*self.histories(), ",".join(normalize_symbols(symbols)))

    def series(self, symbol: str) -> QueryKey:
        """One symbol's sparkline; a different value type from `history`."""
        return (*self.histories(), "series", symbol.strip().upper())

    def details(self) -> QueryKey:
        return (*self.all, "details")

    def detail(self, symbol: str) -> QueryKey:
        return (*self.details(), symbol.strip().upper())

    def coin_history(self, symbol: str, interval: str) -> QueryKey:
        return (*self.histories(), symbol.strip().upper(), interval)

    def search(self) -> QueryKey:
        return (*self.all, "search")

    def search_query(self, query: str) -> QueryKey:
        return (*self.search(), query.lower().strip())


crypto_keys = CryptoKeys()
