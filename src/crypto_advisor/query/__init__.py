"""Query/cache layer: keyed, de-duplicated and self-refreshing reads."""
from crypto_advisor.query.client import (QueryClient, QueryOptions,
                                         QueryState, default_retry)
from crypto_advisor.query.crypto_queries import (CoinSearch, CryptoPageView,
                                                 CryptoQueries)
from crypto_advisor.query.debounce import Debouncer
from crypto_advisor.query.keys import QueryKey, crypto_keys, normalize_symbols
from crypto_advisor.query.observer import QueryObserver, QueryResult

__all__ = [
    "CoinSearch",
    "CryptoPageView",
    "CryptoQueries",
    "Debouncer",
    "QueryClient",
    "QueryKey",
    "QueryObserver",
    "QueryOptions",
    "QueryResult",
    "QueryState",
    "crypto_keys",
    "default_retry",
    "normalize_symbols",
]
