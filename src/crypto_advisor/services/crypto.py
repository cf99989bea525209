"""Crypto price, history and advisor endpoints."""
from urllib.parse import urlencode

from crypto_advisor.api.gateway import HttpGateway
from crypto_advisor.config import CRYPTO_PAGE_SIZE
from crypto_advisor.schemas import HttpResponse

LATEST_PATH = "/api/crypto/prices/latest/"
HISTORY_PATH = "/api/crypto/prices/history/"
ASK_PATH = "/api/crypto/ai/ask/"

SEARCH_PAGE_SIZE = 10


def _url(path: str, params: dict[str, object]) -> str:
    query = urlencode({k: v for k, v in params.items() if v is not None})
    return f"{path}?{query}" if query else path


class CryptoService:
    """Thin wrappers over the crypto endpoints; every call returns an HttpResponse."""

    def __init__(self, gateway: HttpGateway, page_size: int = CRYPTO_PAGE_SIZE) -> None:
        self._gateway = gateway
        self._page_size = page_size

    @property
    def page_size(self) -> int:
        return self._page_size

    async def get_crypto_list(self, page: int = 1) -> HttpResponse:
        return await self._gateway.request(
            _url(LATEST_PATH, {"page": page, "page_size": self._page_size}), "GET"
        )

    async def get_crypto_history(
        self,
        symbols: list[str],
        limit: int = 8,
        interval: str | None = None,
    ) -> HttpResponse:
        """History for several symbols in one call (the 7-day sparkline default)."""
        params = {"interval": interval, "limit": limit, "symbols": ",".join(symbols)}
        return await self._gateway.request(_url(HISTORY_PATH, params), "GET")

    async def get_coin_details(self, symbol: str) -> HttpResponse:
        return await self._gateway.request(
            _url(LATEST_PATH, {"symbols": symbol.upper()}), "GET"
        )

    async def get_coin_history(
        self, symbol: str, interval: str = "7d", limit: int = 8
    ) -> HttpResponse:
        params = {"interval": interval, "limit": limit, "symbols": symbol.upper()}
        return await self._gateway.request(_url(HISTORY_PATH, params), "GET")

    async def search_coins(self, query: str) -> HttpResponse:
        """Symbol search; the backend filters latest prices by symbol."""
        params = {"symbols": query.strip().upper(), "page_size": SEARCH_PAGE_SIZE}
        return await self._gateway.request(_url(LATEST_PATH, params), "GET")

    async def ask_advisor(self, question: str, prompt_prefix: str = "") -> HttpResponse:
        composed = f"{prompt_prefix}\n\n{question}" if prompt_prefix else question
        return await self._gateway.request(ASK_PATH, "POST", {"question": composed})
