"""Shared fixtures: a fake monotonic clock and a fake backend behind httpx.MockTransport."""
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from crypto_advisor.api import CircuitBreaker
from crypto_advisor.session import ApiSession

API_URL = "http://api.test"


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def no_sleep(_seconds: float) -> None:
    return None


def cookie_values(request: httpx.Request, name: str) -> list[str]:
    """Every value sent for `name` (a jar may hold the same name for several domains)."""
    values = []
    for part in request.headers.get("cookie", "").split(";"):
        key, sep, value = part.strip().partition("=")
        if sep and key == name:
            values.append(value)
    return values


def last_cookie(request: httpx.Request, name: str) -> str | None:
    """The value a Django backend reads when a name is sent more than once."""
    values = cookie_values(request, name)
    return values[-1] if values else None


def profile_payload(**overrides) -> dict:
    payload = {
        "id": 7,
        "username": "sara",
        "email": "sara@example.com",
        "is_premium": False,
        "premium_expires_at": None,
        "is_staff": False,
    }
    payload.update(overrides)
    return payload


def coin(symbol: str, price: float = 1.0) -> dict:
    return {"symbol": symbol, "name": symbol.title(), "price_usd": price}


def series(symbol: str, *prices: float) -> dict:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    return {
        "symbol": symbol,
        "points": [
            [(start + timedelta(days=i)).isoformat(), price] for i, price in enumerate(prices)
        ],
    }


class FakeBackend:
    """In-memory stand-in for the users and crypto API.

    Session state lives in cookies: the last `access` sent must be one of `valid_access`,
    `refresh` must equal `refresh_token`. Every request is recorded in
    `calls` as (METHOD, path).
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.requests: list[httpx.Request] = []
        self.profile = profile_payload()
        self.valid_access: set[str] = {"good"}
        self.refresh_token: str | None = "r1"
        self.coins = [coin(s, float(i + 1)) for i, s in enumerate(["BTC", "ETH", "SOL"])]
        self.count: int | None = None
        self.histories = {
            "BTC": series("BTC", 3.0, 2.0, 4.0),
            "ETH": series("ETH", 1.0, 1.5),
            "SOL": series("SOL", 5.0, 4.0),
        }
        self.failing_history: set[str] = set()
        self.answer = "  hold  "
        self.upgrade_status = 200
        self.login_error_body = True
        self.latest_status = 200

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def count_calls(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call == (method, path))

    def _authenticated(self, request: httpx.Request) -> bool:
        return last_cookie(request, "access") in self.valid_access

    def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append((request.method, path))
        self.requests.append(request)

        if path == "/api/users/csrf/":
            return httpx.Response(
                200, json={"csrfToken": "tok"}, headers={"Set-Cookie": "csrftoken=tok; Path=/"}
            )
        if path == "/api/users/login/":
            body = json.loads(request.content or b"{}")
            if body.get("password") != "secret":
                if self.login_error_body:
                    return httpx.Response(400, json={"detail": "invalid"})
                return httpx.Response(400)
            return httpx.Response(
                200,
                json={"message": "ok"},
                headers=[
                    ("Set-Cookie", "access=good; Path=/; HttpOnly"),
                    ("Set-Cookie", "refresh=r1; Path=/; HttpOnly"),
                ],
            )
        if path == "/api/users/token/refresh/":
            if self.refresh_token and last_cookie(request, "refresh") == self.refresh_token:
                self.valid_access.add("rotated")
                return httpx.Response(
                    200, json={}, headers={"Set-Cookie": "access=rotated; Path=/; HttpOnly"}
                )
            return httpx.Response(401, json={"detail": "Token is invalid or expired"})
        if path == "/api/users/auth/verify-email/":
            if json.loads(request.content or b"{}").get("code") == "123456":
                return httpx.Response(200, json={"message": "verified"})
            return httpx.Response(400, json={"detail": "bad code"})
        if path == "/api/users/register/":
            return httpx.Response(201, json={"message": "registered"})
        if path == "/api/users/logout/":
            return httpx.Response(200, json={"message": "bye"})

        if not self._authenticated(request):
            return httpx.Response(401, json={"detail": "Authentication credentials were not provided."})

        if path == "/api/users/profile/":
            return httpx.Response(200, json=self.profile)
        if path == "/api/users/premium/upgrade/":
            return httpx.Response(self.upgrade_status, json={"message": "upgraded"})
        if path == "/api/crypto/prices/latest/":
            return self._latest(request)
        if path == "/api/crypto/prices/history/":
            symbols = request.url.params.get("symbols", "").split(",")
            if any(s in self.failing_history for s in symbols):
                return httpx.Response(500, json={"detail": "history down"})
            return httpx.Response(
                200, json={"results": [self.histories[s] for s in symbols if s in self.histories]}
            )
        if path == "/api/crypto/ai/ask/":
            return httpx.Response(200, json={"answer": self.answer})
        return httpx.Response(404, json={"detail": "Not found."})

    def _latest(self, request: httpx.Request) -> httpx.Response:
        if self.latest_status != 200:
            return httpx.Response(self.latest_status, json={"detail": "Not found."})
        symbols = request.url.params.get("symbols")
        if symbols:
            wanted = set(symbols.split(","))
            return httpx.Response(
                200, json={"results": [c for c in self.coins if c["symbol"] in wanted]}
            )
        payload: dict = {"results": self.coins}
        if self.count is not None:
            payload["count"] = self.count
        return httpx.Response(200, json=payload)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_session(backend, clock):
    """Build an ApiSession talking to the fake backend."""

    def factory(cookies: dict[str, str] | None = None, breaker: CircuitBreaker | None = None):
        return ApiSession(
            base_url=API_URL,
            breaker=breaker or CircuitBreaker(clock=clock),
            cookies=cookies,
            transport=backend.transport,
        )

    return factory
