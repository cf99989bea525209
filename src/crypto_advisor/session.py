"""ApiSession: one cookie jar and everything bound to it."""
import httpx

from crypto_advisor.api import CircuitBreaker, CsrfManager, HttpGateway
from crypto_advisor.config import REQUEST_TIMEOUT_SECONDS, get_api_base_url
from crypto_advisor.services import (AccessControl, AdminService, AuthService,
                                     CryptoService)


class ApiSession:
    """The client-side view of one browser session.

    Holds an httpx client whose cookie jar carries the access/refresh/CSRF
    cookies, and the gateway and services that share it. The circuit breaker
    is injected so every session of a process can share one.

    Example:
        async with ApiSession(breaker=CircuitBreaker()) as session:
            await session.auth.login("alice", "secret")
            result = await session.access.require_premium_access()
    """

    def __init__(
        self,
        base_url: str | None = None,
        breaker: CircuitBreaker | None = None,
        cookies: dict[str, str] | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the session.

        Args:
            base_url: Backend origin. Defaults to NEXT_PUBLIC_API_BASE_URL.
            breaker: Shared circuit breaker; a private one is created if omitted.
            cookies: Initial cookies, e.g. forwarded from an incoming request.
            transport: Optional httpx transport (tests use httpx.MockTransport).
            timeout: Per-request timeout in seconds.
        """
        self._client = httpx.AsyncClient(
            base_url=base_url or get_api_base_url(),
            cookies=cookies,
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
            event_hooks={"response": [self._drop_shadowed_cookies]},
        )
        self.breaker = breaker if breaker is not None else CircuitBreaker()
        self.csrf = CsrfManager(self._client)
        self.gateway = HttpGateway(self._client, self.breaker, self.csrf)
        self.auth = AuthService(self.gateway, self._client, self.csrf)
        self.access = AccessControl(self.auth)
        self.crypto = CryptoService(self.gateway)
        self.admin = AdminService(self.gateway)

    async def _drop_shadowed_cookies(self, response: httpx.Response) -> None:
        """Forget forwarded (domain-less) cookies the backend just set again.

        Otherwise the jar sends both values, the stale one first.
        """
        rotated = {cookie.name for cookie in response.cookies.jar}
        jar = self._client.cookies.jar
        for cookie in list(jar):
            if cookie.name in rotated and not cookie.domain:
                jar.clear(cookie.domain, cookie.path, cookie.name)

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
