"""Route gate: decides navigation access by probing the backend auth API.

The gate forwards the browser's Cookie header verbatim and never reads
token values. Every probe failure (non-2xx, transport error, non-JSON body)
counts as "no valid session"; nothing is raised to the request.
"""
import logging
from collections.abc import Callable

import httpx
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import (BaseHTTPMiddleware,
                                       RequestResponseEndpoint)

from crypto_advisor.api.refresh import REFRESH_PATH
from crypto_advisor.config import REQUEST_TIMEOUT_SECONDS, get_api_base_url
from crypto_advisor.middleware.routes import RouteKind, classify, is_excluded
from crypto_advisor.schemas import Allow, Redirect, RouteDecision
from crypto_advisor.services.access import AUTH_PAGE, DASHBOARD_PAGE
from crypto_advisor.services.auth import PROFILE_PATH

logger = logging.getLogger(__name__)

ADMIN_PAGE = "/admin"


def parse_cookie_header(header: str | None) -> dict[str, str]:
    cookies: dict[str, str] = {}
    for part in (header or "").split(";"):
        name, sep, value = part.strip().partition("=")
        if sep and name:
            cookies[name] = value
    return cookies


def merge_cookie_header(header: str | None, rotated: httpx.Cookies) -> str | None:
    """Overlay cookies set by a probe response on top of the browser's Cookie header."""
    if not rotated:
        return header
    merged = parse_cookie_header(header)
    for name, value in rotated.items():
        merged[name] = value
    return "; ".join(f"{name}={value}" for name, value in merged.items())


class RouteGate:
    """Makes the Allow/Redirect decision for one navigation.

    At most three probes per decision (profile, refresh, staff check), no
    caching between them.

    Args:
        api_base_url: Backend origin. Defaults to NEXT_PUBLIC_API_BASE_URL.
        transport: Optional httpx transport (tests use httpx.MockTransport).
        timeout: Per-probe timeout in seconds.
    """

    def __init__(
        self,
        api_base_url: str | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self._base_url = api_base_url or get_api_base_url()
        self._transport = transport
        self._timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        # a fresh jar per decision so cookies of one browser never reach another
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Content-Type": "application/json"},
            timeout=self._timeout,
            transport=self._transport,
        )

    @staticmethod
    def _headers(cookie: str | None) -> dict[str, str]:
        return {"Cookie": cookie} if cookie else {}

    async def _has_valid_tokens(self, client: httpx.AsyncClient, cookie: str | None) -> bool:
        try:
            response = await client.get(PROFILE_PATH, headers=self._headers(cookie))
        except httpx.HTTPError as exc:
            logger.debug("Profile probe failed: %s", exc)
            return False
        logger.debug("Profile probe returned %s", response.status_code)
        return response.is_success

    async def _refresh(
        self, client: httpx.AsyncClient, cookie: str | None
    ) -> tuple[bool, str | None]:
        """Probe the refresh endpoint; returns (valid, cookie header for later probes)."""
        try:
            response = await client.post(REFRESH_PATH, headers=self._headers(cookie))
        except httpx.HTTPError as exc:
            logger.debug("Refresh probe failed: %s", exc)
            return False, cookie
        logger.debug("Refresh probe returned %s", response.status_code)
        if not response.is_success:
            return False, cookie
        return True, merge_cookie_header(cookie, response.cookies)

    async def _is_staff(self, client: httpx.AsyncClient, cookie: str | None) -> bool:
        try:
            response = await client.get(PROFILE_PATH, headers=self._headers(cookie))
            if not response.is_success:
                return False
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("Staff probe failed: %s", exc)
            return False
        return isinstance(payload, dict) and payload.get("is_staff") is True

    async def decide(self, path: str, cookie: str | None) -> RouteDecision:
        """Decide whether navigation to `path` with this Cookie header may proceed."""
        kind = classify(path)
        if kind is RouteKind.UNCLASSIFIED or is_excluded(path):
            return Allow()

        async with self._client() as client:
            if kind is RouteKind.ADMIN:
                decision = await self._decide_admin(client, cookie)
            elif kind is RouteKind.PROTECTED:
                decision = await self._decide_protected(client, cookie)
            else:
                decision = await self._decide_auth(client, cookie)

        logger.info("Route gate %s %s -> %s", kind.value, path, decision)
        return decision

    async def _decide_admin(self, client: httpx.AsyncClient, cookie: str | None) -> RouteDecision:
        if not await self._has_valid_tokens(client, cookie):
            refreshed, cookie = await self._refresh(client, cookie)
            if not refreshed:
                return Redirect(AUTH_PAGE)
        if not await self._is_staff(client, cookie):
            return Redirect(DASHBOARD_PAGE)
        return Allow()

    async def _decide_protected(
        self, client: httpx.AsyncClient, cookie: str | None
    ) -> RouteDecision:
        if not await self._has_valid_tokens(client, cookie):
            refreshed, cookie = await self._refresh(client, cookie)
            if not refreshed:
                return Redirect(AUTH_PAGE)
        # staff users belong in the admin panel
        if await self._is_staff(client, cookie):
            return Redirect(ADMIN_PAGE)
        return Allow()

    async def _decide_auth(self, client: httpx.AsyncClient, cookie: str | None) -> RouteDecision:
        if await self._has_valid_tokens(client, cookie):
            return Redirect(DASHBOARD_PAGE)
        refreshed, _ = await self._refresh(client, cookie)
        if refreshed:
            return Redirect(DASHBOARD_PAGE)
        return Allow()


class RouteGateMiddleware(BaseHTTPMiddleware):
    """Runs the RouteGate before every page request.

    `gate` is a zero-argument callable returning the RouteGate (e.g. a
    dependency_injector provider), so the app can be built before the
    container is configured.
    """

    def __init__(self, app, gate: Callable[[], RouteGate]) -> None:
        super().__init__(app)
        self._gate = gate

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        if is_excluded(path) or classify(path) is RouteKind.UNCLASSIFIED:
            return await call_next(request)

        decision = await self._gate().decide(path, request.headers.get("cookie"))
        if isinstance(decision, Redirect):
            target = request.url.replace(path=decision.target, query="")
            return RedirectResponse(str(target), status_code=307)
        return await call_next(request)
