"""CSRF token lookup for state-changing requests."""
import logging

import httpx

from crypto_advisor.config import CSRF_COOKIE_NAME

logger = logging.getLogger(__name__)

CSRF_PATH = "/api/users/csrf/"


class CsrfManager:
    """Reads the CSRF cookie from a session's jar, or asks the backend to issue one.

    The backend sets the `csrftoken` cookie on its own responses; this class
    never writes the cookie itself.
    """

    def __init__(self, client: httpx.AsyncClient, csrf_path: str = CSRF_PATH) -> None:
        self._client = client
        self._csrf_path = csrf_path

    def get_token_from_cookie(self) -> str:
        """Current `csrftoken` cookie value, or "" when absent."""
        try:
            return self._client.cookies.get(CSRF_COOKIE_NAME) or ""
        except httpx.CookieConflict:
            # same name on several domains/paths: take the first
            for cookie in self._client.cookies.jar:
                if cookie.name == CSRF_COOKIE_NAME and cookie.value:
                    return cookie.value
            return ""

    async def ensure_csrf(self) -> str:
        """Fetch a token from the CSRF endpoint. Returns "" on total failure."""
        try:
            response = await self._client.get(self._csrf_path)
        except httpx.HTTPError as exc:
            logger.debug("CSRF endpoint unreachable: %s", exc)
            return ""
        try:
            payload = response.json()
        except ValueError:
            # not JSON (e.g. an HTML error page); the response may still have set the cookie
            return self.get_token_from_cookie()
        if isinstance(payload, dict):
            return str(payload.get("csrfToken") or "")
        return ""

    async def resolve(self) -> str:
        """Cookie first, then the endpoint."""
        return self.get_token_from_cookie() or await self.ensure_csrf()
