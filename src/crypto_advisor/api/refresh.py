"""Refresh-and-retry: one token refresh, then one replay of the original request."""
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from crypto_advisor import messages
from crypto_advisor.api.csrf import CsrfManager
from crypto_advisor.api.decoders import error_from_payload, json_or_none
from crypto_advisor.config import CSRF_HEADER_NAME
from crypto_advisor.schemas import HttpResponse

logger = logging.getLogger(__name__)

REFRESH_PATH = "/api/users/token/refresh/"
MAX_RETRIES = 1

Replay = Callable[[str, str, Any, int], Awaitable[HttpResponse]]


class RefreshCoordinator:
    """Handles a 401 by rotating the session tokens and replaying the request once.

    The replay goes back through the gateway with an incremented retry count,
    so a second 401 is reported as a plain failure and never triggers another
    refresh.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        csrf: CsrfManager,
        replay: Replay,
        refresh_path: str = REFRESH_PATH,
    ) -> None:
        """Initialize the coordinator.

        Args:
            client: Session client; its cookie jar receives the rotated tokens.
            csrf: CSRF manager bound to the same client.
            replay: Gateway entry point `(url, method, body, retry_count)`.
            refresh_path: Token refresh endpoint.
        """
        self._client = client
        self._csrf = csrf
        self._replay = replay
        self._refresh_path = refresh_path

    async def refresh_and_retry(
        self,
        url: str,
        method: str,
        body: Any = None,
        retry_count: int = 0,
    ) -> HttpResponse:
        """Refresh the session, then replay `method url`. Never raises."""
        if retry_count >= MAX_RETRIES:
            logger.error("Token refresh failed or maximum retries reached for %s", url)
            return HttpResponse(success=False, error=messages.REFRESH_EXHAUSTED, status=401)

        try:
            token = await self._csrf.resolve()
            headers = {"Content-Type": "application/json"}
            if token:
                headers[CSRF_HEADER_NAME] = token
            response = await self._client.post(self._refresh_path, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Error during token refresh: %s", exc)
            return HttpResponse(success=False, error=messages.REFRESH_NETWORK_ERROR)

        if response.is_success:
            logger.info("Token refresh successful, retrying %s %s", method, url)
            return await self._replay(url, method, body, retry_count + 1)

        logger.warning("Token refresh failed with status %d", response.status_code)
        error = (
            error_from_payload(json_or_none(response))
            or response.reason_phrase
            or messages.REFRESH_FAILED
        )
        return HttpResponse(success=False, error=error, status=response.status_code)
