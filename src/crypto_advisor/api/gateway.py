"""HTTP gateway: the single chokepoint for authenticated API calls."""
import logging
from typing import Any

import httpx

from crypto_advisor import messages
from crypto_advisor.api.circuit_breaker import CircuitBreaker
from crypto_advisor.api.csrf import CsrfManager
from crypto_advisor.api.decoders import error_from_payload, json_or_none
from crypto_advisor.api.refresh import REFRESH_PATH, RefreshCoordinator
from crypto_advisor.config import CSRF_HEADER_NAME
from crypto_advisor.schemas import HttpResponse

logger = logging.getLogger(__name__)

UNSAFE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


class HttpGateway:
    """Sends credentialed JSON requests and reports `{success, data, error}`.

    Owns no state of its own: the cookie jar lives on the client and the
    failure counters on the (shared) circuit breaker. Every call is
    independent; de-duplication is the query layer's job.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        breaker: CircuitBreaker,
        csrf: CsrfManager,
        *,
        refresh_path: str = REFRESH_PATH,
    ) -> None:
        self._client = client
        self._breaker = breaker
        self._csrf = csrf
        self._refresher = RefreshCoordinator(
            client, csrf, replay=self.request, refresh_path=refresh_path
        )

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def request(
        self,
        url: str,
        method: str = "GET",
        body: Any = None,
        retry_count: int = 0,
    ) -> HttpResponse:
        """Send `method url` with an optional JSON body.

        Args:
            url: Path relative to the API base URL, or an absolute URL.
            method: HTTP method; unsafe methods get the CSRF header.
            body: JSON-serializable body, sent when not None.
            retry_count: 0 for a fresh call, 1 for the post-refresh replay.

        Returns:
            HttpResponse. Never raises.
        """
        if not self._breaker.before_request():
            logger.warning("Circuit open, short-circuiting %s %s", method, url)
            return HttpResponse(success=False, error=messages.SERVICE_UNAVAILABLE)

        upper = (method or "GET").upper()
        try:
            headers = {"Content-Type": "application/json"}
            if upper in UNSAFE_METHODS:
                token = await self._csrf.resolve()
                if token:
                    headers[CSRF_HEADER_NAME] = token

            response = await self._client.request(
                upper,
                url,
                headers=headers,
                json=body,
            )

            if response.is_success:
                self._breaker.record_success()
                data = response.json() if response.content else None
                return HttpResponse(success=True, data=data, status=response.status_code)

            if response.status_code == 401 and retry_count == 0:
                result = await self._refresher.refresh_and_retry(url, upper, body, retry_count)
                if result.success:
                    self._breaker.record_success()
                else:
                    self._breaker.record_failure()
                return result

            self._breaker.record_failure()
            data = json_or_none(response)
            error = error_from_payload(data) or f"HTTP {response.status_code}"
            logger.info("%s %s failed: %s", upper, url, error)
            return HttpResponse(
                success=False, data=data, error=error, status=response.status_code
            )
        except (httpx.HTTPError, ValueError) as exc:
            # transport errors and undecodable 2xx bodies count against the breaker too
            logger.warning("%s %s raised %s: %s", upper, url, type(exc).__name__, exc)
            self._breaker.record_failure()
            return HttpResponse(success=False, error=messages.NETWORK_ERROR)
