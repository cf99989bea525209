"""Circuit breaker state transitions and the gateway's short-circuit."""
import httpx
import pytest

from conftest import API_URL, FakeClock
from crypto_advisor import messages
from crypto_advisor.api import CircuitBreaker, CsrfManager, HttpGateway


class TestCircuitBreaker:
    @pytest.fixture
    def breaker(self, clock):
        return CircuitBreaker(clock=clock)

    def test_starts_closed(self, breaker):
        assert breaker.before_request() is True
        assert breaker.consecutive_failures == 0
        assert breaker.last_failure_time is None

    def test_opens_after_three_consecutive_failures(self, breaker):
        for _ in range(3):
            assert breaker.before_request()
            breaker.record_failure()
        assert breaker.is_open
        assert breaker.before_request() is False

    def test_success_resets_counter(self, breaker):
        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()
        breaker.record_failure()
        assert breaker.consecutive_failures == 1
        assert not breaker.is_open

    def test_stays_open_until_reset_time_has_passed(self, breaker, clock):
        for _ in range(3):
            breaker.record_failure()
        clock.advance(30.0)
        assert breaker.before_request() is False

        clock.advance(0.5)
        assert breaker.before_request() is True
        assert breaker.consecutive_failures == 0

    def test_reset_and_snapshot(self, breaker):
        breaker.record_failure()
        snapshot = breaker.snapshot()
        assert snapshot["consecutive_failures"] == 1
        assert snapshot["is_open"] is False
        breaker.reset()
        assert breaker.last_failure_time is None


class TestGatewayShortCircuit:
    @pytest.mark.asyncio
    async def test_fourth_request_makes_no_network_call(self):
        """Three 500s open the circuit; the 4th call never reaches the network."""
        clock = FakeClock()
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url.path)
            return httpx.Response(500, json={"detail": "boom"})

        client = httpx.AsyncClient(base_url=API_URL, transport=httpx.MockTransport(handler))
        breaker = CircuitBreaker(clock=clock)
        gateway = HttpGateway(client, breaker, CsrfManager(client))

        for _ in range(3):
            result = await gateway.request("/api/crypto/prices/latest/")
            assert result.error == "boom"
        result = await gateway.request("/api/crypto/prices/latest/")

        assert result.success is False
        assert result.error == messages.SERVICE_UNAVAILABLE
        assert len(calls) == 3

        clock.advance(31)
        await gateway.request("/api/crypto/prices/latest/")
        assert len(calls) == 4
        await client.aclose()
