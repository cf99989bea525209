"""DI container. Build it with init_container(); request dependencies live in deps.py."""
from dependency_injector import containers, providers

from crypto_advisor.api import CircuitBreaker
from crypto_advisor.config import API_BASE_URL_ENV, DEFAULT_API_BASE_URL
from crypto_advisor.middleware import RouteGate
from crypto_advisor.query import QueryClient
from crypto_advisor.session import ApiSession


class Container(containers.DeclarativeContainer):
    config = providers.Configuration()

    # Override with providers.Object(httpx.MockTransport(...)) in tests.
    api_transport = providers.Object(None)

    # Process-wide: every session's failures count against one breaker.
    circuit_breaker = providers.Singleton(CircuitBreaker)
    query_client = providers.Singleton(QueryClient)

    route_gate = providers.Singleton(
        RouteGate,
        api_base_url=config.api_base_url,
        transport=api_transport,
    )

    # One per incoming request; call with cookies=... from the browser.
    api_session = providers.Factory(
        ApiSession,
        base_url=config.api_base_url,
        breaker=circuit_breaker,
        transport=api_transport,
    )


def init_container() -> Container:
    """Create the container and load the backend origin from the environment."""
    container = Container()
    container.config.api_base_url.from_env(API_BASE_URL_ENV, default=DEFAULT_API_BASE_URL)
    return container
