"""HTTP client layer: CSRF, gateway with circuit breaker, refresh-and-retry, decoders."""
from crypto_advisor.api.circuit_breaker import CircuitBreaker
from crypto_advisor.api.csrf import CsrfManager
from crypto_advisor.api.error_mapper import ResultErrorMapper
from crypto_advisor.api.exceptions import ApiError, UnrecognizedResponseShape
from crypto_advisor.api.gateway import HttpGateway
from crypto_advisor.api.refresh import RefreshCoordinator

__all__ = [
    "ApiError",
    "CircuitBreaker",
    "CsrfManager",
    "HttpGateway",
    "RefreshCoordinator",
    "ResultErrorMapper",
    "UnrecognizedResponseShape",
]
