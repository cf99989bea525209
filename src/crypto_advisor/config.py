"""Runtime configuration read from the environment."""
import os

API_BASE_URL_ENV = "NEXT_PUBLIC_API_BASE_URL"
DEFAULT_API_BASE_URL = "http://localhost:8000"

# Circuit breaker
MAX_CONSECUTIVE_FAILURES = 3
FAILURE_RESET_SECONDS = 30.0

REQUEST_TIMEOUT_SECONDS = 10.0
CRYPTO_PAGE_SIZE = 25
CSRF_COOKIE_NAME = "csrftoken"
CSRF_HEADER_NAME = "X-CSRFToken"


def get_api_base_url() -> str:
    """Backend origin; trailing slash stripped so paths can be appended."""
    return os.getenv(API_BASE_URL_ENV, DEFAULT_API_BASE_URL).rstrip("/")


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
