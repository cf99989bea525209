"""Route gate middleware."""
from crypto_advisor.middleware.gate import (RouteGate, RouteGateMiddleware,
                                            merge_cookie_header)
from crypto_advisor.middleware.routes import (EXCLUDED_PREFIXES, RouteKind,
                                              classify, is_excluded)

__all__ = [
    "EXCLUDED_PREFIXES",
    "RouteGate",
    "RouteGateMiddleware",
    "RouteKind",
    "classify",
    "is_excluded",
    "merge_cookie_header",
]
