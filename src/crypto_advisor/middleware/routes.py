"""Route classification for the gate."""
from enum import Enum

ADMIN_PREFIXES = ("/admin",)
PROTECTED_PREFIXES = ("/dashboard",)
AUTH_PREFIXES = ("/auth",)

# Never inspected by the gate.
EXCLUDED_PREFIXES = (
    "/api",
    "/_next/static",
    "/_next/image",
    "/favicon.ico",
    "/public",
    "/docs",
    "/openapi.json",
)


class RouteKind(str, Enum):
    ADMIN = "admin"
    PROTECTED = "protected"
    AUTH = "auth"
    UNCLASSIFIED = "unclassified"


def is_excluded(path: str) -> bool:
    return path.startswith(EXCLUDED_PREFIXES)


def classify(path: str) -> RouteKind:
    """Exactly one kind per path; admin wins over protected, protected over auth."""
    if path.startswith(ADMIN_PREFIXES):
        return RouteKind.ADMIN
    if path.startswith(PROTECTED_PREFIXES):
        return RouteKind.PROTECTED
    if path.startswith(AUTH_PREFIXES):
        return RouteKind.AUTH
    return RouteKind.UNCLASSIFIED
