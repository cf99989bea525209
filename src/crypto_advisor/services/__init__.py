"""Service layer: typed wrappers over the backend endpoints, one session each."""
from crypto_advisor.services.access import AccessControl
from crypto_advisor.services.admin import AdminService
from crypto_advisor.services.auth import AuthService
from crypto_advisor.services.crypto import CryptoService

__all__ = [
    "AccessControl",
    "AdminService",
    "AuthService",
    "CryptoService",
]
