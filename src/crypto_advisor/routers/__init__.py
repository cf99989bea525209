"""API routers.

Includes routes for:
- /auth, /dashboard, /admin, /smart-advisor - Page views (behind the route gate)
- /coins, /coins/search, /coins/{coin} - Coin list, search and detail views
- /api/auth - Login, signup, email verification, logout, refresh
- /api/advisor - Smart advisor questions (premium)
- /api/admin - Premium upgrades (staff)
"""
from crypto_advisor.routers.admin import router as admin_router
from crypto_advisor.routers.advisor import router as advisor_router
from crypto_advisor.routers.auth import router as auth_router
from crypto_advisor.routers.coins import router as coins_router
from crypto_advisor.routers.pages import router as pages_router

__all__ = [
    "pages_router",
    "coins_router",
    "auth_router",
    "advisor_router",
    "admin_router",
]
