"""Access-control predicates derived from a fresh profile fetch.

Nothing is cached: every predicate fetches the profile again, which also
lets the gateway refresh an expired access token on the way. The require_*
helpers never navigate; they return an AccessResult whose `decision` the
caller acts on.
"""
import logging
from collections.abc import Callable
from datetime import datetime, timezone

from crypto_advisor import messages
from crypto_advisor.api.exceptions import UnrecognizedResponseShape
from crypto_advisor.schemas import (AccessResult, AdminCheck, AuthState,
                                    PremiumCheck, ProfileResult)
from crypto_advisor.services.auth import AuthService

logger = logging.getLogger(__name__)

AUTH_PAGE = "/auth"
DASHBOARD_PAGE = "/dashboard"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AccessControl:
    """Logged-in / premium / admin checks for one session."""

    def __init__(
        self,
        auth: AuthService,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._auth = auth
        self._now = now

    async def _profile(self) -> ProfileResult:
        try:
            return await self._auth.get_user_profile()
        except UnrecognizedResponseShape as exc:
            logger.warning("Error fetching user profile: %s", exc)
            return ProfileResult(success=False, error=messages.AUTH_STATE_FAILED)

    async def is_logged_in(self) -> bool:
        response = await self._profile()
        return response.success and response.user is not None

    async def get_auth_state(self) -> AuthState:
        response = await self._profile()
        if response.success and response.user is not None:
            return AuthState(is_authenticated=True, user=response.user)
        return AuthState(is_authenticated=False, error=response.error)

    async def check_premium_access(self) -> PremiumCheck:
        """Premium only when `is_premium` is set and the expiry (if any) is not past."""
        response = await self._profile()
        if not response.success or response.user is None:
            return PremiumCheck(has_premium=False)

        user = response.user
        if not user.is_premium:
            return PremiumCheck(has_premium=False, user=user)
        if user.premium_expired(self._now()):
            return PremiumCheck(has_premium=False, user=user, is_expired=True)
        return PremiumCheck(has_premium=True, user=user)

    async def check_admin_access(self) -> AdminCheck:
        state = await self.get_auth_state()
        if not state.is_authenticated or state.user is None:
            return AdminCheck(is_admin=False)
        return AdminCheck(is_admin=state.user.is_staff, user=state.user)

    async def require_auth(self) -> AccessResult:
        state = await self.get_auth_state()
        if not state.is_authenticated:
            return AccessResult(has_access=False, redirect_to=AUTH_PAGE)
        return AccessResult(has_access=True, user=state.user)

    async def require_premium_access(self) -> AccessResult:
        """Premium pages: anonymous users go to /auth, others to the dashboard upgrade view."""
        premium = await self.check_premium_access()
        if premium.has_premium:
            return AccessResult(has_access=True, user=premium.user)

        state = await self.get_auth_state()
        if not state.is_authenticated:
            return AccessResult(has_access=False, redirect_to=AUTH_PAGE)
        return AccessResult(
            has_access=False,
            user=premium.user,
            is_expired=premium.is_expired,
            redirect_to=DASHBOARD_PAGE,
        )

    async def require_admin_access(self) -> AccessResult:
        admin = await self.check_admin_access()
        if admin.is_admin:
            return AccessResult(has_access=True, user=admin.user)

        state = await self.get_auth_state()
        if not state.is_authenticated:
            return AccessResult(has_access=False, redirect_to=AUTH_PAGE)
        return AccessResult(has_access=False, user=admin.user, redirect_to=DASHBOARD_PAGE)
