"""Access-control predicates against the fake backend."""
from datetime import datetime, timedelta, timezone

import pytest

from crypto_advisor import messages
from crypto_advisor.schemas import Allow, Redirect
from crypto_advisor.services import AccessControl

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def access_for(session) -> AccessControl:
    return AccessControl(session.auth, now=lambda: NOW)


class TestLoggedIn:
    @pytest.mark.asyncio
    async def test_valid_session(self, backend, make_session):
        session = make_session(cookies={"access": "good"})
        assert await access_for(session).is_logged_in() is True

    @pytest.mark.asyncio
    async def test_no_session(self, backend, make_session):
        backend.refresh_token = None
        state = await access_for(make_session()).get_auth_state()
        assert state.is_authenticated is False
        assert state.user is None
        assert state.loading is False

    @pytest.mark.asyncio
    async def test_expired_access_is_refreshed(self, backend, make_session):
        session = make_session(cookies={"access": "stale", "refresh": "r1"})
        state = await access_for(session).get_auth_state()
        assert state.is_authenticated is True
        assert backend.count_calls("POST", "/api/users/token/refresh/") == 1

    @pytest.mark.asyncio
    async def test_unrecognized_profile_counts_as_logged_out(self, backend, make_session):
        backend.profile = {"detail": "ok"}
        state = await access_for(make_session(cookies={"access": "good"})).get_auth_state()
        assert state.is_authenticated is False
        assert state.error == messages.AUTH_STATE_FAILED


class TestPremium:
    @pytest.mark.asyncio
    async def test_expired_premium_is_not_premium(self, backend, make_session):
        backend.profile["is_premium"] = True
        backend.profile["premium_expires_at"] = (NOW - timedelta(days=1)).isoformat()
        check = await access_for(make_session(cookies={"access": "good"})).check_premium_access()
        assert check.has_premium is False
        assert check.is_expired is True

    @pytest.mark.asyncio
    async def test_premium_without_expiry(self, backend, make_session):
        backend.profile["is_premium"] = True
        check = await access_for(make_session(cookies={"access": "good"})).check_premium_access()
        assert check.has_premium is True
        assert check.is_expired is None

    @pytest.mark.asyncio
    async def test_naive_expiry_is_utc(self, backend, make_session):
        backend.profile["is_premium"] = True
        backend.profile["premium_expires_at"] = "2024-06-01T12:30:00"
        check = await access_for(make_session(cookies={"access": "good"})).check_premium_access()
        assert check.has_premium is True

    @pytest.mark.asyncio
    async def test_require_premium_expired_goes_to_dashboard(self, backend, make_session):
        backend.profile["is_premium"] = True
        backend.profile["premium_expires_at"] = "2024-05-01T00:00:00Z"
        result = await access_for(make_session(cookies={"access": "good"})).require_premium_access()
        assert result.has_access is False
        assert result.is_expired is True
        assert result.redirect_to == "/dashboard"
        assert result.decision == Redirect("/dashboard")

    @pytest.mark.asyncio
    async def test_require_premium_anonymous_goes_to_auth(self, backend, make_session):
        backend.refresh_token = None
        result = await access_for(make_session()).require_premium_access()
        assert result.redirect_to == "/auth"


class TestAdmin:
    @pytest.mark.asyncio
    async def test_staff_has_access(self, backend, make_session):
        backend.profile["is_staff"] = True
        result = await access_for(make_session(cookies={"access": "good"})).require_admin_access()
        assert result.has_access is True
        assert result.user.username == "sara"
        assert result.decision == Allow()

    @pytest.mark.asyncio
    async def test_non_staff_goes_to_dashboard(self, backend, make_session):
        result = await access_for(make_session(cookies={"access": "good"})).require_admin_access()
        assert result.has_access is False
        assert result.redirect_to == "/dashboard"

    @pytest.mark.asyncio
    async def test_require_auth(self, backend, make_session):
        backend.refresh_token = None
        assert (await access_for(make_session()).require_auth()).redirect_to == "/auth"
        ok = await access_for(make_session(cookies={"access": "good"})).require_auth()
        assert ok.has_access is True
