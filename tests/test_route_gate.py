"""Route classification, gate decisions and the middleware's redirects."""
import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import API_URL, cookie_values
from crypto_advisor.middleware import (RouteGate, RouteGateMiddleware,
                                       RouteKind, classify, is_excluded,
                                       merge_cookie_header)
from crypto_advisor.schemas import Allow, Redirect

PROFILE = ("GET", "/api/users/profile/")
REFRESH = ("POST", "/api/users/token/refresh/")


class TestClassify:
    @pytest.mark.parametrize(
        "path, kind",
        [
            ("/admin", RouteKind.ADMIN),
            ("/admin/users", RouteKind.ADMIN),
            ("/dashboard", RouteKind.PROTECTED),
            ("/dashboard/settings", RouteKind.PROTECTED),
            ("/auth", RouteKind.AUTH),
            ("/", RouteKind.UNCLASSIFIED),
            ("/coins/BTC", RouteKind.UNCLASSIFIED),
        ],
    )
    def test_kinds(self, path, kind):
        assert classify(path) is kind

    @pytest.mark.parametrize(
        "path", ["/api/users/profile/", "/_next/static/x.js", "/favicon.ico", "/public/logo.png"]
    )
    def test_excluded(self, path):
        assert is_excluded(path)

    def test_pages_are_not_excluded(self):
        assert not is_excluded("/dashboard")


class TestMergeCookieHeader:
    def test_no_rotation_keeps_header(self):
        assert merge_cookie_header("a=1; b=2", httpx.Cookies()) == "a=1; b=2"

    def test_rotated_values_override(self):
        rotated = httpx.Cookies({"access": "new"})
        assert merge_cookie_header("access=old; refresh=r", rotated) == "access=new; refresh=r"

    def test_missing_header(self):
        assert merge_cookie_header(None, httpx.Cookies({"access": "new"})) == "access=new"


class TestRouteGate:
    @pytest.fixture
    def gate(self, backend):
        return RouteGate(API_URL, transport=backend.transport)

    @pytest.mark.asyncio
    async def test_unclassified_makes_no_probe(self, gate, backend):
        assert await gate.decide("/coins", "access=good") == Allow()
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_protected_with_valid_session(self, gate, backend):
        assert await gate.decide("/dashboard", "access=good") == Allow()
        assert backend.calls == [PROFILE, PROFILE]

    @pytest.mark.asyncio
    async def test_protected_staff_goes_to_admin(self, gate, backend):
        backend.profile["is_staff"] = True
        assert await gate.decide("/dashboard", "access=good") == Redirect("/admin")

    @pytest.mark.asyncio
    async def test_protected_with_expired_access_and_valid_refresh(self, gate, backend):
        decision = await gate.decide("/dashboard", "access=stale; refresh=r1")
        assert decision == Allow()
        assert backend.calls == [PROFILE, REFRESH, PROFILE]

    @pytest.mark.asyncio
    async def test_protected_without_session_goes_to_auth(self, gate, backend):
        assert await gate.decide("/dashboard", None) == Redirect("/auth")
        assert backend.calls == [PROFILE, REFRESH]

    @pytest.mark.asyncio
    async def test_staff_probe_uses_rotated_cookie(self, gate, backend):
        backend.profile["is_staff"] = True
        decision = await gate.decide("/admin", "access=stale; refresh=r1")
        assert decision == Allow()
        staff_probe = backend.requests[-1]
        assert cookie_values(staff_probe, "access") == ["rotated"]
        assert cookie_values(staff_probe, "refresh") == ["r1"]

    @pytest.mark.asyncio
    async def test_admin_staff_allowed(self, gate, backend):
        backend.profile["is_staff"] = True
        assert await gate.decide("/admin", "access=good") == Allow()

    @pytest.mark.asyncio
    async def test_admin_non_staff_goes_to_dashboard(self, gate, backend):
        assert await gate.decide("/admin", "access=good") == Redirect("/dashboard")

    @pytest.mark.asyncio
    async def test_admin_without_session_goes_to_auth(self, gate, backend):
        assert await gate.decide("/admin", "refresh=wrong") == Redirect("/auth")
        assert len(backend.calls) == 2

    @pytest.mark.asyncio
    async def test_auth_page_with_session_goes_to_dashboard(self, gate, backend):
        assert await gate.decide("/auth", "access=good") == Redirect("/dashboard")
        assert await gate.decide("/auth", "refresh=r1") == Redirect("/dashboard")

    @pytest.mark.asyncio
    async def test_auth_page_without_session_is_allowed(self, gate, backend):
        assert await gate.decide("/auth", None) == Allow()

    @pytest.mark.asyncio
    async def test_probe_failures_mean_no_session(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        gate = RouteGate(API_URL, transport=httpx.MockTransport(handler))
        assert await gate.decide("/dashboard", "access=good") == Redirect("/auth")

    @pytest.mark.asyncio
    async def test_non_json_staff_probe_is_not_staff(self):
        gate = RouteGate(
            API_URL, transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        )
        assert await gate.decide("/admin", "access=good") == Redirect("/dashboard")

    @pytest.mark.asyncio
    async def test_at_most_three_probes(self, gate, backend):
        await gate.decide("/admin", "access=stale; refresh=r1")
        assert len(backend.calls) <= 3


class StubGate:
    def __init__(self, decision):
        self.decision = decision
        self.seen = []

    async def decide(self, path, cookie):
        self.seen.append((path, cookie))
        return self.decision


def make_app(gate: StubGate) -> TestClient:
    app = FastAPI()
    app.add_middleware(RouteGateMiddleware, gate=lambda: gate)

    @app.get("/dashboard")
    def dashboard():
        return {"page": "dashboard"}

    @app.get("/coins")
    def coins():
        return {"page": "coins"}

    @app.get("/api/ping")
    def ping():
        return {"pong": True}

    return TestClient(app, follow_redirects=False)


class TestMiddleware:
    def test_redirect_is_307_to_same_origin_without_query(self):
        gate = StubGate(Redirect("/auth"))
        response = make_app(gate).get("/dashboard?tab=1", headers={"Cookie": "access=x"})
        assert response.status_code == 307
        assert response.headers["location"] == "http://testserver/auth"
        assert gate.seen == [("/dashboard", "access=x")]

    def test_allow_passes_through(self):
        response = make_app(StubGate(Allow())).get("/dashboard")
        assert response.status_code == 200
        assert response.json() == {"page": "dashboard"}

    def test_unclassified_and_api_paths_skip_the_gate(self):
        gate = StubGate(Redirect("/auth"))
        client = make_app(gate)
        assert client.get("/coins").status_code == 200
        assert client.get("/api/ping").status_code == 200
        assert gate.seen == []
