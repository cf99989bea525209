"""Page views. The route gate has already run; these re-check access per page."""
import logging

from fastapi import APIRouter, Request, Response

from crypto_advisor.deps import ApiSessionDep
from crypto_advisor.routers.responses import forward_cookies, redirect
from crypto_advisor.schemas import (AdminView, AdvisorView, DashboardView,
                                    Redirect)

logger = logging.getLogger(__name__)
router = APIRouter(tags=["pages"])


@router.get("/auth")
async def auth_page() -> dict[str, str]:
    """Login / signup page. Signed-in users never get here (the gate redirects them)."""
    return {"page": "auth"}


@router.get("/dashboard", response_model=DashboardView)
async def dashboard(request: Request, response: Response, session: ApiSessionDep):
    access = await session.access.require_auth()
    if isinstance(access.decision, Redirect):
        return redirect(request, access.decision.target, session)

    premium = await session.access.check_premium_access()
    forward_cookies(session, request, response)
    return DashboardView(
        user=access.user,
        has_premium=premium.has_premium,
        premium_expired=bool(premium.is_expired),
    )


@router.get("/admin", response_model=AdminView)
async def admin_page(request: Request, response: Response, session: ApiSessionDep):
    access = await session.access.require_admin_access()
    if isinstance(access.decision, Redirect):
        logger.info("Admin page denied, redirecting to %s", access.decision.target)
        return redirect(request, access.decision.target, session)
    forward_cookies(session, request, response)
    return AdminView(user=access.user)


@router.get("/smart-advisor", response_model=AdvisorView)
async def smart_advisor_page(request: Request, response: Response, session: ApiSessionDep):
    """Premium-only advisor page; expired or missing premium goes back to the dashboard."""
    access = await session.access.require_premium_access()
    if isinstance(access.decision, Redirect):
        return redirect(request, access.decision.target, session)
    forward_cookies(session, request, response)
    return AdvisorView(user=access.user)
