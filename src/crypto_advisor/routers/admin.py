"""Staff-only actions."""
from fastapi import APIRouter, Request, Response

from crypto_advisor.deps import ApiSessionDep
from crypto_advisor.routers.responses import forward_cookies, raise_for_access
from crypto_advisor.schemas import UpgradePremiumRequest, UpgradePremiumResult

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.post("/premium", response_model=UpgradePremiumResult)
async def upgrade_premium(
    body: UpgradePremiumRequest, request: Request, response: Response, session: ApiSessionDep
) -> UpgradePremiumResult:
    """Grant `days` of premium to the user with `email`."""
    raise_for_access(await session.access.require_admin_access())
    result = await session.admin.upgrade_user_to_premium(body.email.strip(), body.days)
    if not result.success:
        response.status_code = 400
    forward_cookies(session, request, response)
    return result
