"""Staff-only actions."""
import logging

from crypto_advisor import messages
from crypto_advisor.api.gateway import HttpGateway
from crypto_advisor.schemas import UpgradePremiumResult

logger = logging.getLogger(__name__)

UPGRADE_PREMIUM_PATH = "/api/users/premium/upgrade/"


class AdminService:
    def __init__(self, gateway: HttpGateway) -> None:
        self._gateway = gateway

    async def upgrade_user_to_premium(self, email: str, days: int) -> UpgradePremiumResult:
        """Grant `days` of premium to the account registered under `email`."""
        result = await self._gateway.request(
            UPGRADE_PREMIUM_PATH, "POST", {"email": email, "days": days}
        )
        if not result.success:
            logger.info("Premium upgrade for %s failed: %s", email, result.error)
            return UpgradePremiumResult(
                success=False, error=result.error or messages.REQUEST_FAILED
            )
        data = result.data if isinstance(result.data, dict) else {}
        return UpgradePremiumResult(
            success=True, message=data.get("message"), detail=data.get("detail")
        )
