"""JSON views returned by the page routes."""
from pydantic import BaseModel

from crypto_advisor.schemas.crypto import CoinQuote, HistorySeries
from crypto_advisor.schemas.users import UserProfile


class DashboardView(BaseModel):
    user: UserProfile
    has_premium: bool = False
    premium_expired: bool = False


class AdminView(BaseModel):
    user: UserProfile


class AdvisorView(BaseModel):
    user: UserProfile


class CoinDetailView(BaseModel):
    coin: CoinQuote
    history: HistorySeries
    change_percent: float | None = None
