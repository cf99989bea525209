"""Pydantic schemas for API payloads and runtime results. Nothing here is persisted."""
from crypto_advisor.schemas.crypto import (AdvisorAnswer, AskRequest, CoinPage,
                                           CoinQuote, HistoryPoint,
                                           HistorySeries)
from crypto_advisor.schemas.http import HttpResponse
from crypto_advisor.schemas.pages import (AdminView, AdvisorView,
                                          CoinDetailView, DashboardView)
from crypto_advisor.schemas.routing import Allow, Redirect, RouteDecision
from crypto_advisor.schemas.users import (AccessResult, AdminCheck,
                                          AuthResponse, AuthState,
                                          LoginRequest, PremiumCheck,
                                          ProfileResult, SignupRequest,
                                          UpgradePremiumRequest,
                                          UpgradePremiumResult, UserProfile,
                                          VerifyEmailRequest,
                                          VerifyEmailResult)

__all__ = [
    "AccessResult",
    "AdminCheck",
    "AdminView",
    "AdvisorAnswer",
    "AdvisorView",
    "Allow",
    "AskRequest",
    "AuthResponse",
    "AuthState",
    "CoinDetailView",
    "CoinPage",
    "CoinQuote",
    "DashboardView",
    "HistoryPoint",
    "HistorySeries",
    "HttpResponse",
    "LoginRequest",
    "PremiumCheck",
    "ProfileResult",
    "Redirect",
    "RouteDecision",
    "SignupRequest",
    "UpgradePremiumRequest",
    "UpgradePremiumResult",
    "UserProfile",
    "VerifyEmailRequest",
    "VerifyEmailResult",
]
