"""User, session and access-check schemas."""
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator

from crypto_advisor.schemas.routing import Allow, Redirect, RouteDecision


class UserProfile(BaseModel):
    """Profile returned by /api/users/profile/."""

    model_config = ConfigDict(extra="ignore")

    username: str
    email: str
    is_premium: bool = False
    premium_expires_at: datetime | None = None
    is_staff: bool = False

    id: int | None = None
    first_name: str | None = None
    last_name: str | None = None
    date_joined: datetime | None = None
    last_login: datetime | None = None

    @field_validator("premium_expires_at", "date_joined", "last_login", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def premium_expired(self, now: datetime) -> bool:
        """True when an expiry is set and lies strictly before `now`.

        Naive expiry timestamps are read as UTC.
        """
        expires = self.premium_expires_at
        if expires is None:
            return False
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return expires < now


class AuthResponse(BaseModel):
    """Login/signup/refresh/logout result; server fields are kept as extras."""

    model_config = ConfigDict(extra="allow")

    success: bool
    error: str | None = None


class VerifyEmailResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: int
    error: str | None = None


class ProfileResult(BaseModel):
    success: bool
    user: UserProfile | None = None
    error: str | None = None


class AuthState(BaseModel):
    is_authenticated: bool
    user: UserProfile | None = None
    loading: bool = False
    error: str | None = None


class PremiumCheck(BaseModel):
    has_premium: bool
    user: UserProfile | None = None
    is_expired: bool | None = None


class AdminCheck(BaseModel):
    is_admin: bool
    user: UserProfile | None = None


class AccessResult(BaseModel):
    """Outcome of a require_* check. The caller performs the navigation."""

    has_access: bool
    user: UserProfile | None = None
    redirect_to: str | None = None
    is_expired: bool | None = None

    @property
    def decision(self) -> RouteDecision:
        if self.has_access:
            return Allow()
        return Redirect(self.redirect_to or "/auth")


class UpgradePremiumResult(BaseModel):
    success: bool
    message: str | None = None
    detail: str | None = None
    error: str | None = None


class LoginRequest(BaseModel):
    username_or_email: str
    password: str


class SignupRequest(BaseModel):
    email: str
    username: str
    password: str


class VerifyEmailRequest(BaseModel):
    code: str


class UpgradePremiumRequest(BaseModel):
    email: str
    days: int
