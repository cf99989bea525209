"""Credential and token endpoints of the users API."""
import logging
from typing import Any

import httpx

from crypto_advisor import messages
from crypto_advisor.api.csrf import CsrfManager
from crypto_advisor.api.decoders import (decode_profile, error_from_payload,
                                         json_or_none)
from crypto_advisor.api.exceptions import ApiError
from crypto_advisor.api.gateway import HttpGateway
from crypto_advisor.api.refresh import REFRESH_PATH
from crypto_advisor.config import CSRF_HEADER_NAME
from crypto_advisor.schemas import (AuthResponse, ProfileResult,
                                    VerifyEmailResult)

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/users/login/"
REGISTER_PATH = "/api/users/register/"
VERIFY_EMAIL_PATH = "/api/users/auth/verify-email/"
LOGOUT_PATH = "/api/users/logout/"
PROFILE_PATH = "/api/users/profile/"

_LOGIN_ERROR_KEYS = ("error", "detail", "message")


def _as_fields(payload: Any) -> dict[str, Any]:
    return dict(payload) if isinstance(payload, dict) else {}


class AuthService:
    """Login, signup, email verification, refresh, logout and profile.

    Login, signup and verification talk to the backend directly (there is no
    session yet to refresh); everything else goes through the gateway.
    """

    def __init__(
        self,
        gateway: HttpGateway,
        client: httpx.AsyncClient,
        csrf: CsrfManager,
    ) -> None:
        self._gateway = gateway
        self._client = client
        self._csrf = csrf

    async def _post_direct(self, path: str, payload: dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        token = await self._csrf.resolve()
        if token:
            headers[CSRF_HEADER_NAME] = token
        return await self._client.post(path, json=payload, headers=headers)

    async def login(self, username_or_email: str, password: str) -> AuthResponse:
        """Log in; on success the backend sets the session cookies on the client."""
        try:
            response = await self._post_direct(
                LOGIN_PATH,
                {"username_or_email": username_or_email, "password": password},
            )
        except httpx.HTTPError as exc:
            logger.warning("Login request failed: %s", exc)
            return AuthResponse(success=False, error=messages.LOGIN_FAILED)

        data = json_or_none(response)
        if not response.is_success:
            error = error_from_payload(data, _LOGIN_ERROR_KEYS) or messages.LOGIN_INVALID
            return AuthResponse(success=False, error=error)
        return AuthResponse(**{**_as_fields(data), "success": True})

    async def signup(self, username: str, email: str, password: str) -> AuthResponse:
        try:
            response = await self._post_direct(
                REGISTER_PATH,
                {"username": username, "email": email, "password": password},
            )
        except httpx.HTTPError as exc:
            logger.warning("Signup request failed: %s", exc)
            return AuthResponse(success=False, error=messages.SIGNUP_FAILED)

        data = json_or_none(response)
        if not response.is_success:
            error = error_from_payload(data, _LOGIN_ERROR_KEYS) or messages.SIGNUP_FAILED
            return AuthResponse(success=False, error=error)
        return AuthResponse(**{**_as_fields(data), "success": True})

    async def verify_email(self, code: str) -> VerifyEmailResult:
        """Confirm the emailed code. Reports status 200 or 400."""
        try:
            response = await self._post_direct(VERIFY_EMAIL_PATH, {"code": code})
            if not response.is_success:
                raise ApiError(messages.VERIFY_EMAIL_SERVER_ERROR, status=response.status_code)
            data = response.json() if response.content else {}
        except (httpx.HTTPError, ValueError, ApiError) as exc:
            logger.warning("Email verification failed: %s", exc)
            return VerifyEmailResult(status=400, error=messages.VERIFY_EMAIL_FAILED)
        return VerifyEmailResult(**{**_as_fields(data), "status": 200})

    async def refresh_token(self) -> AuthResponse:
        result = await self._gateway.request(REFRESH_PATH, "POST")
        return AuthResponse(
            **{**_as_fields(result.data), "success": result.success, "error": result.error}
        )

    async def logout(self) -> AuthResponse:
        result = await self._gateway.request(LOGOUT_PATH, "POST")
        if not result.success:
            return AuthResponse(success=False, error=result.error or messages.LOGOUT_FAILED)
        return AuthResponse(**{**_as_fields(result.data), "success": True})

    async def get_user_profile(self) -> ProfileResult:
        """Fetch the current user's profile.

        Raises:
            UnrecognizedResponseShape: The profile endpoint answered 2xx with
                a payload that is not a profile.
        """
        result = await self._gateway.request(PROFILE_PATH, "GET")
        if not result.success:
            return ProfileResult(success=False, error=result.error or messages.PROFILE_FAILED)
        return ProfileResult(success=True, user=decode_profile(result.data))
