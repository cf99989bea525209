"""Credential actions: login, signup, email verification, logout and refresh.

Cookies the backend sets (session tokens, CSRF) are forwarded to the browser.
"""
from fastapi import APIRouter, Request, Response

from crypto_advisor.deps import ApiSessionDep
from crypto_advisor.routers.responses import (clear_session_cookies,
                                              forward_cookies)
from crypto_advisor.schemas import (AuthResponse, LoginRequest, SignupRequest,
                                    VerifyEmailRequest, VerifyEmailResult)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest, request: Request, response: Response, session: ApiSessionDep
) -> AuthResponse:
    result = await session.auth.login(body.username_or_email, body.password)
    if not result.success:
        response.status_code = 400
    forward_cookies(session, request, response)
    return result


@router.post("/signup", response_model=AuthResponse)
async def signup(
    body: SignupRequest, request: Request, response: Response, session: ApiSessionDep
) -> AuthResponse:
    result = await session.auth.signup(body.username, body.email, body.password)
    if not result.success:
        response.status_code = 400
    forward_cookies(session, request, response)
    return result


@router.post("/verify-email", response_model=VerifyEmailResult)
async def verify_email(
    body: VerifyEmailRequest, request: Request, response: Response, session: ApiSessionDep
) -> VerifyEmailResult:
    result = await session.auth.verify_email(body.code)
    response.status_code = result.status
    forward_cookies(session, request, response)
    return result


@router.post("/logout", response_model=AuthResponse)
async def logout(request: Request, response: Response, session: ApiSessionDep) -> AuthResponse:
    result = await session.auth.logout()
    if result.success:
        clear_session_cookies(request, response)
    else:
        response.status_code = 400
    return result


@router.post("/refresh", response_model=AuthResponse)
async def refresh(request: Request, response: Response, session: ApiSessionDep) -> AuthResponse:
    result = await session.auth.refresh_token()
    if not result.success:
        response.status_code = 401
    forward_cookies(session, request, response)
    return result
