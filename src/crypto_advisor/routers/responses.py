"""Response helpers shared by the routers: cookie forwarding and access denial."""
from fastapi import HTTPException, Request, Response
from fastapi.responses import RedirectResponse

from crypto_advisor.config import CSRF_COOKIE_NAME
from crypto_advisor.schemas import AccessResult
from crypto_advisor.services.access import AUTH_PAGE
from crypto_advisor.session import ApiSession


def rotated_cookies(session: ApiSession, request: Request) -> dict[str, str]:
    """Cookies the backend set during this request that the browser does not have yet."""
    latest: dict[str, str] = {}
    # cookies forwarded from the browser have no domain; backend-set ones win
    for cookie in sorted(session.cookies.jar, key=lambda c: bool(c.domain)):
        latest[cookie.name] = cookie.value or ""
    return {name: value for name, value in latest.items() if request.cookies.get(name) != value}


def forward_cookies(session: ApiSession, request: Request, response: Response) -> None:
    for name, value in rotated_cookies(session, request).items():
        response.set_cookie(
            name,
            value,
            path="/",
            httponly=name != CSRF_COOKIE_NAME,
            samesite="lax",
        )


def clear_session_cookies(request: Request, response: Response) -> None:
    """Expire every browser cookie except the CSRF one."""
    for name in request.cookies:
        if name != CSRF_COOKIE_NAME:
            response.delete_cookie(name, path="/")


def redirect(request: Request, target: str, session: ApiSession | None = None) -> RedirectResponse:
    """307 to `target` on this origin, dropping the query string."""
    url = request.url.replace(path=target, query="")
    response = RedirectResponse(str(url), status_code=307)
    if session is not None:
        forward_cookies(session, request, response)
    return response


def raise_for_access(access: AccessResult) -> None:
    """API counterpart of a page redirect: 401 when signed out, 403 when not allowed."""
    if access.has_access:
        return
    if access.redirect_to in (None, AUTH_PAGE):
        raise HTTPException(status_code=401, detail="Authentication required")
    raise HTTPException(status_code=403, detail="Access denied")
