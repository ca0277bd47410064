"""
Starlette adapter for SessionGate.

Runs the gate on every HTTP request, turns redirect decisions into
responses, exposes the session on ``request.state`` for handlers, and
attaches refreshed session cookies to whatever response goes out.
"""

from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response
from starlette.types import ASGIApp

from .gate import GateAction, SessionGate
from .verifier import CookieUpdate


def apply_cookies(response: Response, cookies: Iterable[CookieUpdate], secure: bool = True) -> Response:
    """Write cookie updates onto a response. Deletions expire the cookie."""
    for cookie in cookies:
        if cookie.is_deletion:
            response.delete_cookie(
                cookie.name,
                path=cookie.path,
                secure=secure,
                httponly=cookie.httponly,
                samesite=cookie.samesite,
            )
        else:
            response.set_cookie(
                cookie.name,
                cookie.value,
                max_age=cookie.max_age,
                path=cookie.path,
                secure=secure,
                httponly=cookie.httponly,
                samesite=cookie.samesite,
            )
    return response


class SessionGateMiddleware(BaseHTTPMiddleware):
    """Apply a SessionGate to every request."""

    def __init__(self, app: ASGIApp, gate: SessionGate, secure_cookies: bool = True) -> None:
        super().__init__(app)
        self.gate = gate
        self.secure_cookies = secure_cookies

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        decision = await self.gate.evaluate(request.url.path, request.cookies)

        request.state.claims = decision.claims
        request.state.user_id = decision.user_id
        request.state.access_token = decision.access_token

        if decision.action is GateAction.REDIRECT:
            location = decision.location
            if request.url.query:
                location = f"{location}?{request.url.query}"
            response: Response = RedirectResponse(location, status_code=307)
        else:
            response = await call_next(request)

        return apply_cookies(response, decision.cookies, secure=self.secure_cookies)
