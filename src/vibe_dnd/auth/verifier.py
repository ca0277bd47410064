"""
Session verification for the Supabase cookie session.

The session lives in two cookies: a short-lived access token (a JWT signed
with the project's JWT secret) and a refresh token. Access tokens are
validated locally with PyJWT; the auth backend is only contacted when the
access token has expired and a refresh token is available.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import jwt

from .supabase import AuthError, AuthSession, SupabaseAuth

logger = logging.getLogger("vibe-dnd.auth")

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"
REFRESH_COOKIE_MAX_AGE = 60 * 60 * 24 * 30


class AuthVerificationFailure(Exception):
    """The session credential could not be evaluated at all (e.g. missing secret)."""
    pass


@dataclass(frozen=True)
class CookieUpdate:
    """A cookie to set on the outgoing response. ``max_age=0`` deletes it."""
    name: str
    value: str
    max_age: int | None = None
    httponly: bool = True
    samesite: str = "lax"
    path: str = "/"

    @property
    def is_deletion(self) -> bool:
        return self.max_age == 0


@dataclass(frozen=True)
class SessionVerification:
    """Outcome of verifying one request's cookies.

    Attributes:
        claims: Verified JWT claims, None when not authenticated
        access_token: The access token downstream calls should use
        cookies: Cookie updates the response must carry (refresh or clear)
    """
    claims: dict[str, Any] | None = None
    access_token: str | None = None
    cookies: tuple[CookieUpdate, ...] = field(default_factory=tuple)

    @property
    def authenticated(self) -> bool:
        return bool(self.claims)


class SessionVerifier(Protocol):
    """Anything that can turn a request's cookies into a SessionVerification."""

    async def verify(self, cookies: Mapping[str, str]) -> SessionVerification:
        ...


def session_cookies(session: AuthSession) -> tuple[CookieUpdate, ...]:
    """Cookies that store a freshly issued session."""
    return (
        CookieUpdate(ACCESS_TOKEN_COOKIE, session.access_token, max_age=session.expires_in),
        CookieUpdate(REFRESH_TOKEN_COOKIE, session.refresh_token, max_age=REFRESH_COOKIE_MAX_AGE),
    )


def cleared_cookies() -> tuple[CookieUpdate, ...]:
    """Cookies that remove the session from the browser."""
    return (
        CookieUpdate(ACCESS_TOKEN_COOKIE, "", max_age=0),
        CookieUpdate(REFRESH_TOKEN_COOKIE, "", max_age=0),
    )


class SupabaseSessionVerifier:
    """
    Verifies Supabase session cookies.

    Behavior:
    - valid access token: authenticated, no cookie changes
    - expired or missing access token with a refresh token: refresh through
      the auth backend and emit the new cookies; a rejected refresh clears
      both cookies
    - expired access token and no refresh token: not authenticated, both
      cookies cleared
    - anything else: not authenticated
    """

    def __init__(
        self,
        jwt_secret: str,
        auth: SupabaseAuth | None = None,
        audience: str = "authenticated",
        leeway: int = 0,
    ):
        """
        Args:
            jwt_secret: The project's JWT signing secret (HS256)
            auth: Auth client used for refreshing; None disables refresh
            audience: Expected ``aud`` claim
            leeway: Clock skew tolerance in seconds for ``exp``
        """
        self.jwt_secret = jwt_secret
        self.auth = auth
        self.audience = audience
        self.leeway = leeway

    def decode(self, token: str) -> dict[str, Any]:
        """
        Validate a JWT locally and return its claims.

        Raises:
            jwt.ExpiredSignatureError: If the token has expired
            jwt.InvalidTokenError: On a bad signature, audience or shape
        """
        return jwt.decode(
            token,
            self.jwt_secret,
            algorithms=["HS256"],
            audience=self.audience,
            leeway=self.leeway,
            options={"require": ["exp", "sub"]},
        )

    async def verify(self, cookies: Mapping[str, str]) -> SessionVerification:
        if not self.jwt_secret:
            raise AuthVerificationFailure("No JWT secret configured")

        access_token = cookies.get(ACCESS_TOKEN_COOKIE)
        refresh_token = cookies.get(REFRESH_TOKEN_COOKIE)

        expired = False
        if access_token:
            try:
                claims = self.decode(access_token)
                return SessionVerification(claims=claims, access_token=access_token)
            except jwt.ExpiredSignatureError:
                logger.debug("Access token expired")
                expired = True
            except jwt.InvalidTokenError as e:
                logger.warning(f"Rejected access token: {e}")
                return SessionVerification()

        if refresh_token and self.auth is not None:
            return await self._refresh(refresh_token)
        if expired and not refresh_token:
            return SessionVerification(cookies=cleared_cookies())
        return SessionVerification()

    async def _refresh(self, refresh_token: str) -> SessionVerification:
        try:
            session = await self.auth.refresh_session(refresh_token)
            claims = self.decode(session.access_token)
        except (AuthError, jwt.InvalidTokenError) as e:
            logger.info(f"Session refresh failed: {e}")
            return SessionVerification(cookies=cleared_cookies())

        logger.debug(f"Session refreshed for {claims.get('sub')}")
        return SessionVerification(
            claims=claims,
            access_token=session.access_token,
            cookies=session_cookies(session),
        )
