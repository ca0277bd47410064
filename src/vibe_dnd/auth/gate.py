"""
Session gate: the routing decision taken before a request reaches a handler.

The gate is a function of the request path and its cookies. It never
raises: a credential that cannot be verified, for whatever reason, counts
as "not authenticated".
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from .verifier import CookieUpdate, SessionVerification, SessionVerifier

logger = logging.getLogger("vibe-dnd.auth")


class PathClass(str, Enum):
    """Which audience a path is reserved for."""
    PROTECTED = "protected"
    AUTH_ONLY = "auth-only"
    PUBLIC = "public"


class GateAction(str, Enum):
    FORWARD = "forward"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class GateDecision:
    """What to do with a request.

    Attributes:
        action: Forward to the handler or redirect
        location: Redirect target path, None when forwarding
        cookies: Cookie updates to attach to the response, whatever the action
        claims: Verified session claims, None when not authenticated
        access_token: Access token for downstream backend calls
    """
    action: GateAction
    location: str | None = None
    cookies: tuple[CookieUpdate, ...] = field(default_factory=tuple)
    claims: dict[str, Any] | None = None
    access_token: str | None = None

    @property
    def user_id(self) -> str | None:
        if not self.claims:
            return None
        return self.claims.get("sub")


def _normalize_prefix(prefix: str) -> str:
    return "/" + prefix.strip("/")


def path_matches(path: str, prefix: str) -> bool:
    """Segment-aware prefix match: ``/auth`` matches ``/auth/login`` but not ``/authors``."""
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


class SessionGate:
    """
    Decides, per request, whether to forward it or redirect it.

    | path class | authenticated | action                      |
    |------------|---------------|-----------------------------|
    | protected  | no            | redirect to login_path      |
    | protected  | yes           | forward                     |
    | auth-only  | yes           | redirect to landing_path    |
    | auth-only  | no            | forward                     |
    | public     | either        | forward                     |
    """

    def __init__(
        self,
        verifier: SessionVerifier,
        protected_prefixes: Iterable[str] = ("/characters",),
        auth_only_prefixes: Iterable[str] = ("/auth",),
        login_path: str = "/auth/login",
        landing_path: str = "/characters",
    ):
        self.verifier = verifier
        self.protected_prefixes = tuple(_normalize_prefix(p) for p in protected_prefixes)
        self.auth_only_prefixes = tuple(_normalize_prefix(p) for p in auth_only_prefixes)
        self.login_path = login_path
        self.landing_path = landing_path

    def classify(self, path: str) -> PathClass:
        """Classify a request path. Protected prefixes win over auth-only ones."""
        if any(path_matches(path, p) for p in self.protected_prefixes):
            return PathClass.PROTECTED
        if any(path_matches(path, p) for p in self.auth_only_prefixes):
            return PathClass.AUTH_ONLY
        return PathClass.PUBLIC

    async def _verify(self, cookies: Mapping[str, str]) -> SessionVerification:
        try:
            return await self.verifier.verify(cookies)
        except Exception as e:
            # Fail closed
            logger.warning(f"Session verification failed, treating request as anonymous: {e}")
            return SessionVerification()

    async def evaluate(self, path: str, cookies: Mapping[str, str]) -> GateDecision:
        """
        Decide what to do with a request.

        Args:
            path: Request path, without query string
            cookies: Request cookies by name

        Returns:
            The routing decision, carrying any cookie refresh from verification
        """
        path_class = self.classify(path)
        if path_class is PathClass.PUBLIC:
            return GateDecision(action=GateAction.FORWARD)

        verification = await self._verify(cookies)
        authenticated = verification.authenticated
        claims = verification.claims if authenticated else None
        access_token = verification.access_token if authenticated else None

        if path_class is PathClass.PROTECTED and not authenticated:
            logger.debug(f"Anonymous request to {path}, redirecting to {self.login_path}")
            return GateDecision(
                action=GateAction.REDIRECT,
                location=self.login_path,
                cookies=verification.cookies,
            )

        if path_class is PathClass.AUTH_ONLY and authenticated:
            return GateDecision(
                action=GateAction.REDIRECT,
                location=self.landing_path,
                cookies=verification.cookies,
                claims=claims,
                access_token=access_token,
            )

        return GateDecision(
            action=GateAction.FORWARD,
            cookies=verification.cookies,
            claims=claims,
            access_token=access_token,
        )
