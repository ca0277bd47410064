"""
Authentication for vibe-dnd.

- SupabaseAuth: sign-in, sign-up, refresh and sign-out calls
- SupabaseSessionVerifier: local JWT validation of the session cookies
- SessionGate: per-request forward/redirect decision
- SessionGateMiddleware: Starlette adapter for the gate
"""

from .supabase import AuthError, AuthSession, AuthUser, SupabaseAuth
from .verifier import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    AuthVerificationFailure,
    CookieUpdate,
    SessionVerification,
    SessionVerifier,
    SupabaseSessionVerifier,
    cleared_cookies,
    session_cookies,
)
from .gate import GateAction, GateDecision, PathClass, SessionGate, path_matches
from .middleware import SessionGateMiddleware, apply_cookies

__all__ = [
    "AuthError",
    "AuthSession",
    "AuthUser",
    "SupabaseAuth",
    "ACCESS_TOKEN_COOKIE",
    "REFRESH_TOKEN_COOKIE",
    "AuthVerificationFailure",
    "CookieUpdate",
    "SessionVerification",
    "SessionVerifier",
    "SupabaseSessionVerifier",
    "cleared_cookies",
    "session_cookies",
    "GateAction",
    "GateDecision",
    "PathClass",
    "SessionGate",
    "path_matches",
    "SessionGateMiddleware",
    "apply_cookies",
]
