"""
Client for the Supabase auth (GoTrue) REST endpoints.

Covers the four calls the web app needs: password sign-in, sign-up,
refresh-token exchange and sign-out. Every request carries the project's
anon key in the ``apikey`` header.
"""

import logging
from typing import Any

import httpx
from pydantic import BaseModel, Field

logger = logging.getLogger("vibe-dnd.auth")

DEFAULT_TIMEOUT = 30.0


class AuthError(Exception):
    """The auth backend rejected a request (bad credentials, revoked refresh token, ...)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class AuthUser(BaseModel):
    """The authenticated user as reported by the auth backend."""
    id: str
    email: str | None = None


class AuthSession(BaseModel):
    """Tokens issued for a signed-in user."""
    access_token: str
    refresh_token: str
    expires_in: int = Field(default=3600, description="Access token lifetime in seconds")
    token_type: str = "bearer"
    user: AuthUser | None = None


def _error_message(response: httpx.Response) -> str:
    """Pull the human-readable message out of a GoTrue error body."""
    try:
        body = response.json()
    except ValueError:
        return f"Auth error: {response.status_code}"
    if isinstance(body, dict):
        for field in ("msg", "error_description", "message", "error"):
            if body.get(field):
                return str(body[field])
    return f"Auth error: {response.status_code}"


class SupabaseAuth:
    """Thin async client for ``<supabase_url>/auth/v1``."""

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = f"{supabase_url.rstrip('/')}/auth/v1"
        self.anon_key = anon_key
        self.timeout = timeout
        self._client = client

    async def _post(
        self,
        path: str,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
        access_token: str | None = None,
    ) -> httpx.Response:
        headers = {"apikey": self.anon_key}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        url = f"{self.base_url}{path}"

        try:
            if self._client is not None:
                response = await self._client.post(url, params=params, json=json, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, params=params, json=json, headers=headers)
        except httpx.RequestError as e:
            raise AuthError(f"Auth backend unreachable: {e}") from e

        if not response.is_success:
            raise AuthError(_error_message(response), status_code=response.status_code)
        return response

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """
        Exchange email and password for a session.

        Raises:
            AuthError: On invalid credentials or backend failure
        """
        response = await self._post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        session = AuthSession.model_validate(response.json())
        logger.info(f"User signed in: {session.user.id if session.user else 'unknown'}")
        return session

    async def sign_up(self, email: str, password: str) -> AuthSession | None:
        """
        Register a new account.

        Returns:
            The new session when the backend confirms accounts automatically,
            None when an email confirmation is still pending
        """
        response = await self._post("/signup", json={"email": email, "password": password})
        body = response.json()
        if isinstance(body, dict) and body.get("access_token"):
            return AuthSession.model_validate(body)
        logger.info("Sign-up accepted, email confirmation pending")
        return None

    async def refresh_session(self, refresh_token: str) -> AuthSession:
        """
        Exchange a refresh token for a new session.

        Raises:
            AuthError: If the refresh token is expired, revoked or already used
        """
        response = await self._post(
            "/token",
            params={"grant_type": "refresh_token"},
            json={"refresh_token": refresh_token},
        )
        return AuthSession.model_validate(response.json())

    async def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""
        await self._post("/logout", access_token=access_token)
