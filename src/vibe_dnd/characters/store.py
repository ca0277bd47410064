"""
Character storage on the Supabase PostgREST endpoint.

Every call is made with the signed-in user's access token, so the
backend's row-level security policies decide which rows are visible and
writable. This module never filters by owner itself.
"""

import logging
from typing import Any

import httpx

from .models import Character, CharacterDraft

logger = logging.getLogger("vibe-dnd.store")

DEFAULT_TIMEOUT = 30.0
TABLE = "characters"


class StoreError(Exception):
    """The storage backend rejected a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Storage error: {response.status_code}"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Storage error: {response.status_code}"


class CharacterStore:
    """CRUD access to the ``characters`` table."""

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.table_url = f"{supabase_url.rstrip('/')}/rest/v1/{TABLE}"
        self.anon_key = anon_key
        self.timeout = timeout
        self._client = client

    def _headers(self, access_token: str, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        access_token: str,
        params: dict[str, str],
        json: dict[str, Any] | None = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = self._headers(access_token, prefer)
        try:
            if self._client is not None:
                response = await self._client.request(
                    method, self.table_url, params=params, json=json, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method, self.table_url, params=params, json=json, headers=headers
                    )
        except httpx.RequestError as e:
            raise StoreError(f"Storage backend unreachable: {e}") from e

        if not response.is_success:
            message = _error_message(response)
            logger.warning(f"{method} {TABLE} failed ({response.status_code}): {message}")
            raise StoreError(message, status_code=response.status_code)
        return response

    async def list_characters(self, access_token: str) -> list[Character]:
        """List the user's characters, newest first."""
        response = await self._request(
            "GET", access_token, {"select": "*", "order": "created_at.desc"}
        )
        return [Character.model_validate(row) for row in response.json()]

    async def get_character(self, access_token: str, character_id: str) -> Character | None:
        """Get one character, or None when it does not exist or is not visible to the user.

        An id the table cannot parse (e.g. not a UUID) is answered 400 by the
        backend and also counts as absent.
        """
        try:
            response = await self._request(
                "GET", access_token, {"select": "*", "id": f"eq.{character_id}"}
            )
        except StoreError as e:
            if e.status_code in (400, 404):
                logger.debug(f"Character {character_id} not readable ({e.status_code}): {e}")
                return None
            raise
        rows = response.json()
        if not rows:
            return None
        return Character.model_validate(rows[0])

    async def create_character(self, access_token: str, user_id: str, draft: CharacterDraft) -> str:
        """
        Insert a new character owned by ``user_id``.

        Returns:
            The new character's id
        """
        row = {"user_id": user_id, **draft.to_row()}
        response = await self._request(
            "POST", access_token, {"select": "id"}, json=row, prefer="return=representation"
        )
        rows = response.json()
        if not rows:
            raise StoreError("Insert returned no row")
        character_id = str(rows[0]["id"])
        logger.info(f"Created character {character_id} for {user_id}")
        return character_id

    async def update_character(self, access_token: str, character_id: str, draft: CharacterDraft) -> None:
        await self._request(
            "PATCH", access_token, {"id": f"eq.{character_id}"}, json=draft.to_row()
        )
        logger.info(f"Updated character {character_id}")

    async def delete_character(self, access_token: str, character_id: str) -> None:
        await self._request("DELETE", access_token, {"id": f"eq.{character_id}"})
        logger.info(f"Deleted character {character_id}")
