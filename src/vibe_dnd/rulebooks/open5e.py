"""
Open5e API client for D&D 5e reference data.

Fetches races (species), classes, subclasses, backgrounds and spells from
the Open5e v2 API (https://api.open5e.com/v2/) and normalizes them into the
models in ``vibe_dnd.rulebooks.models``.

Every operation issues exactly one upstream request and either returns the
complete result or raises. There are no retries and no multi-page
assembly: list requests carry a ``limit`` large enough for the whole
collection. Caching is opt-in through a ``ResponseCache``.
"""

import logging
from typing import Any, Callable, TypeVar
from urllib.parse import quote

import httpx

from .cache import ResponseCache
from .mapping import (
    map_background,
    map_class,
    map_race,
    map_subclass,
    select_base_races,
    select_spells,
    select_subclasses,
    select_top_level_classes,
)
from .models import (
    BackgroundDefinition,
    ClassDefinition,
    RaceDefinition,
    SpellDefinition,
    SubclassDefinition,
)


logger = logging.getLogger("vibe-dnd")

T = TypeVar("T")


# API Configuration
OPEN5E_API_BASE = "https://api.open5e.com/v2"
DEFAULT_TIMEOUT = 30.0
LIST_LIMIT = 100  # below this the species and class lists get silently truncated
SPELL_LIST_LIMIT = 200


class UpstreamError(Exception):
    """The Open5e API answered with a non-success status, or could not be reached.

    Attributes:
        status_code: HTTP status of the failed response, None for transport failures
        url: The upstream URL that was requested
    """

    def __init__(self, message: str, status_code: int | None = None, url: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class NotFound(UpstreamError):
    """The requested catalog entry does not exist."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message, status_code=404, url=url)


class Open5eClient:
    """
    Read-only client for the Open5e catalog.

    Can be used with a shared ``httpx.AsyncClient`` (passed in, or opened
    with ``async with Open5eClient() as client``) or without one, in which
    case each call opens a short-lived client.
    """

    def __init__(
        self,
        base_url: str = OPEN5E_API_BASE,
        client: httpx.AsyncClient | None = None,
        cache: ResponseCache | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the client.

        Args:
            base_url: API root, without trailing slash
            client: Shared HTTP client. Not closed by this object unless it opened it.
            cache: Optional response cache; None means every call hits the network
            timeout: Timeout for clients this object creates itself
        """
        self.base_url = base_url.rstrip("/")
        self.cache = cache
        self.timeout = timeout
        self._client = client
        self._owns_client = False

    async def __aenter__(self) -> "Open5eClient":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this object opened it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
            self._owns_client = False

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    def _build_url(self, path: str, params: dict[str, Any] | None = None) -> str:
        return str(httpx.URL(f"{self.base_url}{path}", params=params))

    async def _fetch(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """
        Fetch and decode one upstream resource.

        Args:
            path: API path, e.g. "/classes/"
            params: Query parameters

        Returns:
            Decoded JSON body

        Raises:
            NotFound: On HTTP 404
            UpstreamError: On any other non-success status or transport failure
        """
        url = self._build_url(path, params)

        if self.cache is not None:
            cached = self.cache.get(url)
            if cached is not None:
                return cached

        logger.debug(f"Fetching {url}")
        try:
            if self._client is not None:
                response = await self._client.get(url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(url)
        except httpx.RequestError as e:
            raise UpstreamError(f"Open5e request failed: {e}", url=url) from e

        if response.status_code == 404:
            raise NotFound(f"Open5e entry not found: {path}", url=url)
        if not response.is_success:
            raise UpstreamError(
                f"Open5e error: {response.status_code}",
                status_code=response.status_code,
                url=url,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                "Open5e returned a body that is not JSON",
                status_code=response.status_code,
                url=url,
            ) from e

        if self.cache is not None:
            self.cache.store(url, data)
        return data

    async def _fetch_results(self, path: str, params: dict[str, Any]) -> list[dict]:
        """Fetch a list endpoint and unwrap its ``results`` envelope."""
        data = await self._fetch(path, params)
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected Open5e list payload for {path}", status_code=200)
        results = data.get("results")
        if not isinstance(results, list):
            raise UpstreamError(f"Open5e list payload for {path} has no results", status_code=200)
        return results

    async def _fetch_entry(self, collection: str, key: str) -> dict:
        data = await self._fetch(f"/{collection}/{quote(key, safe='')}/")
        if not isinstance(data, dict):
            raise UpstreamError(f"Unexpected Open5e payload for {collection}/{key}", status_code=200)
        return data

    def _normalize(self, path: str, mapper: Callable[..., T], *args: Any) -> T:
        """Run a mapping step, reporting a malformed record as an upstream failure."""
        try:
            return mapper(*args)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise UpstreamError(f"Malformed Open5e payload for {path}: {e!r}", status_code=200) from e

    # =========================================================================
    # Races
    # =========================================================================

    async def list_races(self) -> list[RaceDefinition]:
        """List selectable races. Subspecies are left out."""
        records = await self._fetch_results("/species/", {"limit": LIST_LIMIT})
        return self._normalize("/species/", select_base_races, records)

    async def get_race(self, key: str) -> RaceDefinition:
        return self._normalize(f"/species/{key}/", map_race, await self._fetch_entry("species", key))

    # =========================================================================
    # Classes and subclasses
    # =========================================================================

    async def list_classes(self) -> list[ClassDefinition]:
        """List top-level classes. Records with a parent class are subclasses and are left out."""
        records = await self._fetch_results("/classes/", {"limit": LIST_LIMIT})
        return self._normalize("/classes/", select_top_level_classes, records)

    async def get_class(self, key: str) -> ClassDefinition:
        return self._normalize(f"/classes/{key}/", map_class, await self._fetch_entry("classes", key))

    async def list_subclasses_by_parent(self, parent_key: str) -> list[SubclassDefinition]:
        """
        List the subclasses of one class, in upstream order.

        The catalog has no subclass-by-parent endpoint, so this fetches the
        whole class collection and filters on the parent reference.
        """
        records = await self._fetch_results("/classes/", {"limit": LIST_LIMIT})
        return self._normalize("/classes/", select_subclasses, records, parent_key)

    async def get_subclass(self, key: str) -> SubclassDefinition:
        """
        Get a single subclass.

        Raises:
            NotFound: If the key is absent upstream or names a top-level class
        """
        data = await self._fetch_entry("classes", key)
        if not data.get("subclass_of"):
            raise NotFound(f"'{key}' is a class, not a subclass")
        return self._normalize(f"/classes/{key}/", map_subclass, data)

    # =========================================================================
    # Backgrounds
    # =========================================================================

    async def list_backgrounds(self) -> list[BackgroundDefinition]:
        records = await self._fetch_results("/backgrounds/", {"limit": LIST_LIMIT})
        return self._normalize("/backgrounds/", lambda rows: [map_background(r) for r in rows], records)

    async def get_background(self, key: str) -> BackgroundDefinition:
        return self._normalize(f"/backgrounds/{key}/", map_background, await self._fetch_entry("backgrounds", key))

    # =========================================================================
    # Spells
    # =========================================================================

    async def list_spells_by_class(self, class_key: str, level: int | None = None) -> list[SpellDefinition]:
        """
        List the spells on a class's spell list.

        Args:
            class_key: Class key, e.g. "srd_wizard"
            level: Exact spell level to keep (0 for cantrips). None keeps every level.
        """
        params: dict[str, Any] = {"limit": SPELL_LIST_LIMIT, "classes__key": class_key}
        if level is not None:
            params["level"] = level
        records = await self._fetch_results("/spells/", params)
        return self._normalize("/spells/", select_spells, records, class_key, level)
