"""
Web application for vibe-dnd.

A Starlette app that serves JSON documents for the character pages and the
sign-in forms, plus the internal reference endpoints used by the builder.
Every request passes through SessionGateMiddleware first.

Routes:
- GET  /                          - Landing document
- GET  /auth/login, /auth/signup  - Form descriptions
- POST /auth/login, /auth/signup  - Sign in / sign up, set session cookies
- POST /logout                    - Sign out, clear session cookies
- GET  /characters                - The user's characters
- POST /characters                - Create a character
- GET  /characters/new            - Builder options (races, classes, backgrounds)
- GET  /characters/{id}           - One character plus builder options
- POST /characters/{id}           - Update a character
- POST /characters/{id}/delete    - Delete a character
- GET  /api/subclasses?class=     - Subclasses of a class (never fails)
- GET  /api/spells?class=&level=  - Spells of a class (never fails)
- GET  /api/reference/{kind}/{key} - One race, class, subclass or background
"""

import asyncio
import json
import logging
from typing import Any

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from .auth import (
    ACCESS_TOKEN_COOKIE,
    AuthError,
    AuthSession,
    SessionGate,
    SessionGateMiddleware,
    SupabaseAuth,
    SupabaseSessionVerifier,
    apply_cookies,
    cleared_cookies,
    session_cookies,
)
from .characters import CharacterDraft, CharacterStore, StoreError
from .config import AppConfig
from .rulebooks import NotFound, Open5eClient, ResponseCache, UpstreamError

logger = logging.getLogger("vibe-dnd.server")

REFERENCE_ERROR = "Could not load reference data."


async def _gather(*aws: Any) -> list[Any]:
    """Await every branch before raising the first failure, so none is left running."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


def _dump(models: list) -> list[dict[str, Any]]:
    return [m.model_dump(mode="json", by_alias=True) for m in models]


def _validation_message(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))


class WebApp:
    """
    The vibe-dnd web application.

    Attributes:
        config: Service configuration
        reference: Open5e catalog client
        auth: Supabase auth client
        store: Character storage
        gate: Routing guard applied to every request
        app: The Starlette application
    """

    def __init__(
        self,
        config: AppConfig,
        reference: Open5eClient,
        auth: SupabaseAuth,
        store: CharacterStore,
        gate: SessionGate,
    ) -> None:
        self.config = config
        self.reference = reference
        self.auth = auth
        self.store = store
        self.gate = gate
        self.app = self._build_app()

    def _build_app(self) -> Starlette:
        routes = [
            Route("/", self.get_root, methods=["GET"]),
            Route("/auth/login", self.get_login, methods=["GET"]),
            Route("/auth/login", self.post_login, methods=["POST"]),
            Route("/auth/signup", self.get_signup, methods=["GET"]),
            Route("/auth/signup", self.post_signup, methods=["POST"]),
            Route("/logout", self.post_logout, methods=["POST"]),
            Route("/characters", self.get_characters, methods=["GET"]),
            Route("/characters", self.post_characters, methods=["POST"]),
            Route("/characters/new", self.get_new_character, methods=["GET"]),
            Route("/characters/{character_id}", self.get_character, methods=["GET"]),
            Route("/characters/{character_id}", self.post_character, methods=["POST"]),
            Route("/characters/{character_id}/delete", self.post_delete_character, methods=["POST"]),
            Route("/api/subclasses", self.api_subclasses, methods=["GET"]),
            Route("/api/spells", self.api_spells, methods=["GET"]),
            Route("/api/reference/{kind}/{key}", self.api_reference, methods=["GET"]),
        ]
        middleware = [
            Middleware(
                SessionGateMiddleware,
                gate=self.gate,
                secure_cookies=self.config.secure_cookies,
            ),
        ]
        return Starlette(debug=False, routes=routes, middleware=middleware)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _read_payload(self, request: Request) -> dict[str, Any]:
        """Read a JSON or form body into a dict. An unreadable body yields {}."""
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                body = await request.json()
            except json.JSONDecodeError:
                return {}
            return body if isinstance(body, dict) else {}
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    def _session(self, request: Request) -> tuple[str | None, str | None]:
        return (
            getattr(request.state, "user_id", None),
            getattr(request.state, "access_token", None),
        )

    async def _builder_options(self) -> dict[str, Any]:
        """Load races, classes and backgrounds concurrently.

        Raises:
            UpstreamError: If any of the three collections fails to load
        """
        races, classes, backgrounds = await _gather(
            self.reference.list_races(),
            self.reference.list_classes(),
            self.reference.list_backgrounds(),
        )
        return {
            "races": _dump(races),
            "classes": _dump(classes),
            "backgrounds": _dump(backgrounds),
        }

    @staticmethod
    def _unauthorized() -> Response:
        return JSONResponse({"error": "Not authenticated"}, status_code=401)

    @staticmethod
    def _reference_failure(error: UpstreamError) -> Response:
        logger.error(f"Reference data unavailable: {error}")
        return JSONResponse(
            {"error": REFERENCE_ERROR, "upstream_status": error.status_code},
            status_code=502,
        )

    # =========================================================================
    # Landing and auth
    # =========================================================================

    async def get_root(self, request: Request) -> Response:
        return JSONResponse({
            "app": "vibe-dnd",
            "description": "Your D&D 5e character reference",
            "links": {
                "login": self.config.login_path,
                "signup": "/auth/signup",
                "characters": self.config.landing_path,
            },
        })

    async def get_login(self, request: Request) -> Response:
        return JSONResponse({
            "form": "login",
            "action": "/auth/login",
            "fields": ["email", "password"],
            "alternate": "/auth/signup",
        })

    async def get_signup(self, request: Request) -> Response:
        return JSONResponse({
            "form": "signup",
            "action": "/auth/signup",
            "fields": ["email", "password"],
            "alternate": "/auth/login",
        })

    def _credentials(self, payload: dict[str, Any]) -> tuple[str, str]:
        return str(payload.get("email", "")).strip(), str(payload.get("password", ""))

    def _signed_in(self, session: AuthSession) -> Response:
        response = RedirectResponse(self.config.landing_path, status_code=303)
        return apply_cookies(response, session_cookies(session), secure=self.config.secure_cookies)

    async def post_login(self, request: Request) -> Response:
        """Sign in with email and password, then send the user to the landing path."""
        email, password = self._credentials(await self._read_payload(request))
        if not email or not password:
            return JSONResponse({"error": "Email and password are required"}, status_code=400)

        try:
            session = await self.auth.sign_in_with_password(email, password)
        except AuthError as e:
            logger.info(f"Sign-in rejected: {e}")
            return JSONResponse({"error": str(e)}, status_code=401)
        return self._signed_in(session)

    async def post_signup(self, request: Request) -> Response:
        """Create an account. Signs the user in when no email confirmation is needed."""
        email, password = self._credentials(await self._read_payload(request))
        if not email or not password:
            return JSONResponse({"error": "Email and password are required"}, status_code=400)

        try:
            session = await self.auth.sign_up(email, password)
        except AuthError as e:
            logger.info(f"Sign-up rejected: {e}")
            return JSONResponse({"error": str(e)}, status_code=400)

        if session is None:
            return JSONResponse({"message": "Check your email to confirm your account."})
        return self._signed_in(session)

    async def post_logout(self, request: Request) -> Response:
        access_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
        if access_token:
            try:
                await self.auth.sign_out(access_token)
            except AuthError as e:
                # The cookies are cleared regardless
                logger.warning(f"Sign-out call failed: {e}")
        response = RedirectResponse(self.config.login_path, status_code=303)
        return apply_cookies(response, cleared_cookies(), secure=self.config.secure_cookies)

    # =========================================================================
    # Characters
    # =========================================================================

    async def get_characters(self, request: Request) -> Response:
        _, access_token = self._session(request)
        if not access_token:
            return self._unauthorized()

        try:
            characters = await self.store.list_characters(access_token)
        except StoreError as e:
            return JSONResponse({"error": str(e)}, status_code=502)
        return JSONResponse({"characters": _dump(characters)})

    async def post_characters(self, request: Request) -> Response:
        """Create a character from a draft and redirect to it."""
        user_id, access_token = self._session(request)
        if not user_id or not access_token:
            return self._unauthorized()

        try:
            draft = CharacterDraft.model_validate(await self._read_payload(request))
        except ValidationError as e:
            return JSONResponse({"error": _validation_message(e)}, status_code=400)

        try:
            character_id = await self.store.create_character(access_token, user_id, draft)
        except StoreError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        return RedirectResponse(f"/characters/{character_id}", status_code=303)

    async def get_new_character(self, request: Request) -> Response:
        try:
            options = await self._builder_options()
        except UpstreamError as e:
            return self._reference_failure(e)
        return JSONResponse(options)

    async def get_character(self, request: Request) -> Response:
        _, access_token = self._session(request)
        if not access_token:
            return self._unauthorized()
        character_id = request.path_params["character_id"]

        try:
            character, options = await _gather(
                self.store.get_character(access_token, character_id),
                self._builder_options(),
            )
        except StoreError as e:
            return JSONResponse({"error": str(e)}, status_code=502)
        except UpstreamError as e:
            return self._reference_failure(e)

        if character is None:
            return JSONResponse({"error": "Character not found"}, status_code=404)

        return JSONResponse({
            "character": character.model_dump(mode="json", by_alias=True),
            "draft": character.to_draft().model_dump(by_alias=True),
            **options,
        })

    async def post_character(self, request: Request) -> Response:
        """Save edits to a character."""
        _, access_token = self._session(request)
        if not access_token:
            return self._unauthorized()
        character_id = request.path_params["character_id"]

        try:
            draft = CharacterDraft.model_validate(await self._read_payload(request))
        except ValidationError as e:
            return JSONResponse({"error": _validation_message(e)}, status_code=400)

        try:
            await self.store.update_character(access_token, character_id, draft)
        except StoreError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        return JSONResponse({"success": True})

    async def post_delete_character(self, request: Request) -> Response:
        _, access_token = self._session(request)
        if not access_token:
            return self._unauthorized()
        character_id = request.path_params["character_id"]

        try:
            await self.store.delete_character(access_token, character_id)
        except StoreError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        return RedirectResponse(self.config.landing_path, status_code=303)

    # =========================================================================
    # Reference endpoints
    # =========================================================================

    async def api_subclasses(self, request: Request) -> Response:
        """Subclasses of ``?class=``. Answers [] instead of failing."""
        class_key = request.query_params.get("class")
        if not class_key:
            return JSONResponse([])

        try:
            subclasses = await self.reference.list_subclasses_by_parent(class_key)
        except UpstreamError as e:
            logger.warning(f"Subclass lookup for '{class_key}' failed, answering []: {e}")
            return JSONResponse([])
        return JSONResponse(_dump(subclasses))

    async def api_spells(self, request: Request) -> Response:
        """Spells of ``?class=``, optionally at ``?level=``. Answers [] instead of failing."""
        class_key = request.query_params.get("class")
        if not class_key:
            return JSONResponse([])

        level = None
        raw_level = request.query_params.get("level")
        if raw_level not in (None, ""):
            try:
                level = int(raw_level)
            except ValueError:
                return JSONResponse([])

        try:
            spells = await self.reference.list_spells_by_class(class_key, level)
        except UpstreamError as e:
            logger.warning(f"Spell lookup for '{class_key}' failed, answering []: {e}")
            return JSONResponse([])
        return JSONResponse(_dump(spells))

    async def api_reference(self, request: Request) -> Response:
        kind = request.path_params["kind"]
        key = request.path_params["key"]
        lookups = {
            "races": self.reference.get_race,
            "classes": self.reference.get_class,
            "subclasses": self.reference.get_subclass,
            "backgrounds": self.reference.get_background,
        }
        lookup = lookups.get(kind)
        if lookup is None:
            return JSONResponse({"error": f"Unknown reference kind: {kind}"}, status_code=404)

        try:
            entry = await lookup(key)
        except NotFound:
            return JSONResponse({"error": f"{kind} entry not found: {key}"}, status_code=404)
        except UpstreamError as e:
            return self._reference_failure(e)
        return JSONResponse(entry.model_dump(mode="json"))


def create_app(config: AppConfig) -> Starlette:
    """Wire the backends from configuration and build the Starlette app."""
    cache = None
    if config.reference_cache_ttl > 0:
        cache = ResponseCache(ttl=config.reference_cache_ttl)

    reference = Open5eClient(
        base_url=config.open5e_base_url,
        cache=cache,
        timeout=config.http_timeout,
    )
    auth = SupabaseAuth(config.supabase_url, config.supabase_anon_key, timeout=config.http_timeout)
    store = CharacterStore(config.supabase_url, config.supabase_anon_key, timeout=config.http_timeout)
    gate = SessionGate(
        SupabaseSessionVerifier(config.supabase_jwt_secret, auth=auth),
        protected_prefixes=config.protected_prefixes,
        auth_only_prefixes=config.auth_only_prefixes,
        login_path=config.login_path,
        landing_path=config.landing_path,
    )
    return WebApp(config, reference, auth, store, gate).app
