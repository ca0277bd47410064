"""
Configuration model for the vibe-dnd web service.
"""

import logging
import os

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .rulebooks.cache import MAX_TTL
from .rulebooks.open5e import OPEN5E_API_BASE

logger = logging.getLogger("vibe-dnd")

# env var name -> AppConfig field
ENV_VARS = {
    "SUPABASE_URL": "supabase_url",
    "SUPABASE_ANON_KEY": "supabase_anon_key",
    "SUPABASE_JWT_SECRET": "supabase_jwt_secret",
    "OPEN5E_API_BASE": "open5e_base_url",
    "VIBE_DND_CACHE_TTL": "reference_cache_ttl",
    "VIBE_DND_HTTP_TIMEOUT": "http_timeout",
    "VIBE_DND_SECURE_COOKIES": "secure_cookies",
    "VIBE_DND_HOST": "host",
    "VIBE_DND_PORT": "port",
    "VIBE_DND_LOG_LEVEL": "log_level",
}


class ConfigError(Exception):
    """Configuration is missing or invalid."""
    pass


class AppConfig(BaseModel):
    """Settings for the web service, its backends and the routing guard."""

    # Supabase backend
    supabase_url: str = Field(description="Project URL, e.g. https://xyz.supabase.co")
    supabase_anon_key: str = Field(description="Public anon key sent as the apikey header")
    supabase_jwt_secret: str = Field(description="Secret used to validate session JWTs locally")

    # Reference catalog
    open5e_base_url: str = Field(
        default=OPEN5E_API_BASE,
        description="Open5e API root"
    )
    reference_cache_ttl: int = Field(
        default=MAX_TTL,
        ge=0,
        le=MAX_TTL,
        description="Seconds catalog responses stay fresh; 0 disables caching"
    )
    http_timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Timeout in seconds for upstream HTTP calls"
    )

    # Routing guard
    protected_prefixes: list[str] = Field(
        default_factory=lambda: ["/characters"],
        description="Path prefixes that require a signed-in user"
    )
    auth_only_prefixes: list[str] = Field(
        default_factory=lambda: ["/auth"],
        description="Path prefixes reserved for anonymous users"
    )
    login_path: str = "/auth/login"
    landing_path: str = "/characters"
    secure_cookies: bool = Field(
        default=True,
        description="Mark session cookies Secure (disable only for plain-HTTP development)"
    )

    # Server
    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "INFO"

    @field_validator("supabase_url", "supabase_anon_key", "supabase_jwt_secret")
    @classmethod
    def validate_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {v}")
        return level

    @classmethod
    def from_env(cls, load_env_file: bool = True, env_file: str | None = None) -> "AppConfig":
        """
        Build the configuration from environment variables, reading ``.env`` first.

        Args:
            load_env_file: Read a dotenv file before the process environment
            env_file: Path of the dotenv file; defaults to the nearest ``.env`` above the working directory

        Raises:
            ConfigError: If a required variable is missing or a value is invalid
        """
        if load_env_file and not load_dotenv(env_file or find_dotenv(usecwd=True)):
            logger.debug(".env file not found, using process environment only")

        values = {
            field: os.environ[var]
            for var, field in ENV_VARS.items()
            if os.environ.get(var)
        }
        missing = [
            var for var, field in ENV_VARS.items()
            if field in ("supabase_url", "supabase_anon_key", "supabase_jwt_secret")
            and field not in values
        ]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
