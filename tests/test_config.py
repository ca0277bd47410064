"""
Tests for AppConfig and environment loading.
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from vibe_dnd.config import ENV_VARS, AppConfig, ConfigError
from vibe_dnd.rulebooks.cache import MAX_TTL
from vibe_dnd.rulebooks.open5e import OPEN5E_API_BASE

from helpers import ANON_KEY, JWT_SECRET, SUPABASE_URL

REQUIRED = {
    "SUPABASE_URL": SUPABASE_URL,
    "SUPABASE_ANON_KEY": ANON_KEY,
    "SUPABASE_JWT_SECRET": JWT_SECRET,
}


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    yield monkeypatch
    # load_dotenv writes to os.environ directly
    for var in ENV_VARS:
        os.environ.pop(var, None)


class TestAppConfigDefaults:
    """Test default values and validation."""

    def test_defaults(self):
        config = AppConfig(supabase_url=SUPABASE_URL, supabase_anon_key=ANON_KEY, supabase_jwt_secret=JWT_SECRET)

        assert config.open5e_base_url == OPEN5E_API_BASE
        assert config.reference_cache_ttl == MAX_TTL
        assert config.protected_prefixes == ["/characters"]
        assert config.auth_only_prefixes == ["/auth"]
        assert config.login_path == "/auth/login"
        assert config.landing_path == "/characters"
        assert config.secure_cookies is True
        assert config.port == 8000

    def test_blank_credentials_rejected(self):
        with pytest.raises(ValidationError):
            AppConfig(supabase_url="  ", supabase_anon_key=ANON_KEY, supabase_jwt_secret=JWT_SECRET)

    def test_cache_ttl_capped_at_one_day(self):
        with pytest.raises(ValidationError):
            AppConfig(
                supabase_url=SUPABASE_URL,
                supabase_anon_key=ANON_KEY,
                supabase_jwt_secret=JWT_SECRET,
                reference_cache_ttl=MAX_TTL + 1,
            )

    def test_log_level_normalized(self):
        config = AppConfig(
            supabase_url=SUPABASE_URL,
            supabase_anon_key=ANON_KEY,
            supabase_jwt_secret=JWT_SECRET,
            log_level="debug",
        )
        assert config.log_level == "DEBUG"


class TestFromEnv:
    """Test loading configuration from environment variables."""

    def test_from_env(self, clean_env):
        for var, value in REQUIRED.items():
            clean_env.setenv(var, value)
        clean_env.setenv("VIBE_DND_CACHE_TTL", "600")
        clean_env.setenv("VIBE_DND_SECURE_COOKIES", "false")
        clean_env.setenv("VIBE_DND_PORT", "9000")

        config = AppConfig.from_env(load_env_file=False)

        assert config.supabase_url == SUPABASE_URL
        assert config.reference_cache_ttl == 600
        assert config.secure_cookies is False
        assert config.port == 9000

    def test_missing_required_variables(self, clean_env):
        clean_env.setenv("SUPABASE_URL", SUPABASE_URL)

        with pytest.raises(ConfigError) as exc_info:
            AppConfig.from_env(load_env_file=False)

        assert "SUPABASE_ANON_KEY" in str(exc_info.value)
        assert "SUPABASE_JWT_SECRET" in str(exc_info.value)

    def test_invalid_value_wrapped(self, clean_env):
        for var, value in REQUIRED.items():
            clean_env.setenv(var, value)
        clean_env.setenv("VIBE_DND_PORT", "not-a-port")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            AppConfig.from_env(load_env_file=False)

    def test_reads_dotenv_file(self, clean_env, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "\n".join(f"{var}={value}" for var, value in REQUIRED.items()) + "\nVIBE_DND_LOG_LEVEL=warning\n"
        )
        config = AppConfig.from_env(env_file=str(env_file))

        assert config.supabase_anon_key == ANON_KEY
        assert config.log_level == "WARNING"


class TestMain:
    """Test the service entry point."""

    def test_main_exits_on_config_error(self):
        from vibe_dnd import main as entry

        with patch.object(entry.AppConfig, "from_env", side_effect=ConfigError("Missing required environment variables: SUPABASE_URL")):
            with pytest.raises(SystemExit) as exc_info:
                entry.main()
        assert exc_info.value.code == 1

    def test_main_runs_uvicorn(self):
        from vibe_dnd import main as entry

        config = AppConfig(
            supabase_url=SUPABASE_URL,
            supabase_anon_key=ANON_KEY,
            supabase_jwt_secret=JWT_SECRET,
            port=9123,
        )
        with patch.object(entry.AppConfig, "from_env", return_value=config), \
                patch.object(entry.uvicorn, "run") as mock_run:
            entry.main()

        mock_run.assert_called_once()
        assert mock_run.call_args.kwargs["port"] == 9123
        assert mock_run.call_args.kwargs["log_level"] == "info"
