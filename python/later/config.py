"""Application settings loaded from environment variables.

Environment Configuration:
    LATER_ENV: Deployment environment (local | test | staging | prod)

Supabase REST Configuration (required outside test):
    SUPABASE_URL: Supabase project URL (e.g. https://xxx.supabase.co)
    SUPABASE_ANON_KEY: Public anon key sent as the PostgREST apikey header

Auth Configuration (required in all environments):
    SUPABASE_JWKS_URL: Full URL to Supabase JWKS endpoint
    SUPABASE_ISSUER: Expected JWT issuer (trailing slash stripped)
    SUPABASE_AUDIENCES: Comma-separated list of allowed audiences

Search Configuration (all optional):
    SEARCH_DEBOUNCE_MS: Delay before a keystroke triggers an aggregation
    SEARCH_MAX_QUERY_LENGTH: Maximum phrase length after trimming
    SEARCH_DEFAULT_LIMIT / SEARCH_MAX_LIMIT: Pagination window bounds
    SEARCH_TIMEOUT_S: Upper bound for one whole aggregation
    SEARCH_BACKEND_TIMEOUT_S: Upper bound for one PostgREST call
    SEARCH_TEXT_SEARCH_CONFIG: Postgres text search configuration (one language)
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - SUPABASE_JWKS_URL, SUPABASE_ISSUER, SUPABASE_AUDIENCES are required in all environments
    - SUPABASE_URL and SUPABASE_ANON_KEY are required outside the test environment
    - Search limits must be positive and the default limit must not exceed the max
    """

    later_env: Environment = Field(default=Environment.LOCAL, alias="LATER_ENV")

    # Supabase REST settings
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_anon_key: str | None = Field(default=None, alias="SUPABASE_ANON_KEY")

    # Supabase auth settings (required in all environments)
    supabase_jwks_url: str | None = Field(default=None, alias="SUPABASE_JWKS_URL")
    supabase_issuer: str | None = Field(default=None, alias="SUPABASE_ISSUER")
    supabase_audiences: str | None = Field(default=None, alias="SUPABASE_AUDIENCES")

    # Search settings
    search_debounce_ms: int = Field(default=300, alias="SEARCH_DEBOUNCE_MS")
    search_max_query_length: int = Field(default=500, alias="SEARCH_MAX_QUERY_LENGTH")
    search_default_limit: int = Field(default=50, alias="SEARCH_DEFAULT_LIMIT")
    search_max_limit: int = Field(default=200, alias="SEARCH_MAX_LIMIT")
    search_timeout_s: float = Field(default=10.0, alias="SEARCH_TIMEOUT_S")
    search_backend_timeout_s: float = Field(default=5.0, alias="SEARCH_BACKEND_TIMEOUT_S")
    search_text_search_config: str = Field(default="german", alias="SEARCH_TEXT_SEARCH_CONFIG")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set and search bounds are coherent."""
        missing_auth = []
        if not self.supabase_jwks_url:
            missing_auth.append("SUPABASE_JWKS_URL")
        if not self.supabase_issuer:
            missing_auth.append("SUPABASE_ISSUER")
        if not self.supabase_audiences:
            missing_auth.append("SUPABASE_AUDIENCES")

        if missing_auth:
            raise ValueError(
                f"Missing required Supabase auth settings: {', '.join(missing_auth)}. "
                "Run 'supabase status' to get local values, or set these environment variables."
            )

        if self.later_env != Environment.TEST:
            missing_rest = []
            if not self.supabase_url:
                missing_rest.append("SUPABASE_URL")
            if not self.supabase_anon_key:
                missing_rest.append("SUPABASE_ANON_KEY")
            if missing_rest:
                raise ValueError(
                    f"{', '.join(missing_rest)} required for LATER_ENV={self.later_env.value}"
                )

        for name in (
            "search_debounce_ms",
            "search_max_query_length",
            "search_default_limit",
            "search_max_limit",
        ):
            if getattr(self, name) < 1:
                raise ValueError(f"{name.upper()} must be >= 1")

        if self.search_timeout_s <= 0 or self.search_backend_timeout_s <= 0:
            raise ValueError("SEARCH_TIMEOUT_S and SEARCH_BACKEND_TIMEOUT_S must be > 0")

        if self.search_default_limit > self.search_max_limit:
            raise ValueError("SEARCH_DEFAULT_LIMIT must not exceed SEARCH_MAX_LIMIT")

        return self

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.supabase_audiences:
            return [a.strip() for a in self.supabase_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.supabase_issuer:
            return self.supabase_issuer.rstrip("/")
        return None

    @property
    def rest_url(self) -> str | None:
        """Return the PostgREST base URL for the configured project."""
        if self.supabase_url:
            return f"{self.supabase_url.rstrip('/')}/rest/v1"
        return None

    @property
    def debounce_s(self) -> float:
        """Debounce delay in seconds."""
        return self.search_debounce_ms / 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
