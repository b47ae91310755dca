"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. All secrets are injected via environment, never
hard-coded.

The Settings object is built once at import time and frozen afterwards.
Services receive it through their constructors (see the get_* dependency
factories next to each service), so tests can hand in their own instance
via app.dependency_overrides instead of patching environment variables.

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

import math
from typing import Any

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ─── Bounds for clamped numeric settings ───────────────────────────────────────
DEFAULT_FUZZ_MIN_KM = 2.0
DEFAULT_FUZZ_MAX_KM = 8.0
FUZZ_MIN_KM_BOUNDS = (0.1, 50.0)
FUZZ_MAX_KM_CEILING = 100.0

DEFAULT_COORDINATE_DECIMALS = 5
COORDINATE_DECIMALS_BOUNDS = (2, 6)

DEFAULT_FX_CACHE_TTL_SECONDS = 6 * 60 * 60
FX_CACHE_TTL_BOUNDS = (5 * 60, 24 * 60 * 60)


def _clamped(raw: Any, default: float, low: float, high: float) -> float:
    """Parse *raw* as a finite number and clamp it; unparsable input yields *default*."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(value):
        return default
    return min(high, max(low, value))


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── CORS ──────────────────────────────────────────────────────
    # Comma-separated allowed origins for the globe frontend.
    cors_origins_str: str = "http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Event datastore (Supabase REST) ───────────────────────────
    # Leave empty to serve the built-in mock events.
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # ─── Identity provider (Supabase Auth) ─────────────────────────
    # Empty values fall back to the datastore project above.
    # The allowlist table lives in the identity project.
    identity_provider_url: str = ""
    identity_provider_key: str = ""

    # ─── Insider access ────────────────────────────────────────────
    # Comma-separated X/Twitter handles, "@" optional.
    insider_allowlist: str = ""
    # Required to use ?viewer=insider in production.
    insider_preview_token: str = ""

    # ─── Geolocation privacy ───────────────────────────────────────
    # IMPORTANT: set fuzz_secret in production. Rotating it moves every
    # outsider pin to a new apparent location.
    fuzz_secret: str = ""
    fuzz_min_distance_km: float = DEFAULT_FUZZ_MIN_KM
    fuzz_max_distance_km: float = DEFAULT_FUZZ_MAX_KM
    fuzz_coordinate_decimals: int = DEFAULT_COORDINATE_DECIMALS

    # ─── FX rates ──────────────────────────────────────────────────
    fx_provider_url: str = "https://open.er-api.com/v6/latest/USD"
    fx_cache_ttl_seconds: int = DEFAULT_FX_CACHE_TTL_SECONDS

    # ─── Rate limits (slowapi syntax) ──────────────────────────────
    events_rate_limit: str = "120/minute"
    fx_rate_limit: str = "60/minute"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
        frozen=True,
    )

    @field_validator("fuzz_min_distance_km", mode="before")
    @classmethod
    def _clamp_fuzz_min(cls, value: Any) -> float:
        return _clamped(value, DEFAULT_FUZZ_MIN_KM, *FUZZ_MIN_KM_BOUNDS)

    @field_validator("fuzz_max_distance_km", mode="before")
    @classmethod
    def _clamp_fuzz_max(cls, value: Any) -> float:
        # Ordering against the minimum happens in GeolocationPrivacySettings.
        return _clamped(value, DEFAULT_FUZZ_MAX_KM, FUZZ_MIN_KM_BOUNDS[0], FUZZ_MAX_KM_CEILING)

    @field_validator("fuzz_coordinate_decimals", mode="before")
    @classmethod
    def _clamp_decimals(cls, value: Any) -> int:
        return round(_clamped(value, DEFAULT_COORDINATE_DECIMALS, *COORDINATE_DECIMALS_BOUNDS))

    @field_validator("fx_cache_ttl_seconds", mode="before")
    @classmethod
    def _clamp_fx_ttl(cls, value: Any) -> int:
        return round(_clamped(value, DEFAULT_FX_CACHE_TTL_SECONDS, *FX_CACHE_TTL_BOUNDS))

    @field_validator("fx_provider_url", "events_rate_limit", "fx_rate_limit", mode="before")
    @classmethod
    def _blank_means_default(cls, value: Any, info: ValidationInfo) -> Any:
        # FX_PROVIDER_URL= in .env means "use the default", not "no URL".
        if value is None or (isinstance(value, str) and not value.strip()):
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("supabase_url", "identity_provider_url", "fx_provider_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    # ─── Derived ───────────────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def datastore_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def identity_url(self) -> str:
        return self.identity_provider_url or self.supabase_url

    @property
    def identity_key(self) -> str:
        return self.identity_provider_key or self.supabase_anon_key


# Module-level singleton: import this everywhere instead of instantiating Settings()
settings = Settings()


def get_settings() -> Settings:
    """FastAPI dependency: overridable in tests."""
    return settings
