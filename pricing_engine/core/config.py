"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Discount rates, tiers and thresholds are NOT configured here; they come
    from the catalog and promo stores. These settings only govern how the
    engine composes and reconciles them.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="pricing-engine", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:9000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase (catalog + order store)
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")

    # Pricing
    default_currency: str = Field(default="myr", description="Currency used when a cart does not specify one")
    strict_negative_prices: bool = Field(
        default=False,
        description="Raise instead of clamping when a discount drives a price below zero",
    )
    refund_include_shipping: bool = Field(
        default=True,
        description="Refund effective shipping with the items, spread across lines by gross",
    )
    return_window_days: int = Field(default=30, ge=0, description="Days after delivery an order stays returnable")

    # Price schedule cache
    schedule_cache_ttl: int = Field(default=60, ge=0, description="Seconds a cached price schedule stays valid")
    schedule_cache_size: int = Field(default=1000, ge=1, description="Maximum cached price schedules")

    @field_validator("default_currency")
    @classmethod
    def normalize_currency(cls, value: str) -> str:
        """Store currency codes lower-cased, matching catalog rows."""
        return value.strip().lower()

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
