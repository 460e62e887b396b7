"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="miles-orders", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    max_request_body_size: int = Field(default=1_048_576, description="Maximum request body size in bytes")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Supabase signing key JWK (JSON string) for JWT token verification")

    # Stripe
    stripe_secret_key: str = Field(default="", description="Stripe secret API key")
    stripe_webhook_secret: str = Field(default="", description="Stripe webhook signing secret")
    stripe_publishable_key: str = Field(default="", description="Stripe publishable key (for frontend)")
    stripe_currency: str = Field(default="myr", description="Currency used for payment intents")
    stripe_minimum_amount: int = Field(
        default=50,
        description="Smallest chargeable amount in minor units (sen/cents)",
    )

    # Orders
    order_number_max_attempts: int = Field(
        default=10,
        description="How many order number candidates to try before giving up",
    )

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for sending emails")
    email_from_address: str = Field(
        default="Miles <orders@miles.my>",
        description="From address for transactional emails",
    )

    # Frontend
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Frontend application URL for email links and checkout redirects",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_stripe_test_mode(self) -> bool:
        """Check if using Stripe test keys."""
        return self.stripe_secret_key.startswith("sk_test_")


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
