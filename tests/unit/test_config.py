"""Unit tests for configuration module."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from miles.core.config import Settings, get_settings

REQUIRED_ENV = {
    "SUPABASE_URL": "https://test.supabase.co",
    "SUPABASE_SECRET_KEY": "test-secret",
    "SUPABASE_SIGNING_KEY_JWK": "{}",
}


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_environment(self) -> None:
        """Test that Settings loads values from environment variables."""
        env_vars = {
            **REQUIRED_ENV,
            "APP_NAME": "test-app",
            "APP_ENV": "testing",
            "DEBUG": "true",
            "PORT": "9000",
            "STRIPE_CURRENCY": "sgd",
            "STRIPE_MINIMUM_AMOUNT": "100",
            "ORDER_NUMBER_MAX_ATTEMPTS": "3",
        }

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.app_name == "test-app"
            assert settings.app_env == "testing"
            assert settings.debug is True
            assert settings.port == 9000
            assert settings.stripe_currency == "sgd"
            assert settings.stripe_minimum_amount == 100
            assert settings.order_number_max_attempts == 3

    def test_settings_defaults(self) -> None:
        """Test order and payment defaults."""
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            settings = Settings(_env_file=None)

            assert settings.stripe_currency == "myr"
            assert settings.stripe_minimum_amount == 50
            assert settings.order_number_max_attempts == 10
            assert settings.max_request_body_size == 1_048_576

    def test_settings_cors_origins_list(self) -> None:
        """Test that CORS origins are correctly parsed into a list."""
        env_vars = {**REQUIRED_ENV, "CORS_ORIGINS": "http://localhost:3000, http://example.com , "}

        with patch.dict(os.environ, env_vars, clear=False):
            settings = Settings()

            assert settings.cors_origins_list == ["http://localhost:3000", "http://example.com"]

    def test_settings_stripe_test_mode(self) -> None:
        """Test that sk_test_ keys are detected as test mode."""
        with patch.dict(os.environ, {**REQUIRED_ENV, "STRIPE_SECRET_KEY": "sk_test_abc"}, clear=False):
            assert Settings().is_stripe_test_mode is True
        with patch.dict(os.environ, {**REQUIRED_ENV, "STRIPE_SECRET_KEY": "sk_live_abc"}, clear=False):
            assert Settings().is_stripe_test_mode is False

    def test_settings_is_production(self) -> None:
        """Test the production environment flag."""
        with patch.dict(os.environ, {**REQUIRED_ENV, "APP_ENV": "production"}, clear=False):
            assert Settings().is_production is True

    def test_settings_requires_supabase(self) -> None:
        """Test that missing Supabase settings fail validation."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_cached_instance(self) -> None:
        """Test that get_settings returns the same instance."""
        get_settings.cache_clear()

        assert get_settings() is get_settings()
