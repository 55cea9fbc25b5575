"""
Tests for configuration and the per-user calculation context.
"""

import pytest
from pydantic import ValidationError

from budgetwise.config import Settings, WalletSettings, get_settings, validate_all_settings
from budgetwise.models.context import UserContext


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self):
        """Test default values when no environment is set."""
        settings = Settings()

        assert settings.currency.reference_currency == "USD"
        assert settings.currency.freshness_window_days == 14
        assert settings.wallet.prune_threshold == 0.01
        assert settings.wallet.max_write_attempts == 3
        assert settings.categorization.default_priority == "wants"

    def test_environment_override(self, monkeypatch):
        """Test prefixed environment variables override defaults."""
        monkeypatch.setenv("BUDGETWISE_CURRENCY_REFERENCE_CURRENCY", "eur")
        monkeypatch.setenv("BUDGETWISE_WALLET_MAX_WRITE_ATTEMPTS", "5")
        settings = Settings()

        assert settings.currency.reference_currency == "EUR"
        assert settings.wallet.max_write_attempts == 5

    def test_invalid_value_rejected(self):
        """Test out-of-range settings are rejected."""
        with pytest.raises(ValidationError):
            WalletSettings(max_write_attempts=0)

    def test_validate_all_settings(self, monkeypatch):
        """Test the startup check reports a broken section."""
        monkeypatch.setenv("BUDGETWISE_CATEGORIZATION_DEFAULT_PRIORITY", "luxury")
        results = validate_all_settings(Settings())

        assert results["currency"] is True
        assert results["categorization"] is False
        assert "categorization_error" in results

    def test_get_settings_is_cached(self):
        """Test get_settings returns the same instance."""
        assert get_settings() is get_settings()


class TestUserContext:
    """Tests for UserContext."""

    def test_from_settings_with_overrides(self):
        """Test overrides win over settings."""
        context = UserContext.from_settings(Settings(), base_currency="gbp", goal_mode="absolute")

        assert context.base_currency == "GBP"
        assert context.goal_mode == "absolute"
        assert context.money_places == 2

    def test_rounding(self):
        """Test money and rate rounding places."""
        context = UserContext()
        assert context.round_money(10.005001) == 10.01
        assert context.round_rate(0.123456789) == 0.123457

    def test_invalid_goal_mode(self):
        """Test goal mode is restricted."""
        with pytest.raises(ValidationError):
            UserContext(goal_mode="vibes")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
