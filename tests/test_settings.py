"""Tests for configuration settings."""

from decimal import Decimal


def test_settings_has_defaults():
    """Test that settings has the business defaults."""
    from daybook.config.settings import get_settings

    settings = get_settings()

    assert settings.app_id == "test-app"
    assert settings.store_backend == "memory"
    assert settings.daily_salary == Decimal("60.00")
    assert settings.daily_consumption_credit == Decimal("15.00")
    assert settings.default_delivery_rate == Decimal("6.00")
    assert settings.default_fixed_bonus == Decimal("25.00")
    assert settings.admin_pin.get_secret_value() == "1234"
    assert settings.caixa_pin.get_secret_value() == "0000"
    assert settings.guard_refinalize is False
    assert settings.transaction_attempts == 5


def test_settings_loads_from_env(monkeypatch):
    """Test that settings loads from environment variables."""
    from daybook.config.settings import get_settings

    monkeypatch.setenv("DAILY_CONSUMPTION_CREDIT", "20.00")
    monkeypatch.setenv("DAYBOOK_GUARD_REFINALIZE", "true")
    monkeypatch.setenv("CAIXA_PIN", "9999")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.daily_consumption_credit == Decimal("20.00")
    assert settings.guard_refinalize is True
    assert settings.caixa_pin.get_secret_value() == "9999"


def test_settings_are_cached():
    """Test that get_settings returns cached instance."""
    from daybook.config.settings import get_settings

    settings1 = get_settings()
    settings2 = get_settings()

    assert settings1 is settings2


def test_configure_logging_quiets_httpx():
    """Test that request logs from httpx stay below WARNING noise."""
    import logging

    from daybook.config import configure_logging

    try:
        configure_logging(level="DEBUG", format="json")

        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        logging.getLogger("httpx").setLevel(logging.NOTSET)
