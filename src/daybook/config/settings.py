"""Configuration settings for Daybook."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from environment variables or a ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Store layout
    app_id: str = Field(default="default-app-id", validation_alias="DAYBOOK_APP_ID")
    store_backend: Literal["memory", "firestore"] = Field(
        default="memory", validation_alias="DAYBOOK_STORE"
    )
    transaction_attempts: int = Field(
        default=5, validation_alias="DAYBOOK_TRANSACTION_ATTEMPTS"
    )
    poll_interval: float = Field(default=2.0, validation_alias="DAYBOOK_POLL_INTERVAL")

    # Firestore REST gateway
    firestore_project_id: str = Field(default="", validation_alias="FIRESTORE_PROJECT_ID")
    firestore_database: str = Field(default="(default)", validation_alias="FIRESTORE_DATABASE")
    firestore_api_key: SecretStr | None = Field(default=None, validation_alias="FIRESTORE_API_KEY")
    firestore_access_token: SecretStr | None = Field(
        default=None, validation_alias="FIRESTORE_ACCESS_TOKEN"
    )
    firestore_base_url: str = Field(
        default="https://firestore.googleapis.com/v1", validation_alias="FIRESTORE_BASE_URL"
    )
    firestore_timeout: float = Field(default=30.0, validation_alias="FIRESTORE_TIMEOUT")

    # Access PINs (shared, compared client-side)
    admin_pin: SecretStr = Field(default=SecretStr("1234"), validation_alias="ADMIN_PIN")
    caixa_pin: SecretStr = Field(default=SecretStr("0000"), validation_alias="CAIXA_PIN")

    # Business constants
    daily_salary: Decimal = Field(default=Decimal("60.00"), validation_alias="DAILY_SALARY")
    daily_consumption_credit: Decimal = Field(
        default=Decimal("15.00"), validation_alias="DAILY_CONSUMPTION_CREDIT"
    )
    default_delivery_rate: Decimal = Field(
        default=Decimal("6.00"), validation_alias="DEFAULT_DELIVERY_RATE"
    )
    default_fixed_bonus: Decimal = Field(
        default=Decimal("25.00"), validation_alias="DEFAULT_FIXED_BONUS"
    )
    guard_refinalize: bool = Field(default=False, validation_alias="DAYBOOK_GUARD_REFINALIZE")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="LOG_FORMAT"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
