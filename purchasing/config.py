"""
Purchasing Configuration - Pydantic Settings for type-safe config.

FAIL FAST - Invalid config is rejected at import time.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from purchasing.exceptions import ConfigurationError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Purchasing settings loaded from PURCHASING_* environment variables."""

    # Service identity (attached to every log entry)
    service_name: str = "purchasing"
    service_version: str = "0.1.0"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    # Observability - Metrics
    metrics_enabled: bool = True

    # Background entitlement refresh: fixed delay between attempts, unbounded
    entitlements_retry_interval_seconds: float = 3.0

    # Simulated network latency for MockPurchaseService
    mock_delay_seconds: float = 1.0

    model_config = SettingsConfigDict(
        env_prefix="PURCHASING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_config(self) -> "Settings":
        """
        FAIL FAST: Validate configuration at startup.

        A negative retry interval would turn the background refresh into a
        hot loop, so it is rejected here rather than at first failure.
        """
        errors: list[str] = []

        if self.entitlements_retry_interval_seconds < 0:
            errors.append(
                "ENTITLEMENTS_RETRY_INTERVAL_SECONDS must be >= 0, "
                f"got: {self.entitlements_retry_interval_seconds}"
            )
        if self.mock_delay_seconds < 0:
            errors.append(f"MOCK_DELAY_SECONDS must be >= 0, got: {self.mock_delay_seconds}")
        if self.log_format not in ("json", "console"):
            errors.append(f"LOG_FORMAT must be 'json' or 'console', got: {self.log_format}")
        if self.log_level.upper() not in _LOG_LEVELS:
            errors.append(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got: {self.log_level}")

        if errors:
            error_msg = "\n".join(
                [
                    "",
                    "=" * 60,
                    "PURCHASING CONFIGURATION ERROR",
                    "=" * 60,
                    *[f"  - {e}" for e in errors],
                    "=" * 60,
                    "",
                ]
            )
            print(error_msg, file=sys.stderr)
            raise ConfigurationError(error_msg)

        return self


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get purchasing settings instance."""
    return settings
