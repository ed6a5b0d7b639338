"""Configuration for OpenLSP.

Pydantic-based settings sourced from the environment and an optional ``.env``
file.

Environment Variables:
- OPENLSP_LND_REST_URL: LND REST gateway (default: https://localhost:8080)
- OPENLSP_LND_TLS_CERT_PATH: LND tls.cert used to verify the gateway
- OPENLSP_LND_MACAROON_PATH: Macaroon granting invoice, offchain and onchain access
- OPENLSP_LOG_LEVEL / OPENLSP_LOG_JSON: Logging output
- OPENLSP_CHANNEL_EXPIRY_BLOCKS: Channel lease length every order must quote
- OPENLSP_TARGET_CONFIRMATIONS_ONCHAIN: Fee target for onchain order payments
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from openlsp.exceptions import ConfigurationError


class Settings(BaseSettings):
    """OpenLSP settings.

    Example:
        >>> settings = Settings()
        >>> settings.channel_expiry_blocks
        12960
        >>> import os
        >>> os.environ["OPENLSP_LOG_LEVEL"] = "debug"
        >>> reload_settings().log_level
        'DEBUG'
    """

    model_config = SettingsConfigDict(
        env_prefix="OPENLSP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LND connection
    lnd_rest_url: str = Field(
        default="https://localhost:8080",
        description="Base URL of the LND REST gateway",
    )
    lnd_tls_cert_path: Path | None = Field(
        default=None,
        description="LND TLS certificate (system trust store is used when unset)",
    )
    lnd_macaroon_path: Path | None = Field(
        default=None,
        description="Macaroon sent with every LND request",
    )
    lnd_timeout_seconds: int = Field(default=30, ge=1, le=600)
    lnd_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for read-only LND calls (funds-moving calls are never retried)",
    )
    lnd_circuit_breaker_failures: int = Field(default=5, ge=1)
    lnd_circuit_breaker_timeout_seconds: int = Field(default=300, ge=1)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    log_file: Path | None = Field(default=None)
    debug: bool = Field(default=False)

    # Protocol constants
    channel_expiry_blocks: int = Field(
        default=12960,
        ge=1,
        description="Channel expiry (in blocks) every proposed order must quote",
    )
    target_confirmations_onchain: int = Field(
        default=6,
        ge=1,
        description="Confirmation target used when paying an order onchain",
    )
    order_state_created: str = Field(default="created")
    payment_state_expect_payment: str = Field(default="expect_payment")

    # Forwarding report
    forwards_default_days: int = Field(default=1, ge=1, le=365)
    forwards_limit: int = Field(default=99999, ge=1)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("lnd_rest_url")
    @classmethod
    def validate_lnd_rest_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("LND REST URL must start with http:// or https://")
        return v.rstrip("/")


# Global settings instance (singleton pattern)
_settings: Settings | None = None


def _load_settings() -> Settings:
    try:
        return Settings()
    except PydanticValidationError as e:
        error = e.errors()[0]
        setting = ".".join(str(part) for part in error["loc"])
        raise ConfigurationError(
            f"Invalid setting {setting}: {error['msg']}",
            setting=f"OPENLSP_{setting.upper()}",
            original_error=e,
        ) from e


def get_settings() -> Settings:
    """Get or create the process-wide settings."""
    global _settings

    if _settings is None:
        _settings = _load_settings()

    return _settings


def reload_settings() -> Settings:
    """Re-read settings from the environment."""
    global _settings

    _settings = _load_settings()
    return _settings
