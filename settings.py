"""Relay settings loaded from environment variables (and .env)."""

import logging
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SITEVERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
SCORE_THRESHOLD = 0.5
VERIFY_TIMEOUT = 3.0  # seconds
DEFAULT_REDIRECT_URL = "https://example.com/welcome"

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Immutable process-wide configuration, built once at startup."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    secret_key: str = Field(
        "",
        validation_alias=AliasChoices("secret_key", "recaptcha_secret"),
    )
    redirect_url: str = DEFAULT_REDIRECT_URL
    # comma-separated, e.g. "https://a.example,https://b.example"
    allowed_origin: str = Field(
        "*",
        validation_alias=AliasChoices("allowed_origin", "allowed_origins"),
    )
    port: int = 3000
    environment: str = "development"
    log_level: str = "INFO"
    rate_limit: str = "100/15minutes"

    @field_validator("secret_key", "redirect_url", "allowed_origin")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        return v.strip()

    @field_validator("redirect_url")
    @classmethod
    def default_redirect(cls, v: str) -> str:
        return v or DEFAULT_REDIRECT_URL

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {_VALID_LOG_LEVELS}, got '{v}'")
        return upper

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {v}")
        return v

    @property
    def allowed_origins(self) -> list[str]:
        origins = [o.strip() for o in self.allowed_origin.split(",") if o.strip()]
        return origins or ["*"]

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def score_threshold(self) -> float:
        return SCORE_THRESHOLD

    @property
    def verify_timeout(self) -> float:
        return VERIFY_TIMEOUT


def warn_on_startup(settings: Settings) -> None:
    """Log configuration problems that do not stop the process."""
    logger = logging.getLogger(__name__)
    if not settings.secret_key:
        logger.warning("SECRET_KEY is not set; every /verify-token call will return 500")
    if settings.allowed_origins == ["*"] and settings.is_production:
        logger.warning("allowed_origin is '*' in production; consider restricting it")


@lru_cache
def get_settings() -> Settings:
    return Settings()
