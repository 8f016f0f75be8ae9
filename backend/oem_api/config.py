# backend/oem_api/config.py
"""
Application configuration.

Settings are read from the process environment (and an optional .env file)
and validated once at startup. Missing or mistyped required values abort
startup with a ConfigError that names every offending field; optional
integrations (Sentry, Redis cache) are simply disabled when unset.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Literal, Optional

from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10 MB request bodies

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


class ConfigError(RuntimeError):
    """Raised when the environment cannot produce a valid Settings object."""


def parse_duration(value: str) -> timedelta:
    """Parse "7d", "12h", "30m", "45s" or plain seconds into a timedelta."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = match.groups()
    seconds = int(amount) * _DURATION_UNITS[unit]
    if seconds <= 0:
        raise ValueError("duration must be positive")
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    """Typed view of the process environment."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_ENV: Literal["development", "production", "test"] = "development"
    PORT: int = 3000
    APP_VERSION: str = "2.0.0"

    # Database (SQLAlchemy URL) and hosted project keys
    DATABASE_URL: str
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str
    SUPABASE_SERVICE_ROLE_KEY: str

    # Self-issued tokens
    JWT_SECRET: str
    JWT_EXPIRES_IN: str = "7d"

    # Razorpay
    RAZORPAY_KEY_ID: str
    RAZORPAY_KEY_SECRET: str
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"

    # Twilio WhatsApp
    TWILIO_ACCOUNT_SID: str
    TWILIO_AUTH_TOKEN: str
    TWILIO_WHATSAPP_NUMBER: str = "whatsapp:+14155238886"
    TWILIO_API_URL: str = "https://api.twilio.com/2010-04-01"

    # Error tracking (optional)
    SENTRY_DSN: Optional[str] = None

    # CORS
    CORS_ORIGIN: str = "http://localhost:8080"
    FRONTEND_URL: str = "http://localhost:8080"

    # Rate limiting (general API class)
    RATE_LIMIT_WINDOW_MS: int = 900_000
    RATE_LIMIT_MAX_REQUESTS: int = 100

    # Redis cache (optional)
    UPSTASH_REDIS_URL: Optional[str] = None
    UPSTASH_REDIS_TOKEN: Optional[str] = None

    # Logging
    LOG_LEVEL: Optional[str] = None
    LOG_DIR: str = "logs"
    LOG_FILES_ENABLED: bool = True

    # Outbound HTTP timeout for provider calls (seconds)
    PROVIDER_TIMEOUT_SECONDS: float = 10.0

    @field_validator(
        "DATABASE_URL",
        "SUPABASE_URL",
        "SUPABASE_ANON_KEY",
        "SUPABASE_SERVICE_ROLE_KEY",
        "JWT_SECRET",
        "RAZORPAY_KEY_ID",
        "RAZORPAY_KEY_SECRET",
        "TWILIO_ACCOUNT_SID",
        "TWILIO_AUTH_TOKEN",
    )
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be blank")
        return value.strip()

    @field_validator("JWT_EXPIRES_IN")
    @classmethod
    def _valid_duration(cls, value: str) -> str:
        parse_duration(value)
        return value

    @field_validator("RATE_LIMIT_WINDOW_MS", "RATE_LIMIT_MAX_REQUESTS", "PORT")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("SENTRY_DSN", "UPSTASH_REDIS_URL", "UPSTASH_REDIS_TOKEN", mode="before")
    @classmethod
    def _blank_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def jwt_expires_delta(self) -> timedelta:
        return parse_duration(self.JWT_EXPIRES_IN)

    @property
    def cache_enabled(self) -> bool:
        return bool(self.UPSTASH_REDIS_URL and self.UPSTASH_REDIS_TOKEN)

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "DEBUG" if self.is_development else "INFO"

    @property
    def sqlalchemy_database_uri(self) -> str:
        """Route plain postgres URLs to the psycopg (v3) driver."""
        url = self.DATABASE_URL
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+psycopg://" + url[len(prefix):]
        return url

    def flask_config(self) -> dict:
        """Mapping loaded into app.config by the application factory."""
        return {
            "SECRET_KEY": self.JWT_SECRET,
            "SQLALCHEMY_DATABASE_URI": self.sqlalchemy_database_uri,
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "MAX_CONTENT_LENGTH": MAX_CONTENT_LENGTH,
            "TESTING": self.APP_ENV == "test",
            "SETTINGS": self,
        }


def load_settings(**overrides) -> Settings:
    """
    Build Settings from the environment, failing fast on any problem.

    Keyword overrides take precedence over environment values (used by tests
    and the CLI).
    """
    try:
        return Settings(**overrides)
    except PydanticValidationError as exc:
        problems = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err.get("loc", ())) or "settings"
            problems.append(f"{field}: {err.get('msg')}")
        raise ConfigError(f"Config validation error: {'; '.join(problems)}") from exc
