"""Application configuration loaded from environment variables."""

import threading
from typing import Any, Literal

from pydantic import SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Allowed URL schemes for DATABASE_URL (module-level so validators can use it).
VALID_DATABASE_URL_PREFIXES = (
    "postgresql://",
    "postgresql+psycopg2://",
    "postgres://",
    "sqlite://",
    "sqlite+pysqlite://",
)

# PyJWT symmetric algorithms; the signing key is a shared secret.
HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")

JWT_SECRET_MIN_LEN = 32
PASSWORD_HASH_ITERATIONS_PROD_MIN = 600_000
PASSWORD_HASH_ITERATIONS_DEV_MIN = 10_000


class Settings(BaseSettings):
    """Validated application settings from env and optional .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    APP_ENV: Literal["dev", "prod"] = "dev"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/api"

    # Credential store
    DATABASE_URL: str
    # Insert missing default roles/scopes at start-up.
    SEED_REFERENCE_DATA: bool = True
    DB_RETRY_ATTEMPTS: int = 5
    DB_RETRY_MAX_DELAY_SEC: float = 30.0

    # JWT bearer tokens
    JWT_SECRET: SecretStr
    JWT_ALGORITHM: str = "HS256"
    JWT_ISSUER: str
    JWT_AUDIENCE: str
    JWT_EXPIRE_MINUTES: int = 20

    # PBKDF2 work factor for new hashes; stored hashes below this get flagged for rehash.
    PASSWORD_HASH_ITERATIONS: int = 600_000
    # Upgrade deprecated hashes during login. Off until product decides on synchronous rehash.
    REHASH_ON_LOGIN: bool = False

    # Admin account reconciled at start-up; both optional.
    ADMIN_USERNAME: str | None = None
    ADMIN_PASSWORD: SecretStr | None = None

    @field_validator("DATABASE_URL")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("DATABASE_URL must be set and non-empty")
        if not any(v.strip().startswith(prefix) for prefix in VALID_DATABASE_URL_PREFIXES):
            raise ValueError(
                "DATABASE_URL must be a PostgreSQL or SQLite URL (e.g. postgresql+psycopg2://)"
            )
        return v.strip()

    @field_validator("DB_RETRY_ATTEMPTS")
    @classmethod
    def validate_db_retry_attempts(cls, v: int) -> int:
        if v < 1 or v > 20:
            raise ValueError("DB_RETRY_ATTEMPTS must be between 1 and 20")
        return v

    @field_validator("DB_RETRY_MAX_DELAY_SEC")
    @classmethod
    def validate_db_retry_max_delay(cls, v: float) -> float:
        if v <= 0 or v > 300:
            raise ValueError(
                "DB_RETRY_MAX_DELAY_SEC must be greater than 0 and at most 300"
            )
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return level

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: SecretStr) -> SecretStr:
        secret = v.get_secret_value()
        if not secret or not secret.strip():
            raise ValueError("JWT_SECRET must be set and non-empty")
        if len(secret) < JWT_SECRET_MIN_LEN:
            raise ValueError(
                f"JWT_SECRET must be at least {JWT_SECRET_MIN_LEN} characters long"
            )
        return v

    @field_validator("JWT_ALGORITHM")
    @classmethod
    def validate_jwt_algorithm(cls, v: str) -> str:
        alg = v.strip().upper() if v else ""
        if alg not in HMAC_ALGORITHMS:
            raise ValueError("JWT_ALGORITHM must be one of HS256, HS384, HS512")
        return alg

    @field_validator("JWT_ISSUER", "JWT_AUDIENCE")
    @classmethod
    def validate_jwt_identifier(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("JWT_ISSUER and JWT_AUDIENCE must be set and non-empty")
        return v.strip()

    @field_validator("JWT_EXPIRE_MINUTES")
    @classmethod
    def validate_jwt_expire_minutes(cls, v: int) -> int:
        if v < 1 or v > 1440:
            raise ValueError(
                "JWT_EXPIRE_MINUTES must be between 1 and 1440 (1 min to 1 day)"
            )
        return v

    @field_validator("ADMIN_USERNAME")
    @classmethod
    def validate_admin_username(cls, v: str | None) -> str | None:
        if v is None or not v.strip():
            return None
        return v.strip()

    @model_validator(mode="after")
    def validate_password_hash_iterations(self) -> "Settings":
        minimum = (
            PASSWORD_HASH_ITERATIONS_PROD_MIN
            if self.APP_ENV == "prod"
            else PASSWORD_HASH_ITERATIONS_DEV_MIN
        )
        if self.PASSWORD_HASH_ITERATIONS < minimum:
            raise ValueError(
                f"PASSWORD_HASH_ITERATIONS must be at least {minimum} when APP_ENV={self.APP_ENV}"
            )
        return self


class SettingsProvider:
    """
    Read-through accessor over an immutable Settings snapshot.

    Readers always see a complete snapshot; reload() and replace() swap the
    reference under a lock so a reload never exposes a half-built config.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._current: Settings | None = None

    def get(self) -> Settings:
        current = self._current
        if current is None:
            with self._lock:
                if self._current is None:
                    self._current = Settings()
                current = self._current
        return current

    def reload(self) -> Settings:
        """Re-read env/.env and swap in the new snapshot. Raises ValidationError on bad config."""
        fresh = Settings()
        with self._lock:
            self._current = fresh
        return fresh

    def replace(self, **changes: Any) -> Settings:
        """Swap in a copy of the current snapshot with the given fields changed."""
        with self._lock:
            base = self._current if self._current is not None else Settings()
            self._current = base.model_copy(update=changes)
            return self._current


settings_provider = SettingsProvider()


def get_settings() -> Settings:
    """Return the current settings snapshot (safe to call from dependencies)."""
    return settings_provider.get()
