# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Environment-driven settings for the school records core.

Every group of options is its own BaseSettings class with an env prefix
(DB_, JWT_, SEQUENCE_, CORS_). Settings aggregates them and is cached by
get_settings(); tests call clear_settings_cache() after changing the
environment.

Example:
    >>> settings = get_settings()
    >>> settings.database.isolation_level
    'SERIALIZABLE'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

IsolationLevel = Literal["SERIALIZABLE", "REPEATABLE READ", "READ COMMITTED"]

DEFAULT_JWT_SECRET = "change-this-in-production"


class DatabaseSettings(BaseSettings):
    """Shared records database.

    All schools live in one database and are separated by the school_id
    column of each row. DB_URL, when set, wins over the individual parts.

    Attributes:
        isolation_level: Level used by every write transaction.
        max_transaction_attempts: Attempts before a serialization failure
            surfaces as TransientStoreError.
        retry_backoff_seconds: Base delay; attempt n waits n times this.
        migrate_on_startup: Apply pending migrations when the API starts.
    """

    model_config = SettingsConfigDict(env_prefix="DB_", extra="ignore")

    url_override: str | None = Field(default=None, alias="DB_URL")
    user: str = "records"
    password: SecretStr = SecretStr("records_password")
    host: str = "localhost"
    port: int = 5432
    name: str = "school_records"

    pool_size: int = Field(default=10, ge=1)
    max_overflow: int = Field(default=20, ge=0)

    isolation_level: IsolationLevel = "SERIALIZABLE"
    max_transaction_attempts: int = Field(default=3, ge=1)
    retry_backoff_seconds: float = Field(default=0.05, ge=0)
    migrate_on_startup: bool = False

    @property
    def url(self) -> str:
        """asyncpg URL of the records database."""
        if self.url_override:
            return self.url_override
        return (
            f"postgresql+asyncpg://{self.user}:{self.password.get_secret_value()}"
            f"@{self.host}:{self.port}/{self.name}"
        )


class JWTSettings(BaseSettings):
    """Verification of access tokens issued by the identity service.

    Attributes:
        issuer: Expected iss claim; not checked when unset.
        audience: Expected aud claim; not checked when unset.
        leeway_seconds: Clock skew tolerated on exp and iat.
    """

    model_config = SettingsConfigDict(env_prefix="JWT_", extra="ignore")

    secret_key: SecretStr = SecretStr(DEFAULT_JWT_SECRET)
    algorithm: str = "HS256"
    issuer: str | None = None
    audience: str | None = None
    leeway_seconds: int = Field(default=30, ge=0)


class SequenceSettings(BaseSettings):
    """Sequence registry limits and keying.

    Attributes:
        max_batch_size: Largest count accepted by batch().
        tenant_code_length: Leading characters of the school id folded into
            identifiers of kinds that include the tenant.
        tenant_scoped_kinds: Comma separated kinds that get one counter per
            school instead of one shared counter.
    """

    model_config = SettingsConfigDict(env_prefix="SEQUENCE_", extra="ignore")

    max_batch_size: int = Field(default=1000, ge=1)
    tenant_code_length: int = Field(default=6, ge=1)
    tenant_scoped_kinds: str = ""

    @property
    def tenant_scoped_kinds_list(self) -> list[str]:
        """SEQUENCE_TENANT_SCOPED_KINDS as upper-cased kind names, blanks dropped."""
        return [k.strip().upper() for k in self.tenant_scoped_kinds.split(",") if k.strip()]


class CORSSettings(BaseSettings):
    """Browser origins allowed to call the API."""

    model_config = SettingsConfigDict(env_prefix="CORS_", extra="ignore")

    origins: str = "http://localhost:3000"
    allow_credentials: bool = True
    allow_methods: list[str] = ["GET", "POST", "PATCH"]
    allow_headers: list[str] = ["Authorization", "Content-Type", "X-Request-ID"]

    @property
    def origins_list(self) -> list[str]:
        """Comma separated CORS_ORIGINS as a list, blanks dropped."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class Settings(BaseSettings):
    """All settings of the records core."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    sequence: SequenceSettings = Field(default_factory=SequenceSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @model_validator(mode="after")
    def reject_insecure_production(self) -> Self:
        """Refuse to start production with the placeholder JWT secret.

        Raises:
            ValueError: If JWT_SECRET_KEY was left at its default.
        """
        if self.is_production and self.jwt.secret_key.get_secret_value() == DEFAULT_JWT_SECRET:
            raise ValueError("JWT_SECRET_KEY must be set in production")
        return self

    @property
    def is_development(self) -> bool:
        """True in the development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """True in the production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings singleton, read from the environment on first call."""
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
