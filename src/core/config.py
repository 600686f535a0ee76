"""Application configuration using pydantic-settings."""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")

    # Auth - an empty secret is a deployment error, reported as a 500 by the gate
    jwt_secret: str = Field(default="", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    access_token_expire_days: int = Field(default=7, validation_alias="ACCESS_TOKEN_EXPIRE_DAYS")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    # Metadata enrichment
    metadata_fetch_timeout: float = Field(default=10.0, validation_alias="METADATA_FETCH_TIMEOUT")
    metadata_fetch_retries: int = Field(default=2, validation_alias="METADATA_FETCH_RETRIES")

    # Field length limits
    max_title_length: int = Field(default=200, validation_alias="MAX_TITLE_LENGTH")
    max_description_length: int = Field(
        default=500, validation_alias="MAX_DESCRIPTION_LENGTH",
    )

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def is_sqlite(self) -> bool:
        """True when the configured database is SQLite (local runs and tests)."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
