from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    # Database
    DB_USER: str = Field("buildxpert")
    DB_PASSWORD: str = Field("buildxpert")
    DB_NAME: str = Field("buildxpert")
    DB_HOST: str = Field("postgres")
    DB_PORT: int = Field(5432)
    # Full URL override (tests point this at SQLite)
    DATABASE_URL: Optional[str] = Field(None)
    # Also create the read-only marketplace mirrors on startup (local runs, tests)
    DB_CREATE_MIRROR_TABLES: bool = Field(False)

    # Redis
    REDIS_HOST: str = Field("redis")
    REDIS_PORT: int = Field(6379)
    REDIS_PASSWORD: str | None = Field(None)

    # App
    API_HOST: str = Field("0.0.0.0")
    API_PORT: int = Field(5000)
    DEBUG: bool = Field(False)
    JWT_SECRET_KEY: str = Field("supersecret")
    JWT_ALGORITHM: str = Field("HS256")
    WS_AUTH_REQUIRED: bool = Field(True)

    # Call signaling
    CALL_RING_TIMEOUT_SEC: float = Field(30.0)
    CALL_SESSION_MAX_AGE_SEC: float = Field(24 * 60 * 60)
    ENDED_SESSION_RETENTION_SEC: float = Field(60.0)
    SESSION_SWEEP_INTERVAL_SEC: float = Field(60.0)
    CALL_DELIVERY_POLICY: Literal["broadcast", "most_recent"] = Field("broadcast")

    # Metrics
    METRICS_ENABLED: bool = Field(False)
    METRICS_PORT: int = Field(8001)

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_file_encoding="utf-8"
    )

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


settings = Settings()
