from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Ambulance Patient API"
    environment: str = "development"
    port: int = 8080
    base_path: str = "/api"
    mongodb_uri: str = ""
    mongodb_username: str = "root"
    mongodb_password: str = "example"  # pragma: allowlist secret
    mongodb_host: str = "mongo_db:27017"
    mongodb_database: str = "ambulance"
    mongodb_collection: str = "patients"
    mongodb_counters_collection: str = "counters"
    mongodb_timeout_ms: int = 10000
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000"]
    cors_origin_regex: str | None = r"http://localhost(:\d+)?"

    model_config = SettingsConfigDict(
        env_prefix="AMBULANCE_API_", env_file=".env", env_file_encoding="utf-8"
    )

    @field_validator("base_path")
    @classmethod
    def _normalize_base_path(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if value and not value.startswith("/"):
            value = f"/{value}"
        return value

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def resolved_mongodb_uri(self) -> str:
        """Return the configured URI, or one assembled from credential parts."""

        if self.mongodb_uri:
            return self.mongodb_uri
        return (
            f"mongodb://{self.mongodb_username}:{self.mongodb_password}"
            f"@{self.mongodb_host}"
        )

    @property
    def mongodb_timeout_seconds(self) -> float:
        return self.mongodb_timeout_ms / 1000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


settings = get_settings()
