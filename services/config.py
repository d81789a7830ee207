from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from pydantic import Field, model_validator
from urllib.parse import quote_plus
import re
from typing import Literal


class Settings(BaseSettings):
    """
    Settings class that pulls from environment variables first,
    then from .env.query-runtime file, and falls back to defaults.

    A single instance is built at the application root and handed to each
    component's constructor.
    """
    # Audit/metadata store (translation logs + blocklist)
    audit_db_url: str = Field(
        "sqlite+aiosqlite:///./query_runtime.db",
        validation_alias="AUDIT_DB_URL"
    )

    # Live data store
    live_db_type: Literal["mysql", "postgresql"] = Field("mysql", validation_alias="LIVE_DB_TYPE")
    live_db_host: str = Field("localhost", validation_alias="LIVE_DB_HOST")
    live_db_port: int = Field(3306, validation_alias="LIVE_DB_PORT")
    live_db_name: str = Field("", validation_alias="LIVE_DB_NAME")
    live_db_user: str = Field("", validation_alias="LIVE_DB_USER")
    live_db_password: str = Field("", validation_alias="LIVE_DB_PASSWORD")
    live_db_pool_size: int = Field(5, validation_alias="LIVE_DB_POOL_SIZE")

    max_query_results: int = Field(1000, validation_alias="MAX_QUERY_RESULTS")
    query_timeout_seconds: int = Field(30, validation_alias="QUERY_TIMEOUT_SECONDS")

    # Translation model
    llm_provider: Literal["openai", "anthropic", "openrouter"] = Field("openai", validation_alias="LLM_PROVIDER")
    llm_model: str = Field("gpt-4o", validation_alias="LLM_MODEL")
    llm_temperature: float = Field(0.0, validation_alias="LLM_TEMPERATURE")
    openai_api_key: str = Field("", validation_alias="OPENAI_API_KEY")
    anthropic_api_key: str = Field("", validation_alias="ANTHROPIC_API_KEY")
    openrouter_api_key: str = Field("", validation_alias="OPENROUTER_API_KEY")

    translation_cache_enabled: bool = Field(True, validation_alias="TRANSLATION_CACHE_ENABLED")

    # Service
    port: int = Field(8000, validation_alias="PORT")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    # Auth
    jwt_secret: str = Field("secret", validation_alias="JWT_SECRET")
    jwt_algorithm: str = Field("HS256", validation_alias="JWT_ALGORITHM")

    @model_validator(mode="after")
    def process_configs(self) -> 'Settings':
        # Force async drivers (required for SQLAlchemy create_async_engine)
        if self.audit_db_url.startswith("postgresql://"):
            self.audit_db_url = self.audit_db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif self.audit_db_url.startswith("sqlite://"):
            self.audit_db_url = self.audit_db_url.replace("sqlite://", "sqlite+aiosqlite://", 1)

        self.audit_db_url = self._encode_url_password(self.audit_db_url)
        return self

    def _encode_url_password(self, url: str) -> str:
        """Encodes the password part of a database URL if it contains special characters."""
        if not url or "://" not in url or "@" not in url:
            return url

        scheme, rest = url.split("://", 1)
        auth, host_path = rest.rsplit("@", 1)

        if ":" in auth:
            user, password = auth.split(":", 1)
            # Only encode if it contains characters that need encoding and isn't already encoded
            if any(c in password for c in "+=@/:?#[] %"):
                if not re.search(r'%[0-9a-fA-F]{2}', password):
                    return f"{scheme}://{user}:{quote_plus(password)}@{host_path}"
        return url

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.query-runtime"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
