from pydantic import AnyHttpUrl, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Literal

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    SERVICE_PORT: int = 8080
    MAX_REQUEST_SIZE: int = 1_048_576
    LOG_JSON: bool = True
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    # Token encryption; unset means an ephemeral per-process secret
    TOKEN_SECRET: SecretStr | None = None
    TOKEN_TTL_DAYS: float = Field(default=30, ge=0)  # 0 = tokens never expire
    # Upstream agent API
    AGENT_API_KEY: SecretStr | None = None  # single-tenant default credential
    AGENT_API_URL: AnyHttpUrl = "https://api.cursor.com"
    AGENT_API_TIMEOUT: float = 30.0
    UPSTREAM_DEBUG: bool = False
    # Direct-key shape and delegated bearer detection
    API_KEY_PREFIX: str = "key_"
    API_KEY_MIN_LENGTH: int = 20
    DELEGATED_TOKEN_MARKER: str = "oauth"

    @property
    def token_ttl_seconds(self) -> int | None:
        if not self.TOKEN_TTL_DAYS:
            return None
        return int(self.TOKEN_TTL_DAYS * 24 * 60 * 60)

    @property
    def default_api_key(self) -> str | None:
        if self.AGENT_API_KEY is None:
            return None
        return self.AGENT_API_KEY.get_secret_value() or None

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
