import logging

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from errors import ConfigurationError

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Required - set via environment variables
    channel_id: str
    api_key: str

    # Cache settings
    cache_ttl: int = Field(default=300, gt=0)  # 5 minutes

    # Server settings
    host: str = "0.0.0.0"
    port: int = 3000
    shutdown_grace_seconds: float = Field(default=10.0, gt=0)

    # Upstream settings
    youtube_search_url: str = "https://www.googleapis.com/youtube/v3/search"
    upstream_timeout_seconds: float = 10.0
    max_retries: int = Field(default=3, ge=0)
    retry_backoff_seconds: float = Field(default=0.0, ge=0)  # 0 = retry immediately

    # Deployment
    cors_origins: str = "*"  # Comma-separated
    environment: str = "local"
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"
        frozen = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment, logging every missing or invalid value.

    Raises ConfigurationError instead of starting with a partial configuration.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        for error in e.errors():
            name = ".".join(str(part) for part in error["loc"]).upper()
            if error["type"] == "missing":
                logger.error("Missing required environment variable: %s", name)
            else:
                logger.error("Invalid value for %s: %s", name, error["msg"])
        raise ConfigurationError(f"{e.error_count()} configuration error(s)") from e
