"""Runtime settings for the catalog search layer."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SERVICE_NAME: str = "game-catalog-search"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Elasticsearch connection
    ELASTICSEARCH_URL: str = "http://localhost:9200"
    ELASTICSEARCH_CLOUD_ID: Optional[str] = None
    ELASTICSEARCH_API_KEY: Optional[str] = None
    ELASTICSEARCH_USERNAME: Optional[str] = None
    ELASTICSEARCH_PASSWORD: Optional[str] = None

    SEARCH_BACKEND: str = "elasticsearch"  # elasticsearch|memory
    SEARCH_INDEX_NAME: str = "games"
    SEARCH_INDEX_PREFIX: str = ""
    SEARCH_INDEX_SHARDS: int = 1
    SEARCH_INDEX_REPLICAS: int = 1

    # Per-call timeout; a timeout is handled like any other backend failure
    SEARCH_TIMEOUT_SECONDS: float = 10.0
    # Raise write/query failures instead of degrading to empty results
    SEARCH_STRICT_MODE: bool = False
    # Wait for each document write to become searchable
    SEARCH_REFRESH_ON_WRITE: bool = False
    # Optional upper bound on page_size; unset means no cap
    SEARCH_MAX_PAGE_SIZE: Optional[int] = None
    AGGREGATION_MAX_BUCKETS: int = 50

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


_settings_cache: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings_cache
    if _settings_cache is None:
        _settings_cache = Settings()
    return _settings_cache


def reset_settings() -> None:
    """Drop the cached settings so the next call re-reads the environment."""
    global _settings_cache
    _settings_cache = None
