"""Application configuration."""
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TAG_BLACKLIST = "hydl-src-site:*,hydl-sub-id:*,hydl-import-time:*,tweet id:*"


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "Gallery Search API"

    # Database
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "gallery"
    SQL_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    # Pagination
    ITEMS_PER_PAGE: int = 48
    MAX_ITEMS_PER_PAGE: int = 100
    NOTES_PER_PAGE: int = 48
    MAX_PAGE: int = 10000

    # Tag vocabulary / wildcard resolution
    TAG_CACHE_TTL_SECONDS: int = 300
    TAG_CACHE_MAX_ENTRIES: int = 10000
    WILDCARD_TAG_LIMIT: int = 500
    WILDCARD_MAX_STARS: int = 8
    WILDCARD_MIN_LITERAL_CHARS: int = 2
    TAG_TOKEN_MAX_LENGTH: int = 200

    # Result caches
    MATCH_CACHE_TTL_SECONDS: int = 300
    MATCH_CACHE_MAX_ENTRIES: int = 500
    FACET_CACHE_TTL_SECONDS: int = 300
    FACET_CACHE_MAX_ENTRIES: int = 200

    # Recommendations
    RECOMMENDATION_LIMIT: int = 12
    RECOMMENDATION_MIN_SIMILARITY: float = 0.15
    RECOMMENDATION_TAG_POPULARITY_CEILING: int = 1000
    RECOMMENDATION_CACHE_TTL_SECONDS: int = 600
    RECOMMENDATION_CACHE_MAX_ENTRIES: int = 2000

    # Note search
    NOTE_SEARCH_MIN_QUERY_LENGTH: int = 2
    NOTE_SEARCH_BATCH_SIZE: int = 1000

    # Comma-separated tag patterns; `*` matches any run of characters
    TAG_BLACKLIST: str = DEFAULT_TAG_BLACKLIST
    HIDE_ITEMS_WITH_TAGS: str = ""

    # CORS
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    @property
    def DATABASE_URL(self) -> str:
        """Async PostgreSQL database URL for SQLAlchemy."""
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def SYNC_DATABASE_URL(self) -> str:
        """Sync PostgreSQL database URL for Alembic migrations."""
        return f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def tag_blacklist_patterns(self) -> list[str]:
        return split_patterns(self.TAG_BLACKLIST)

    @property
    def hidden_item_tag_patterns(self) -> list[str]:
        return split_patterns(self.HIDE_ITEMS_WITH_TAGS)


def split_patterns(raw: str) -> list[str]:
    """Split a comma-separated pattern list into normalized patterns."""
    return [p.strip().lower() for p in (raw or "").split(",") if p.strip()]


settings = Settings()
