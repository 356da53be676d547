"""Application settings and configuration.

This module defines all configuration options for the message retraction
service. Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Message Retraction", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./retraction.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Conversation addressing
    group_conversation_prefix: str = Field(
        default="event_",
        alias="GROUP_CONVERSATION_PREFIX",
    )

    # Effective-latest search bounds
    deletion_scan_page_size: int = Field(default=200, ge=1, alias="DELETION_SCAN_PAGE_SIZE")
    deletion_max_extra_pages: int = Field(default=5, ge=0, alias="DELETION_MAX_EXTRA_PAGES")

    # Batched writes (the store rejects batches above its hard cap)
    preview_batch_chunk_size: int = Field(default=400, ge=1, alias="PREVIEW_BATCH_CHUNK_SIZE")
    store_batch_max_operations: int = Field(
        default=500,
        ge=1,
        alias="STORE_BATCH_MAX_OPERATIONS",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _check_chunk_size(self) -> "Settings":
        if self.preview_batch_chunk_size > self.store_batch_max_operations:
            raise ValueError(
                "PREVIEW_BATCH_CHUNK_SIZE must not exceed STORE_BATCH_MAX_OPERATIONS"
            )
        return self

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.

        Returns:
            Database URL compatible with synchronous database drivers
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
