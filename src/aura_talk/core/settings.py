"""Application settings and configuration.

This module defines all configuration options for the Aura Talk service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Aura Talk", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./aura_talk.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    # Sensitive operations (email change) need a token younger than this
    recent_login_seconds: int = Field(default=300, alias="RECENT_LOGIN_SECONDS")

    # Google sign-in
    google_client_id: str | None = Field(default=None, alias="GOOGLE_CLIENT_ID")
    google_tokeninfo_url: str = Field(
        default="https://oauth2.googleapis.com/tokeninfo",
        alias="GOOGLE_TOKENINFO_URL",
    )

    # Messaging
    world_channel_id: str = Field(default="world", alias="WORLD_CHANNEL_ID")
    message_window_size: int = Field(default=50, alias="MESSAGE_WINDOW_SIZE")
    max_message_length: int = Field(default=4000, alias="MAX_MESSAGE_LENGTH")
    max_emoji_length: int = Field(default=16, alias="MAX_EMOJI_LENGTH")

    # AI contact suggestion service
    suggestion_service_url: str | None = Field(default=None, alias="SUGGESTION_SERVICE_URL")
    suggestion_service_token: str | None = Field(
        default=None,
        alias="SUGGESTION_SERVICE_TOKEN",
    )
    suggestion_timeout_seconds: float = Field(
        default=15.0,
        alias="SUGGESTION_TIMEOUT_SECONDS",
    )

    # Avatar blob storage
    avatar_storage_dir: str = Field(default="./var/avatars", alias="AVATAR_STORAGE_DIR")
    avatar_base_url: str = Field(default="/media/avatars", alias="AVATAR_BASE_URL")
    avatar_max_bytes: int = Field(default=5 * 1024 * 1024, alias="AVATAR_MAX_BYTES")
    avatar_chunk_size: int = Field(default=64 * 1024, alias="AVATAR_CHUNK_SIZE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
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
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url


settings = Settings()  # type: ignore[call-arg]
