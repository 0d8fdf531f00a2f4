from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # PostgreSQL
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "bm_user"
    postgres_password: str = "changeme"
    postgres_db: str = "brandmonitor"

    @property
    def postgres_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def postgres_url_sync(self) -> str:
        """For Alembic migrations (sync driver)."""
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Overrides postgres_url when set (e.g. sqlite+aiosqlite:///./local.db)
    database_url: str = ""

    @property
    def async_database_url(self) -> str:
        return self.database_url or self.postgres_url

    # Redis (Celery broker + result backend)
    redis_url: str = "redis://localhost:6379/0"

    # LLM provider keys. A provider without a key is reported as a configuration error
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    perplexity_api_key: str = ""

    # Default models
    openai_model: str = "gpt-4o"
    anthropic_model: str = "claude-sonnet-4-20250514"
    perplexity_model: str = "sonar"

    # Provider call parameters
    provider_timeout: float = 60.0
    provider_max_tokens: int = 800
    provider_temperature: float = 0.3

    # Measurement
    measurement_num_samples: int = 3
    measurement_sample_delay: float = 0.5  # seconds between samples of one prompt
    workspace_delay: float = 2.0  # seconds between workspaces in the daily run
    recent_results_window: int = 20  # results considered by the composite scorer
    embedding_enabled: bool = False  # use embedding cosine for alignment when an OpenAI key is present
    default_region: str = "United States"
    default_language: str = "English"

    # Shared secret for the cron-triggered daily run
    cron_secret: str = ""

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # CORS
    allowed_origins: str = "*"  # comma-separated, e.g. "https://app.example.com,https://admin.example.com"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if settings.app_env == "production":
        if not settings.cron_secret:
            errors.append("CRON_SECRET must be set in production")
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")

    if settings.measurement_num_samples < 1:
        errors.append("MEASUREMENT_NUM_SAMPLES must be at least 1")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
