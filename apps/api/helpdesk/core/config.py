"""Settings for the API, worker, and CLI (environment variables or .env)."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Every tunable of the service; one module-level instance below."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # "dev" enables docs, plain-HTTP cookies and skips Sentry
    ENV: str = "dev"

    # Release identifier reported by /health
    VERSION: str = "0.01.00"

    # PostgreSQL (psycopg) in production, sqlite:/// for local runs
    DATABASE_URL: str

    # Redis (cache + task queue). "memory://" keeps both in-process.
    REDIS_URL: str = "memory://"
    REDIS_MAX_CONNECTIONS: int = 20

    # Session cookie JWT; PREVIOUS keeps old cookies valid during a rotation
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""
    JWT_EXPIRES_HOURS: int = 8

    # Comma-separated browser origins
    CORS_ORIGINS: str = "http://localhost:3000"

    # Cache TTLs (seconds)
    CACHE_ENTITY_TTL_SECONDS: int = 300
    CACHE_LIST_TTL_SECONDS: int = 60

    # Task queue / batch worker
    TASK_QUEUE_KEY: str = "tasks:pending"
    BATCH_MAX_TASKS: int = 10
    WORKER_POLL_INTERVAL: int = 10
    INACTIVE_TICKET_DAYS: int = 7
    MAINTENANCE_ACTOR_ID: int | None = None  # Admin user that signs automated closures

    # Login attempts per client address per minute
    RATE_LIMIT_AUTH: int = 5

    # Sentry; empty disables it
    SENTRY_DSN: str = ""

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Accepted signing secrets, current first."""
        secrets = [self.JWT_SECRET]
        if self.JWT_SECRET_PREVIOUS:
            secrets.append(self.JWT_SECRET_PREVIOUS)
        return secrets

    @property
    def cookie_secure(self) -> bool:
        """Cookies are HTTPS-only outside dev."""
        return self.ENV != "dev"


settings = Settings()
