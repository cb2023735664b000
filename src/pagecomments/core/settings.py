"""Application settings and configuration.

This module defines all process-level configuration for the comment service.
Settings are loaded from environment variables with sensible defaults.
Admin-mutable runtime policy (moderation, notifications, admin email) lives in
the ``settings`` table instead; see :mod:`pagecomments.services.site_config`.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Page Comments", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./comments.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(
        default="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        alias="LOG_FORMAT",
    )

    # Public URLs used when building links inside notification emails
    public_base_url: str = Field(default="http://localhost:8000", alias="PUBLIC_BASE_URL")
    unsubscribe_path: str = Field(default="/unsubscribe", alias="UNSUBSCRIBE_PATH")
    admin_page_path: str = Field(default="/comments/admin.html", alias="ADMIN_PAGE_PATH")

    # Admin session and CSRF cookies
    admin_cookie_name: str = Field(default="comment_admin_token", alias="ADMIN_COOKIE_NAME")
    csrf_cookie_name: str = Field(default="csrf_token", alias="CSRF_COOKIE_NAME")
    cookie_path: str = Field(default="/", alias="COOKIE_PATH")
    cookie_secure: bool = Field(default=True, alias="COOKIE_SECURE")
    session_lifetime_seconds: int = Field(default=3600 * 24 * 30, alias="SESSION_LIFETIME_SECONDS")

    # Login throttling
    login_max_failures: int = Field(default=5, alias="LOGIN_MAX_FAILURES")
    login_window_seconds: int = Field(default=3600, alias="LOGIN_WINDOW_SECONDS")
    login_attempt_retention_days: int = Field(default=7, alias="LOGIN_ATTEMPT_RETENTION_DAYS")

    # Comment admission
    comment_ip_limit: int = Field(default=5, alias="COMMENT_IP_LIMIT")
    comment_ip_window_seconds: int = Field(default=3600, alias="COMMENT_IP_WINDOW_SECONDS")
    comment_email_limit: int = Field(default=3, alias="COMMENT_EMAIL_LIMIT")
    comment_email_window_seconds: int = Field(default=600, alias="COMMENT_EMAIL_WINDOW_SECONDS")
    max_comment_length: int = Field(default=5000, alias="MAX_COMMENT_LENGTH")
    spam_threshold: int = Field(default=4, alias="SPAM_THRESHOLD")

    # Probability that an ordinary request also prunes expired sessions and
    # old login attempts. 0 disables it (use the scheduled maintenance task).
    maintenance_sample_rate: float = Field(default=0.05, alias="MAINTENANCE_SAMPLE_RATE")

    # Outbound mail
    smtp_host: str = Field(default="localhost", alias="SMTP_HOST")
    smtp_port: int = Field(default=25, alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, alias="SMTP_USERNAME")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_starttls: bool = Field(default=False, alias="SMTP_STARTTLS")
    smtp_timeout_seconds: float = Field(default=10.0, alias="SMTP_TIMEOUT_SECONDS")
    mail_from: str = Field(default="noreply@localhost", alias="MAIL_FROM")

    # Email queue worker
    email_queue_batch_size: int = Field(default=10, alias="EMAIL_QUEUE_BATCH_SIZE")
    email_queue_max_attempts: int = Field(default=3, alias="EMAIL_QUEUE_MAX_ATTEMPTS")
    email_queue_retry_delay_seconds: int = Field(
        default=300, alias="EMAIL_QUEUE_RETRY_DELAY_SECONDS"
    )
    email_queue_idle_seconds: float = Field(default=10.0, alias="EMAIL_QUEUE_IDLE_SECONDS")
    email_queue_claim_seconds: int = Field(default=120, alias="EMAIL_QUEUE_CLAIM_SECONDS")
    email_queue_sent_retention_days: int = Field(
        default=30, alias="EMAIL_QUEUE_SENT_RETENTION_DAYS"
    )
    email_queue_failed_retention_days: int = Field(
        default=7, alias="EMAIL_QUEUE_FAILED_RETENTION_DAYS"
    )
    # Number of idle cycles between cleanup passes in daemon mode.
    email_queue_cleanup_every: int = Field(default=360, alias="EMAIL_QUEUE_CLEANUP_EVERY")
    email_worker_enabled: bool = Field(default=False, alias="EMAIL_WORKER_ENABLED")

    # CORS configuration for embedding sites
    cors_origins: list[str] = Field(
        default=["http://localhost:1313"],
        alias="CORS_ORIGINS",
    )
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["Content-Type", "Authorization", "X-CSRF-Token"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return the database URL Alembic should connect to."""
        return self.effective_database_url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    def public_url(self, path: str) -> str:
        """Join ``path`` onto the configured public base URL."""
        return self.public_base_url.rstrip("/") + "/" + path.lstrip("/")


settings = Settings()
