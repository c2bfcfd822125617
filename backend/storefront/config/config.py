"""Application settings loaded from environment for the storefront backend.

This module defines the :class:`Settings` model (based on Pydantic's
``BaseSettings``) and instantiates ``settings`` which is imported across
the application to access configuration values.

Notable fields include the database connection URL, the two JWT signing
secrets, lockout and rate-limit thresholds and the Google sign-in
allow-list.
"""

from pathlib import Path

from pydantic_settings import BaseSettings

BACKEND_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BACKEND_DIR / ".env"


class Settings(BaseSettings):
    """Environment-backed application settings.

    Attributes:
        APP_ENV: ``development`` or ``production``.
        APP_VERSION: Version string reported by the health endpoint.
        DATABASE_URL_ASYNC: Async database URL for SQLAlchemy.
        DATABASE_ECHO: Echo SQL statements to the log.
        CORS_ORIGINS: Comma-separated list of allowed browser origins.

        JWT_ACCESS_SECRET: Signing secret for access tokens.
        JWT_REFRESH_SECRET: Signing secret for refresh tokens.
        JWT_ACCESS_ALGORITHM: Access token signing algorithm.
        JWT_REFRESH_ALGORITHM: Refresh token signing algorithm.
        ACCESS_TOKEN_EXPIRE_HOURS: Access token lifetime in hours.
        REFRESH_TOKEN_EXPIRE_DAYS: Refresh token lifetime in days.
        REFRESH_COOKIE_NAME: Name of the httpOnly refresh token cookie.

        PASSWORD_BCRYPT_ROUNDS: bcrypt work factor.
        LOGIN_MAX_ATTEMPTS: Consecutive failures before an account locks.
        LOGIN_LOCK_MINUTES: Lock duration in minutes.

        RATE_LIMIT_WINDOW_MINUTES: Per-address window length.
        RATE_LIMIT_MAX_REQUESTS: Requests allowed per window.
        RATE_LIMIT_REDIS_URL: Optional Redis URL for shared counters.

        AUDIT_LOG_RETENTION_DAYS: Audit record lifetime.
        AUDIT_PURGE_INTERVAL_MINUTES: Cadence of the expiry sweep.

        GOOGLE_CLIENT_ID: Expected audience of Google ID tokens.
        GOOGLE_TOKENINFO_URL: Google token verification endpoint.
        ALLOWED_ADMIN_EMAILS: Comma-separated OAuth sign-in allow-list.
    """

    APP_ENV: str = "development"
    APP_VERSION: str = "1.0.0"

    DATABASE_URL_ASYNC: str
    DATABASE_ECHO: bool = False

    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    JWT_ACCESS_SECRET: str
    JWT_REFRESH_SECRET: str
    JWT_ACCESS_ALGORITHM: str = "HS256"
    JWT_REFRESH_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_HOURS: int = 24
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    REFRESH_COOKIE_NAME: str = "refreshToken"

    PASSWORD_BCRYPT_ROUNDS: int = 10
    LOGIN_MAX_ATTEMPTS: int = 5
    LOGIN_LOCK_MINUTES: int = 15

    RATE_LIMIT_WINDOW_MINUTES: int = 15
    RATE_LIMIT_MAX_REQUESTS: int = 10
    RATE_LIMIT_REDIS_URL: str | None = None

    AUDIT_LOG_RETENTION_DAYS: int = 90
    AUDIT_PURGE_INTERVAL_MINUTES: int = 60

    GOOGLE_CLIENT_ID: str = ""
    GOOGLE_TOKENINFO_URL: str = "https://oauth2.googleapis.com/tokeninfo"
    ALLOWED_ADMIN_EMAILS: str = ""

    class Config:
        env_file = str(ENV_FILE)
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def allowed_admin_emails(self) -> set[str]:
        """Lower-cased allow-list used for OAuth-first account creation."""
        return {
            e.strip().lower() for e in self.ALLOWED_ADMIN_EMAILS.split(",") if e.strip()
        }


settings = Settings()
