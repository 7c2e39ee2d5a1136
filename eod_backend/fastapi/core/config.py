from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "EOD Reporting API"
    APP_VERSION: str = "1.0.0"

    # Database URL (read from .env file)
    DATABASE_URL: str = ''

    # JWT Authentication settings
    JWT_SECRET_KEY: str = 'default-secret-key-change-in-production'
    JWT_ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60

    # Client URL for CORS and links in notification emails
    CLIENT_URL: str = 'http://localhost:3000'
    ADDITIONAL_CORS_ORIGINS: str = ''

    # Initial admin created on startup when the users table has no admin
    INITIAL_ADMIN_EMAIL: str = 'admin@example.com'
    INITIAL_ADMIN_PASSWORD: str = 'admin123456'

    # Reports of deleted users are handed over to this admin.
    # Empty means the earliest active admin/owner.
    REPORTS_FALLBACK_ADMIN_EMAIL: str = ''

    # Mailgun email delivery
    MAILGUN_API_KEY: str = ''
    MAILGUN_DOMAIN: str = ''
    MAILGUN_BASE_URL: str = 'https://api.eu.mailgun.net'
    MAIL_FROM_NAME: str = 'EOD Reporting'
    # Comma separated, always notified on report submission
    REPORT_NOTIFICATION_EMAILS: str = ''

    # Analytics cache lifetime in seconds
    ANALYTICS_CACHE_TTL_SECONDS: int = 300

    model_config = SettingsConfigDict(env_file=".env", extra='allow')

    @property
    def DB_URL(self):
        if self.ENV_MODE == "dev":
            return self.DEV_DB_URL
        else:
            if self.DATABASE_URL:
                return self.DATABASE_URL
            else:
                return '{}://{}:{}@{}:{}/{}'.format(
                    self.DB_ENGINE,
                    self.DB_USERNAME,
                    self.DB_PASS,
                    self.DB_HOST,
                    self.DB_PORT,
                    self.DB_NAME
                )

    @property
    def API_BASE_URL(self) -> str:
        if self.ENV_MODE == "dev":
            return 'http://localhost:8000/'
        return self.HOST_URL

    @property
    def mailgun_configured(self) -> bool:
        return bool(self.MAILGUN_API_KEY and self.MAILGUN_DOMAIN)

    @property
    def notification_emails(self) -> List[str]:
        return [
            email.strip().lower()
            for email in self.REPORT_NOTIFICATION_EMAILS.split(",")
            if email.strip()
        ]

    @property
    def cors_origins(self) -> List[str]:
        origins = [
            self.CLIENT_URL,
            "http://localhost:3000",
            "http://localhost:8000",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:8000",
        ]
        if self.API_BASE_URL and self.API_BASE_URL != self.CLIENT_URL:
            origins.append(self.API_BASE_URL)
        if self.ADDITIONAL_CORS_ORIGINS:
            origins.extend(origin.strip() for origin in self.ADDITIONAL_CORS_ORIGINS.split(","))
        # Remove empty strings and duplicates
        return sorted({origin for origin in origins if origin})

class DevSettings(Settings):
    # Environment mode: 'dev' or 'prod'
    ENV_MODE: str = 'dev'

    @property
    def DEV_DB_URL(self) -> str:
        # Use PostgreSQL in dev mode if DATABASE_URL is provided in .env
        # Otherwise fall back to SQLite
        return self.DATABASE_URL if self.DATABASE_URL else "sqlite:///./dev.db"

    model_config = SettingsConfigDict(env_file=".env", extra='allow')

class ProdSettings(Settings):
    # Environment mode: 'dev' or 'prod'
    ENV_MODE: str = 'prod'

    # Database settings for production
    DB_ENGINE: str = 'postgresql+psycopg'
    DB_USERNAME: str = ''
    DB_PASS: str = ''
    DB_HOST: str = ''
    DB_PORT: str = '5432'
    DB_NAME: str = ''

    HOST_URL: str = ''

    model_config = SettingsConfigDict(env_file=".env", extra='allow')

def get_settings(env_mode: str = "dev"):
    if env_mode == "dev":
        return DevSettings()
    return ProdSettings()
