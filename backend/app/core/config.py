from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field
from typing import List, Any
import json
from pathlib import Path


def parse_cors_origins(v: Any) -> List[str]:
    """Parse CORS origins from string or list"""
    if isinstance(v, list):
        return v
    if isinstance(v, str):
        # Try JSON parsing first
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        # Fall back to comma-separated
        return [origin.strip() for origin in v.split(',') if origin.strip()]
    return []


class Settings(BaseSettings):
    """Application settings - all configurable via environment variables"""

    # ==========================================
    # Application
    # ==========================================
    APP_NAME: str = "Skilltori"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    SECRET_KEY: str
    API_VERSION: str = "v1"
    TESTING: bool = False

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # ==========================================
    # Database
    # ==========================================
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 minutes
    DB_ECHO: bool = False

    # ==========================================
    # Authentication
    # ==========================================
    JWT_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours
    BCRYPT_ROUNDS: int = 12  # 4 for tests, 12 for prod
    EMAIL_VERIFICATION_EXPIRE_HOURS: int = 48
    PASSWORD_RESET_EXPIRE_MINUTES: int = 60
    # Sign-in is refused until the email address is confirmed
    REQUIRE_EMAIL_VERIFICATION: bool = True

    # ==========================================
    # Site URL (used for gateway callbacks and email links)
    # ==========================================
    SITE_URL: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices("SITE_URL", "NEXT_PUBLIC_SITE_URL"),
    )
    # Public base URL of this API, used to build the bKash callback URL
    API_BASE_URL: str = "http://localhost:8000"

    # ==========================================
    # bKash Tokenized Checkout
    # ==========================================
    BKASH_BASE_URL: str = "https://tokenized.sandbox.bka.sh/v1.2.0-beta"
    BKASH_USERNAME: str = ""
    BKASH_PASSWORD: str = ""
    BKASH_APP_KEY: str = ""
    BKASH_APP_SECRET: str = ""
    BKASH_TIMEOUT_SECONDS: float = 30.0
    # Refresh the id token this many seconds before bKash expires it
    BKASH_TOKEN_EXPIRY_MARGIN_SECONDS: int = 300
    PAYMENT_CURRENCY: str = "BDT"
    # Shared secret for the scheduled token refresh endpoint
    CRON_SECRET: str = ""

    # ==========================================
    # Email
    # ==========================================
    SMTP_HOST: str = "smtp.stackmail.com"
    SMTP_PORT: int = 465
    SMTP_USER: str = "no-reply@skilltori.com"
    SMTP_PASS: str = Field(
        default="",
        validation_alias=AliasChoices("SMTP_PASS", "SMTP_PASSWORD"),
    )
    # Connect covers the server greeting; socket covers each command after it
    SMTP_CONNECTION_TIMEOUT: float = 60.0
    SMTP_SOCKET_TIMEOUT: float = 60.0
    EMAIL_FROM: str = "no-reply@skilltori.com"
    EMAIL_FROM_NAME: str = "Skilltori"
    EMAIL_REPLY_TO: str = "info@skilltori.com"
    # Minimum spacing between two outgoing messages, shared by the whole process
    EMAIL_MIN_INTERVAL_SECONDS: float = 60.0

    # Contact details rendered in email footers
    CONTACT_PHONE: str = "+88 01842-221872"
    CONTACT_EMAIL: str = "info@skilltori.com"
    CONTACT_ADDRESS: str = "Savar, Dhaka 1340, Bangladesh"

    # ==========================================
    # Profiles
    # ==========================================
    PHONE_COUNTRY_CODE: str = "+88"
    # Stored datetimes are naive UTC; emails and pages render them in this zone
    DISPLAY_TIMEZONE: str = "Asia/Dhaka"

    # ==========================================
    # CORS (stored as comma-separated string, parsed to list)
    # ==========================================
    CORS_ORIGINS_STR: str = "http://localhost:3000,http://127.0.0.1:3000"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return parse_cors_origins(self.CORS_ORIGINS_STR)

    # ==========================================
    # Rate Limiting
    # ==========================================
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_MINUTE: int = 60
    RATE_LIMIT_PER_HOUR: int = 1000
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # ==========================================
    # Logging
    # ==========================================
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/app.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields in .env that aren't defined in Settings

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        if self.LOG_FILE:
            Path(self.LOG_FILE).parent.mkdir(exist_ok=True, parents=True)

    # ==========================================
    # Helper Methods
    # ==========================================
    def is_dev_mode(self) -> bool:
        """Check if running in development mode"""
        return self.ENVIRONMENT == "development" or self.DEBUG

    def is_bkash_configured(self) -> bool:
        return all([
            self.BKASH_USERNAME,
            self.BKASH_PASSWORD,
            self.BKASH_APP_KEY,
            self.BKASH_APP_SECRET,
        ])

    def get_bkash_callback_url(self) -> str:
        """URL bKash redirects the payer back to after checkout"""
        return f"{self.API_BASE_URL.rstrip('/')}/api/{self.API_VERSION}/bkash/callback"

    def get_site_url(self, path: str = "") -> str:
        return f"{self.SITE_URL.rstrip('/')}{path}"


# Create settings instance
settings = Settings()
