"""
Configuration settings for the application
"""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Normalized plan tiers
PLAN_FREE = "free"
PLAN_BRONZE = "bronze"
PLAN_SILVER = "silver"
PLAN_GOLD = "gold"
PLAN_TIERS = (PLAN_FREE, PLAN_BRONZE, PLAN_SILVER, PLAN_GOLD)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Razorpay gateway configuration
    razorpay_key_id: Optional[str] = Field(default=None, alias="RAZORPAY_KEY_ID")
    razorpay_key_secret: Optional[str] = Field(default=None, alias="RAZORPAY_KEY_SECRET")
    razorpay_api_url: str = Field(default="https://api.razorpay.com/v1", alias="RAZORPAY_API_URL")
    payment_currency: str = Field(default="INR", alias="PAYMENT_CURRENCY")
    gateway_timeout_seconds: float = Field(default=10.0, alias="GATEWAY_TIMEOUT_SECONDS")

    # SMTP receipts
    smtp_host: Optional[str] = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: Optional[str] = Field(default=None, alias="SMTP_USER")
    smtp_pass: Optional[str] = Field(default=None, alias="SMTP_PASS")
    smtp_secure: bool = Field(default=False, alias="SMTP_SECURE")
    from_email: Optional[str] = Field(default=None, alias="FROM_EMAIL")
    mail_timeout_seconds: float = Field(default=20.0, alias="MAIL_TIMEOUT_SECONDS")

    # Best-effort enrichment collaborators
    geoip_url: str = Field(default="http://ip-api.com/json", alias="GEOIP_URL")
    translate_url: str = Field(default="https://libretranslate.de/translate", alias="TRANSLATE_URL")
    translate_key: Optional[str] = Field(default=None, alias="TRANSLATE_KEY")
    enrichment_timeout_seconds: float = Field(default=5.0, alias="ENRICHMENT_TIMEOUT_SECONDS")

    # Quota and moderation
    dislike_threshold: int = Field(default=2, alias="DISLIKE_THRESHOLD")
    free_daily_download_limit: int = Field(default=1, alias="FREE_DAILY_DOWNLOAD_LIMIT")
    free_watch_duration_seconds: int = Field(default=300, alias="FREE_WATCH_DURATION_SECONDS")

    # Infrastructure configuration
    database_url: Optional[str] = Field(default="sqlite+aiosqlite:///./sql_app.db", alias="DATABASE_URL")

    # Frontend configuration
    frontend_url: Optional[str] = Field(default="http://localhost:3000", alias="FRONTEND_URL")

    # Render.com deployment configuration
    render: Optional[str] = Field(default=None, alias="RENDER")

    # Environment configuration
    env: Optional[str] = Field(default=None, alias="ENV")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,  # Allow both field name and alias
        extra="ignore",
    )


# Instantiate settings object
settings = Settings()

# Determine if we're in production mode
IS_PRODUCTION = bool(settings.render) or bool(settings.env and settings.env.lower() == "production")
