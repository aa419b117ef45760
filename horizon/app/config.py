"""
app/config.py - Application configuration and Firebase initialization.

This module defines a Pydantic BaseSettings class to load configuration from environment,
and initializes the Firebase Admin SDK (Firestore client) on first use.
All other modules can import from config to access `settings`; Firestore access goes
through `get_db()` so that importing the app never requires live credentials.
"""
from functools import lru_cache
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True
    )

    project_name: str = "Horizon Unit"
    debug: bool = Field(False, alias="DEBUG")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    allowed_origins: str = Field("*", alias="ALLOWED_ORIGINS")  # Comma-separated list or '*' for all

    firebase_cred_file: str = Field("firebase_service_account.json", alias="FIREBASE_CRED_FILE")
    firebase_project_id: Optional[str] = Field(None, alias="FIREBASE_PROJECT_ID")
    firebase_web_api_key: str = Field("", alias="FIREBASE_WEB_API_KEY")

    # Firebase credentials from environment variables (for Cloud Run)
    firebase_private_key_id: Optional[str] = Field(None, alias="FIREBASE_PRIVATE_KEY_ID")
    firebase_private_key: Optional[str] = Field(None, alias="FIREBASE_PRIVATE_KEY")
    firebase_client_email: Optional[str] = Field(None, alias="FIREBASE_CLIENT_EMAIL")
    firebase_client_id: Optional[str] = Field(None, alias="FIREBASE_CLIENT_ID")
    firebase_token_uri: str = Field("https://oauth2.googleapis.com/token", alias="FIREBASE_TOKEN_URI")

    # Privileged principal ensured at startup
    admin_email: Optional[str] = Field(None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")

    session_timeout_seconds: float = Field(5.0, alias="SESSION_TIMEOUT_SECONDS")
    http_timeout_seconds: float = Field(10.0, alias="HTTP_TIMEOUT_SECONDS")

    phone_email_domain: str = Field("horizonunit.local", alias="PHONE_EMAIL_DOMAIN")
    default_daily_contribution: float = Field(100.0, alias="DEFAULT_DAILY_CONTRIBUTION")
    currency: str = "KES"

    twilio_account_sid: str = Field("", alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: str = Field("", alias="TWILIO_AUTH_TOKEN")
    twilio_phone_number: str = Field("", alias="TWILIO_PHONE_NUMBER")

    pesapal_consumer_key: str = Field("", alias="PESAPAL_CONSUMER_KEY")
    pesapal_consumer_secret: str = Field("", alias="PESAPAL_CONSUMER_SECRET")
    pesapal_base_url: str = Field("https://cybqa.pesapal.com/pesapalapi", alias="PESAPAL_BASE_URL")
    public_base_url: str = Field("http://localhost:8000", alias="PUBLIC_BASE_URL")

    reminders_enabled: bool = Field(False, alias="REMINDERS_ENABLED")
    reminder_hour: int = Field(18, alias="REMINDER_HOUR")

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)

    @property
    def pesapal_configured(self) -> bool:
        return bool(self.pesapal_consumer_key and self.pesapal_consumer_secret)


# Load settings from environment (.env file, etc.)
settings = Settings()


def _credential() -> credentials.Certificate:
    # Use environment variables for Firebase credentials when all are present (Cloud Run)
    if all([
        settings.firebase_project_id,
        settings.firebase_private_key_id,
        settings.firebase_private_key,
        settings.firebase_client_email,
        settings.firebase_client_id,
    ]):
        return credentials.Certificate({
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "token_uri": settings.firebase_token_uri,
        })
    # Use service account file (local development)
    return credentials.Certificate(settings.firebase_cred_file)


@lru_cache()
def get_firebase_app() -> firebase_admin.App:
    """Initialize the Firebase Admin SDK once per process."""
    try:
        options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
        return firebase_admin.initialize_app(_credential(), options)
    except ValueError as e:
        if "already exists" in str(e):
            # Firebase app already initialized, get the default app
            return firebase_admin.get_app()
        raise


@lru_cache()
def get_db():
    """Firestore database client bound to the default Firebase app."""
    return firestore.client(app=get_firebase_app())
