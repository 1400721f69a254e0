"""Configuration objects and helpers for the invitation assistant."""

from __future__ import annotations

from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration sourced from environment variables."""

    whatsapp_api_token: Optional[SecretStr] = Field(default=None, validation_alias="WHATSAPP_API_TOKEN")
    whatsapp_phone_number_id: Optional[str] = Field(default=None, validation_alias="WHATSAPP_PHONE_NUMBER_ID")
    whatsapp_verify_token: Optional[str] = Field(default=None, validation_alias="WHATSAPP_VERIFY_TOKEN")
    whatsapp_api_url: str = Field(default="https://graph.facebook.com/v18.0", validation_alias="WHATSAPP_API_URL")

    twilio_account_sid: Optional[str] = Field(default=None, validation_alias="TWILIO_ACCOUNT_SID")
    twilio_auth_token: Optional[SecretStr] = Field(default=None, validation_alias="TWILIO_AUTH_TOKEN")
    twilio_phone_number: str = Field(default="whatsapp:+14155238886", validation_alias="TWILIO_PHONE_NUMBER")
    twilio_api_url: str = Field(default="https://api.twilio.com/2010-04-01", validation_alias="TWILIO_API_URL")

    messagebird_api_key: Optional[SecretStr] = Field(default=None, validation_alias="MESSAGEBIRD_API_KEY")
    messagebird_api_url: str = Field(
        default="https://conversations.messagebird.com/v1",
        validation_alias="MESSAGEBIRD_API_URL",
    )

    google_cloud_private_key: Optional[SecretStr] = Field(default=None, validation_alias="GOOGLE_CLOUD_PRIVATE_KEY")
    google_cloud_client_email: Optional[str] = Field(default=None, validation_alias="GOOGLE_CLOUD_CLIENT_EMAIL")
    google_cloud_project_id: Optional[str] = Field(default=None, validation_alias="GOOGLE_CLOUD_PROJECT_ID")
    google_application_credentials: Optional[str] = Field(
        default=None,
        validation_alias="GOOGLE_APPLICATION_CREDENTIALS",
    )

    base_url: str = Field(default="http://localhost:3000", validation_alias="BASE_URL")
    short_url_store: str = Field(default="url-mappings/url-mappings.json", validation_alias="SHORT_URL_STORE")
    shorten_links: bool = Field(default=False, validation_alias="SHORTEN_LINKS")
    timezone: Optional[str] = Field(default=None, validation_alias="KAIROS_TIMEZONE")
    http_timeout_seconds: float = Field(default=15.0, validation_alias="HTTP_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(
        env_file=(".env",),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("base_url", "whatsapp_api_url", "twilio_api_url", "messagebird_api_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Base URLs are joined with ``/`` so keep them without a trailing one."""
        return value.rstrip("/")

    @property
    def has_inline_google_credentials(self) -> bool:
        return bool(self.google_cloud_private_key and self.google_cloud_client_email)

    def google_service_account_info(self) -> dict[str, str]:
        """Service-account dict for the Vision client, built from inline env credentials."""
        if not self.has_inline_google_credentials:
            raise ValueError("GOOGLE_CLOUD_PRIVATE_KEY and GOOGLE_CLOUD_CLIENT_EMAIL must both be set")
        private_key = self.google_cloud_private_key.get_secret_value().replace("\\n", "\n")
        info = {
            "type": "service_account",
            "private_key": private_key,
            "client_email": self.google_cloud_client_email,
            "token_uri": "https://oauth2.googleapis.com/token",
        }
        if self.google_cloud_project_id:
            info["project_id"] = self.google_cloud_project_id
        return info
