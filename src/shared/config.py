"""Application settings.

Built once at startup and passed explicitly to the components that need them.
Secrets have no defaults, so a missing ``STOREFRONT_WEBHOOK_SECRET`` (or any
other secret) fails when the settings are constructed rather than on first use.

Environment variables use the ``STOREFRONT_`` prefix and may also be supplied
through a ``.env`` file:

    STOREFRONT_ENV=production
    STOREFRONT_DATABASE_URL=postgresql+psycopg://...
    STOREFRONT_GATEWAY_KEY_ID=rzp_live_xxx
    STOREFRONT_GATEWAY_KEY_SECRET=...
    STOREFRONT_WEBHOOK_SECRET=...
    STOREFRONT_JWT_SECRET=...
"""

from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        extra="ignore",
    )

    env: Literal["development", "test", "production"] = "development"
    database_url: str = "sqlite:///storefront.db"

    gateway_backend: Literal["razorpay", "fake"] = "razorpay"
    gateway_key_id: str = Field(min_length=1)
    gateway_key_secret: SecretStr
    gateway_base_url: str = "https://api.razorpay.com/v1"
    gateway_timeout_seconds: float = Field(default=10.0, gt=0)

    webhook_secret: SecretStr
    jwt_secret: SecretStr

    currency: str = Field(default="INR", min_length=3, max_length=3)

    log_level: str = "INFO"
    log_json: bool = False

    @model_validator(mode="after")
    def _check_secrets(self):
        for name in ("gateway_key_secret", "webhook_secret", "jwt_secret"):
            if not getattr(self, name).get_secret_value():
                raise ValueError(f"{name} must not be empty")
        if self.env == "production" and self.gateway_backend == "fake":
            raise ValueError("The fake payment gateway cannot be used in production")
        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"
