from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Service
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    SERVICE_NAME: str = "evs-storefront"
    SERVICE_VERSION: str = "1.6.3"
    SITE_URL: str = "https://basic.evervibestudios.com"
    CONTACT_EMAIL: str = "info@evervibestudios.com"
    COMPANY_NAME: str = "EverVibe Studios"

    # License
    LICENSE_PREFIX: str = "EVS-"
    INVOICE_PREFIX: str = "EVS"
    LICENSE_SALT: Optional[str] = None
    LICENSE_JWT_SECRET: Optional[str] = None
    LICENSE_EMAIL_SENDER: str = "info@evervibestudios.com"
    LICENSE_SINGLE_PRICE: float = 29.0
    LICENSE_AGENCY_PRICE: float = 79.0
    CURRENCY: str = "EUR"
    PRODUCT_NAME: str = "EVS Basic Template"
    DOWNLOAD_URL: str = "https://github.com/evervibe/evs-next-basic-web/archive/refs/heads/main.zip"
    INVOICE_DIR: str = "docs/invoices"

    # PayPal
    PAYPAL_CLIENT_ID: Optional[str] = None
    PAYPAL_CLIENT_SECRET: Optional[str] = None
    PAYPAL_MODE: Literal["sandbox", "live"] = "sandbox"

    # Redis (license records, invoice counter, rate limits)
    REDIS_URL: Optional[str] = None

    # MongoDB (issuance audit log)
    MONGO_URI: Optional[str] = None
    DB_NAME: str = "storefront"
    AUDIT_COLLECTION: str = "license_issuances"

    # Email
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: Optional[int] = None
    SMTP_SECURE: bool = True
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    SMTP_FALLBACK_PORT: int = 587
    SMTP_TIMEOUT: float = 10.0
    EMAIL_SENDER_NAME: str = "EverVibe Studios"

    # Abuse protection
    ENABLE_RATE_LIMIT: bool = True
    # "redis" shares counters across instances
    RATE_LIMIT_BACKEND: Literal["memory", "redis"] = "memory"
    CONTACT_RATE_LIMIT_MAX: int = 3
    CONTACT_MIN_MESSAGE_LENGTH: int = 5

    # API Keys
    ADMIN_API_KEY: Optional[str] = None

    # Logging
    LOG_LEVEL: Optional[str] = None
    LOG_JSON: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def paypal_configured(self) -> bool:
        return bool(self.PAYPAL_CLIENT_ID and self.PAYPAL_CLIENT_SECRET)

    @property
    def paypal_base_url(self) -> str:
        if self.PAYPAL_MODE == "live":
            return "https://api-m.paypal.com"
        return "https://api-m.sandbox.paypal.com"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_PORT and self.SMTP_USER and self.SMTP_PASS)

    @property
    def redis_configured(self) -> bool:
        return bool(self.REDIS_URL)

    @property
    def mongo_configured(self) -> bool:
        return bool(self.MONGO_URI)

    @property
    def license_configured(self) -> bool:
        return bool(self.LICENSE_SALT and self.LICENSE_JWT_SECRET)

    @property
    def admin_configured(self) -> bool:
        return bool(self.ADMIN_API_KEY)


settings = Settings()
