from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

LicenseType = Literal["single", "agency"]
LICENSE_TYPES = ("single", "agency")


class CamelModel(BaseModel):
    """Snake-case fields in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# ✅ Domain records
# ============================================================
class License(CamelModel):
    key: str
    # plain str: a tampered record may carry an unknown type
    type: str
    email: str
    purchase_date: str
    hash: str


class StoredLicense(CamelModel):
    email: str
    type: LicenseType
    issued_at: str
    valid_until: Optional[str] = None  # None means no expiration
    download_count: int = 0


class DownloadLogEntry(CamelModel):
    ip: str
    timestamp: str
    user_agent: Optional[str] = None


class InvoiceData(CamelModel):
    invoice_id: str
    customer: str
    customer_name: Optional[str] = None
    product: str
    amount: str
    currency: str
    date: str
    license_key: str
    license_type: LicenseType
    order_id: Optional[str] = None


class ValidationResult(BaseModel):
    valid: bool
    reason: Optional[str] = None
    code: Optional[str] = None


# ============================================================
# ✅ PayPal order requests/responses
# ============================================================
class CreateOrderRequest(CamelModel):
    license_type: LicenseType
    email: EmailStr


class CreateOrderResponse(CamelModel):
    success: bool = True
    order_id: str
    status: str


class CaptureOrderRequest(CamelModel):
    order_id: str = Field(min_length=1)


class CaptureOrderResponse(CamelModel):
    success: bool = True
    order_id: str
    status: str
    email: str
    license_type: LicenseType
    license_key: Optional[str] = None


# ============================================================
# ✅ License issue/validate/download
# ============================================================
class IssueLicenseRequest(CamelModel):
    license_type: LicenseType
    email: EmailStr
    order_id: Optional[str] = None


class IssueLicenseResponse(CamelModel):
    success: bool = True
    message: str = "License issued successfully"
    license_key: str
    email: str


class ValidateLicenseRequest(CamelModel):
    license_key: str = Field(min_length=1)
    email: str = Field(min_length=1)


class ValidateLicenseResponse(CamelModel):
    success: bool = True
    message: str = "Lizenz erfolgreich validiert"
    token: str
    license_type: LicenseType
    download_count: int = 0


class DownloadResponse(CamelModel):
    success: bool = True
    message: str = "Download bereit"
    download_url: str
    license_key: str


# ============================================================
# ✅ Contact form
# ============================================================
class ContactRequest(CamelModel):
    name: str = Field(min_length=2, max_length=60)
    email: EmailStr
    message: str = Field(max_length=2000)
    hp: Optional[str] = None  # honeypot
    ts: Optional[float] = None  # form render time, epoch milliseconds

    @field_validator("email")
    @classmethod
    def email_length(cls, value: str) -> str:
        if len(value) > 120:
            raise ValueError("email address too long")
        return value


class ContactResponse(CamelModel):
    success: bool = True
    fallback: Optional[bool] = None


class HealthResponse(CamelModel):
    status: str
    timestamp: str
    environment: str
    service: str
    version: str
